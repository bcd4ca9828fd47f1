from contextlib import asynccontextmanager
import traceback
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from api import router as api_router
from api.pages import pages_router
from config.app_config import settings
from config.llm_config import require_api_key
from utils.embeddings import EmbeddingsManager
from utils.paper_fetcher import PaperFetcher
from utils.qdrant_client import VectorCache
from utils.rate_limiter import RateLimitMiddleware, SlidingWindowRateLimiter
from utils.search_orchestrator import SearchOrchestrator
from utils.summary import SummaryManager
import logging

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_orchestrator() -> SearchOrchestrator:
    """Construct the search pipeline and the clients it owns."""
    cache = VectorCache(embeddings=EmbeddingsManager()) if settings.CACHE_ENABLED else None
    return SearchOrchestrator(
        fetcher=PaperFetcher(),
        summary_manager=SummaryManager(),
        cache=cache,
    )


def _validation_message(exc: RequestValidationError) -> list:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return messages


def create_app(
    orchestrator: Optional[SearchOrchestrator] = None,
    rate_limiter: Optional[SlidingWindowRateLimiter] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        orchestrator: Search pipeline to serve; built from settings when omitted
        rate_limiter: Request ceiling for the API routes; built from settings when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for FastAPI startup and shutdown events."""
        # Startup
        logger.info("Starting AI Research Agent Service...")
        logger.info(f"Environment: {settings.APP_ENV}")
        # Also enforced when started as `uvicorn app:app`
        require_api_key()

        cache = app.state.orchestrator.cache
        if cache is None:
            logger.info("Vector cache disabled.")
        else:
            # A cache that is down at startup only means searches run uncached
            logger.info("Connecting to Qdrant vector cache...")
            await cache.connect()

        yield

        # Shutdown
        logger.info("Shutting down AI Research Agent Service...")

    app = FastAPI(
        title="AI Research Agent Service",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.orchestrator = orchestrator or build_orchestrator()
    app.state.port = settings.APP_PORT

    limiter = rate_limiter or SlidingWindowRateLimiter(
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    app.state.rate_limiter = limiter
    # The form post runs the same search as /api/search
    app.add_middleware(
        RateLimitMiddleware,
        limiter=limiter,
        path_prefixes=("/api", "/search"),
        routes=[("POST", "/")],
    )

    @app.middleware("http")
    async def log_and_catch_errors(request: Request, call_next):
        logger.info(f"{request.method} {request.url.path}")
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(f"Unhandled error on {request.method} {request.url.path}: {e}")
            content = {"error": "Internal server error", "details": str(e)}
            if not settings.is_production:
                content["trace"] = traceback.format_exc()
            return JSONResponse(status_code=500, content=content)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials="*" not in settings.ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Rejected request to {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": _validation_message(exc)}
        )

    @app.get("/api", include_in_schema=False)
    async def api_index():
        return {
            "message": "AI Research Agent API",
            "status": "running",
            "endpoints": {
                "search": "POST /api/search",
                "health": "GET /api/health",
                "cacheStatus": "GET /api/cache-status",
            },
        }

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=204)

    app.include_router(api_router, prefix="/api")
    # Same endpoints without the prefix for clients that call /search directly
    app.include_router(api_router, include_in_schema=False)
    app.include_router(pages_router)
    return app


app = create_app()

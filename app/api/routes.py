from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from schemas.search_schemas import (
    CacheStatusResponse, HealthResponse, SearchRequest, SearchResponse
)
from config.app_config import settings
from config.qdrant_config import qdrant_settings
from utils.search_orchestrator import SearchOrchestrator
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


def get_orchestrator(request: Request) -> SearchOrchestrator:
    """Orchestrator owned by the application, built at startup."""
    return request.app.state.orchestrator


@router.post(
    "/search",
    response_model=SearchResponse,
    responses={400: {"description": "Invalid query or source"}, 404: {"description": "No papers found"}},
)
async def search(
    request: SearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator)
):
    """
    Search arXiv and PubMed, reusing cached summaries where possible.

    Body:
    - query: 2 to 200 characters
    - source: "all" (default), "arxiv" or "pubmed"

    Returns cache hits followed by newly summarized papers; summaries[i]
    belongs to papers[i].
    """
    logger.info(f"Search request: query='{request.query}', source={request.source}")
    response = await orchestrator.search(request.query, request.source)

    if response.total == 0 and not orchestrator.cache_enabled:
        return JSONResponse(
            status_code=404,
            content={"error": "No papers found", "papers": [], "summaries": []}
        )

    logger.info(f"Successfully processed request: {response.total} papers")
    return response


@router.get("/health", response_model=HealthResponse)
async def health(request: Request, orchestrator: SearchOrchestrator = Depends(get_orchestrator)):
    """Process liveness plus vector cache connectivity."""
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        cache_status=orchestrator.cache_status,
        port=getattr(request.app.state, "port", settings.APP_PORT),
    )


@router.get(
    "/cache-status",
    response_model=CacheStatusResponse,
    response_model_exclude_none=True,
    responses={503: {"description": "Vector store unreachable"}},
)
async def cache_status(orchestrator: SearchOrchestrator = Depends(get_orchestrator)):
    """Number of summaries stored in the vector cache."""
    if orchestrator.cache is None:
        return CacheStatusResponse(status="disabled", collection_name=qdrant_settings.COLLECTION_NAME)

    try:
        info = await orchestrator.cache.get_collection_info()
    except Exception as e:
        logger.error(f"Error reading cache status: {e}")
        body = CacheStatusResponse(
            status="error",
            collection_name=orchestrator.cache.collection_name,
            error=f"Vector store unreachable: {e}",
        )
        return JSONResponse(status_code=503, content=body.model_dump(by_alias=True, exclude_none=True))

    return CacheStatusResponse(
        status="connected",
        documents_stored=info["points_count"],
        collection_name=info["name"],
    )


"""
Per-client request ceiling over a rolling window.
"""

import logging
import math
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional, Sequence, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


class SlidingWindowRateLimiter:
    """Counts requests per key; state lives in this process only."""

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep: Optional[float] = None

    def _expire(self, window: Deque[float], now: float) -> None:
        while window and window[0] <= now - self.window_seconds:
            window.popleft()

    def _sweep(self, now: float) -> None:
        """Forget clients with no request left in their window."""
        for key in list(self._hits):
            self._expire(self._hits[key], now)
            if not self._hits[key]:
                del self._hits[key]
        self._last_sweep = now

    def hit(self, key: str) -> Optional[int]:
        """
        Record a request for key.

        Returns:
            None when the request is allowed, otherwise the number of seconds
            until the oldest request in the window expires.
        """
        now = self.clock()
        # At most one full sweep per window
        if self._last_sweep is None or now - self._last_sweep >= self.window_seconds:
            self._sweep(now)

        window = self._hits.setdefault(key, deque())
        self._expire(window, now)

        if len(window) >= self.max_requests:
            return max(1, math.ceil(window[0] + self.window_seconds - now))

        window.append(now)
        return None

    @property
    def tracked_clients(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        self._hits.clear()
        self._last_sweep = None


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests above the ceiling with 429 and a retryAfter hint."""

    def __init__(
        self,
        app,
        limiter: SlidingWindowRateLimiter,
        path_prefixes: Sequence[str] = ("/",),
        routes: Sequence[Tuple[str, str]] = (),
    ):
        """
        Args:
            limiter: Shared request counter
            path_prefixes: Every method on paths starting with these is limited
            routes: Extra (method, exact path) pairs to limit, e.g. ("POST", "/")
        """
        super().__init__(app)
        self.limiter = limiter
        self.path_prefixes = tuple(path_prefixes)
        self.routes = {(method.upper(), path) for method, path in routes}

    def is_limited(self, request: Request) -> bool:
        path = request.url.path
        return path.startswith(self.path_prefixes) or (request.method, path) in self.routes

    async def dispatch(self, request: Request, call_next):
        if not self.is_limited(request):
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        retry_after = self.limiter.hit(client)
        if retry_after is not None:
            logger.warning(f"Rate limit exceeded for {client} on {request.url.path}")
            return JSONResponse(
                status_code=429,
                content={"error": RATE_LIMIT_MESSAGE, "retryAfter": retry_after},
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)

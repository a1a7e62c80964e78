"""
Simple in-memory rate limiting for the S3 Image Server.
Used to throttle every request under the /api/ prefix.
"""

from __future__ import annotations

import asyncio
import math
from collections import deque
from time import monotonic
from typing import Callable, Deque, Dict, Optional

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

DEFAULT_DETAIL = "Too many requests, please try again later."


class RateLimitExceeded(Exception):
    """Raised when a caller has used up its request budget."""

    def __init__(self, retry_after: int) -> None:
        super().__init__(f"Rate limit exceeded; retry after {retry_after}s")
        self.retry_after = retry_after


class RateLimiter:
    """Track request timestamps and enforce per-key rate limits."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._records: Dict[str, Deque[float]] = {}
        self._lock = asyncio.Lock()
        self._last_cleanup = clock()

    def _cleanup_if_needed(self, now: float) -> None:
        """Forget clients idle for a whole window; runs at most once per window."""
        if now - self._last_cleanup < self._window_seconds:
            return

        stale_keys = [
            key
            for key, timestamps in self._records.items()
            if not timestamps or now - timestamps[-1] >= self._window_seconds
        ]
        for key in stale_keys:
            self._records.pop(key, None)
        self._last_cleanup = now

    async def check(self, key: str) -> None:
        """Record a request for ``key`` or raise RateLimitExceeded."""
        now = self._clock()
        async with self._lock:
            self._cleanup_if_needed(now)
            timestamps = self._records.setdefault(key, deque())
            while timestamps and now - timestamps[0] >= self._window_seconds:
                timestamps.popleft()

            if len(timestamps) >= self._max_requests:
                retry_after = timestamps[0] + self._window_seconds - now
                raise RateLimitExceeded(max(1, math.ceil(retry_after)))

            timestamps.append(now)


def client_identifier(request: Request, trust_proxy: bool = True) -> str:
    """
    Return the caller address as seen by the single trusted proxy.

    Only the rightmost X-Forwarded-For entry is taken; everything left of it
    is written by the client and cannot be trusted.
    """
    if trust_proxy:
        xff = request.headers.get("x-forwarded-for")
        if xff:
            candidate = xff.split(",")[-1].strip()
            if candidate:
                return candidate
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests under ``path_prefix`` once a client exceeds its budget."""

    def __init__(
        self,
        app,
        max_requests: int,
        window_seconds: int,
        path_prefix: str = "/api/",
        trust_proxy: bool = True,
        detail: Optional[str] = None,
        limiter: Optional[RateLimiter] = None,
    ) -> None:
        super().__init__(app)
        self.path_prefix = path_prefix
        self.trust_proxy = trust_proxy
        self.detail = detail or DEFAULT_DETAIL
        self.limiter = limiter or RateLimiter(max_requests, window_seconds)

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        client_id = client_identifier(request, self.trust_proxy)
        try:
            await self.limiter.check(f"api:ip:{client_id}")
        except RateLimitExceeded as exc:
            logger.warning(f"Rate limit exceeded for {client_id} on {request.url.path}")
            return JSONResponse(
                status_code=429,
                content={"error": self.detail},
                headers={"Retry-After": str(exc.retry_after)},
            )
        return await call_next(request)


__all__ = ["RateLimiter", "RateLimitExceeded", "RateLimitMiddleware", "client_identifier"]

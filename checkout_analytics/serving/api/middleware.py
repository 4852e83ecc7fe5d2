"""
API Middleware

Middleware for:
- Request logging with request-scoped log context
- Rate limiting
- Security headers
"""

import time
import uuid
from typing import Callable, Dict, List, Tuple
import asyncio

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all requests with timing information"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

        # Everything logged while handling this request carries request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client=request.client.host if request.client else None,
        )

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            "Request completed",
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        response.headers["X-Request-ID"] = request_id

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window rate limiter per client address.

    Counters live in process memory, so each worker enforces
    ``max_requests`` on its own: with N workers a client can make up to
    N * max_requests requests per window.
    """

    def __init__(
        self,
        app,
        max_requests: int = 100,
        window_seconds: int = 60,
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._requests: Dict[str, List[float]] = {}
        self._last_sweep = 0.0
        self._lock = asyncio.Lock()

    @property
    def tracked_clients(self) -> int:
        return len(self._requests)

    def _evict_idle(self, current_time: float) -> None:
        """Drop clients with no request inside the window."""
        cutoff = current_time - self.window_seconds
        for client_id in [c for c, stamps in self._requests.items() if not stamps or stamps[-1] <= cutoff]:
            del self._requests[client_id]
        self._last_sweep = current_time

    async def admit(self, client_id: str, current_time: float) -> Tuple[bool, int]:
        """
        Record a request if the client is under its limit.

        Returns:
            (allowed, remaining requests in the window)
        """
        async with self._lock:
            if current_time - self._last_sweep >= self.window_seconds:
                self._evict_idle(current_time)

            recent = [
                t for t in self._requests.get(client_id, ())
                if current_time - t < self.window_seconds
            ]

            if len(recent) >= self.max_requests:
                self._requests[client_id] = recent
                return False, 0

            recent.append(current_time)
            self._requests[client_id] = recent
            return True, self.max_requests - len(recent)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        client_id = request.client.host if request.client else "unknown"

        allowed, remaining = await self.admit(client_id, time.time())

        if not allowed:
            logger.warning("Rate limit exceeded", client=client_id, limit=self.max_requests)
            return Response(
                content='{"error": "Rate limit exceeded"}',
                status_code=429,
                media_type="application/json",
                headers={
                    "Retry-After": str(self.window_seconds),
                    "X-RateLimit-Limit": str(self.max_requests),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)

        return response

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"

        return response

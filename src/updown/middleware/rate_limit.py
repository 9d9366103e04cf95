"""Redis-backed fixed-window rate limiting middleware."""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from updown.errors import StoreUnavailable
from updown.redis_client import get_kv

logger = structlog.get_logger()

# Probes and the time-sync endpoint are polled continuously by clients.
_EXEMPT_PATHS = frozenset({"/health", "/ready", "/api/v1/time"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limit requests per client IP using store counters."""

    def __init__(self, app: object, requests_per_window: int = 120, window_seconds: int = 60) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        window = int(time.time()) // self.window_seconds
        rate_key = f"ratelimit:{client_ip}:{window}"

        try:
            pipe = get_kv().pipeline(transaction=False)
            pipe.incr_by(rate_key, 1)
            pipe.expire(rate_key, self.window_seconds + 1)
            results = await pipe.execute()
            current_count = int(results[0])
        except (RuntimeError, StoreUnavailable):
            # Store down or not initialized: serve unthrottled rather than fail closed.
            logger.debug("rate_limit_skipped", path=request.url.path)
            return await call_next(request)

        if current_count > self.requests_per_window:
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later.", "code": "rate_limited"},
                headers={
                    "Retry-After": str(self.window_seconds),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Limit": str(self.requests_per_window),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.requests_per_window - current_count))
        response.headers["X-RateLimit-Limit"] = str(self.requests_per_window)
        return response

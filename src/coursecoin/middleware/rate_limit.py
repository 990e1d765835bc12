"""Fixed-window rate limiting backed by Redis counters."""

import time
from typing import Any

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from coursecoin.redis_client import get_redis_optional

logger = structlog.get_logger()

_EXEMPT_PATHS = frozenset({"/health", "/ready"})


def _client_key(request: Request) -> str:
    """The socket peer. Behind a proxy, run uvicorn with --proxy-headers and --forwarded-allow-ips."""
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Limit requests per client per window. Disabled when Redis is not configured."""

    def __init__(self, app: Any, requests_per_window: int = 100, window_seconds: int = 60) -> None:  # noqa: ANN401
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    async def _hit(self, client: str) -> int | None:
        redis = get_redis_optional()
        if redis is None:
            return None
        window = int(time.time()) // self.window_seconds
        key = f"ratelimit:{client}:{window}"
        try:
            pipe = redis.pipeline()
            pipe.incr(key)
            pipe.expire(key, self.window_seconds + 1)
            count, _ = await pipe.execute()
        except RedisError:
            logger.warning("rate_limit_unavailable", exc_info=True)
            return None
        return int(count)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        count = await self._hit(_client_key(request))
        if count is None:
            return await call_next(request)

        limit_headers = {"X-RateLimit-Limit": str(self.requests_per_window)}
        if count > self.requests_per_window:
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={**limit_headers, "Retry-After": str(self.window_seconds), "X-RateLimit-Remaining": "0"},
            )

        response = await call_next(request)
        response.headers.update(limit_headers)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.requests_per_window - count))
        return response

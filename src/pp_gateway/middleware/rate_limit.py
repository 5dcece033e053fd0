"""Rate limiting middleware: Redis fixed window per client IP.

    count = INCR ratelimit:{ip}
    count == 1  -> EXPIRE key window
    count > max -> 429 + Retry-After (remaining TTL)

Client IP comes from the first X-Forwarded-For hop when present (reverse proxy),
otherwise from the socket peer. If Redis is unreachable the request is let
through and a warning is logged.
"""

import logging
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from config.settings import settings
from src.pp_common.errors import RateLimitError
from src.pp_common.redis_client import get_redis
from src.pp_common.response import error_response

logger = logging.getLogger(__name__)

_KEY_PREFIX = "ratelimit"


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        max_requests: int | None = None,
        window_seconds: int | None = None,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
    ) -> None:
        super().__init__(app)
        self._max = settings.RATE_LIMIT_MAX if max_requests is None else max_requests
        self._window = (
            settings.RATE_LIMIT_WINDOW_MINUTES * 60 if window_seconds is None else window_seconds
        )
        self._redis_factory = redis_factory

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        key = f"{_KEY_PREFIX}:{client_ip(request)}"
        try:
            redis = await self._redis_factory()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, self._window)
            retry_after = await redis.ttl(key) if count > self._max else 0
        except RedisError as exc:
            logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return await call_next(request)

        if count > self._max:
            err = RateLimitError()
            body = error_response(err.code, err.message)
            body.request_id = getattr(request.state, "request_id", body.request_id)
            return JSONResponse(
                status_code=err.http_status,
                content=body.model_dump(),
                headers={"Retry-After": str(retry_after if retry_after > 0 else self._window)},
            )
        return await call_next(request)

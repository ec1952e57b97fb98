"""Fixed-window rate limiting for mutating endpoints.

Rules:
  - POST/PUT/PATCH/DELETE only; reads and /health are never limited
  - RATE_LIMIT_PER_MINUTE requests per caller per wall-clock minute
  - Caller = JWT subject when a valid bearer token is present, else client IP
    (first hop of X-Forwarded-For when behind a reverse proxy)

Redis logic:
    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, 60)
    if count > limit:
        -> 429 RateLimitError (9001) with Retry-After

Redis outages fail open: a warning is logged and the request proceeds,
since balances never depend on this layer.
"""

import logging
import time
from collections.abc import Awaitable, Callable

from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from config.settings import settings
from src.p2p_common.errors import InvalidCredentialsError, RateLimitError
from src.p2p_common.redis_client import get_redis
from src.p2p_common.response import error_response
from src.p2p_gateway.auth.jwt_handler import decode_token

logger = logging.getLogger(__name__)

_LIMITED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_WINDOW_SECONDS = 60


def client_identity(request: Request) -> str:
    """Rate-limit bucket owner: 'user:<id>' for valid tokens, 'ip:<addr>' otherwise."""
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        try:
            return f"user:{decode_token(auth[7:].strip())}"
        except InvalidCredentialsError:
            pass
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        limit: int | None = None,
        redis_factory: Callable[[], Awaitable[object]] = get_redis,
    ) -> None:
        super().__init__(app)
        self._limit = limit if limit is not None else settings.RATE_LIMIT_PER_MINUTE
        self._redis_factory = redis_factory

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method not in _LIMITED_METHODS or self._limit <= 0:
            return await call_next(request)

        window = int(time.time()) // _WINDOW_SECONDS
        key = f"ratelimit:{client_identity(request)}:{window}"
        try:
            redis = await self._redis_factory()
            count = await redis.incr(key)  # type: ignore[attr-defined]
            if count == 1:
                await redis.expire(key, _WINDOW_SECONDS)  # type: ignore[attr-defined]
        except (RedisError, OSError):
            logger.warning("Rate limiter unavailable, allowing %s", key, exc_info=True)
            return await call_next(request)

        if count > self._limit:
            exc = RateLimitError()
            retry_after = _WINDOW_SECONDS - int(time.time()) % _WINDOW_SECONDS
            resp = error_response(exc.code, exc.message, request)
            return JSONResponse(
                status_code=exc.http_status,
                content=resp.model_dump(),
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)

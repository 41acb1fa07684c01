"""Rate limiting — Redis fixed-window counter on trading endpoints.

Rule: RATE_LIMIT_PER_MINUTE write requests per client per minute on the
money-moving routes (bets, sells, purchases, daily claims).

Key pattern: "ratelimit:{client}:{window}" where window = epoch_seconds // 60.
The client is the real IP from X-Forwarded-For when behind a proxy.

If Redis is unreachable the limiter either lets the request through
(fail_open=True) or rejects it with 503. Never silently.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from src.pm_common.errors import AppError, RateLimitError, ServiceUnavailableError
from src.pm_common.response import current_request_id, error_response

logger = logging.getLogger(__name__)

LIMITED_PATH_PREFIXES: tuple[str, ...] = (
    "/api/v1/bets",
    "/api/v1/account/purchases",
    "/api/v1/rewards/daily",
)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    count: int
    retry_after: int  # seconds until the window resets


class FixedWindowRateLimiter:
    def __init__(
        self,
        redis: aioredis.Redis,
        limit: int,
        window_seconds: int = 60,
        fail_open: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = redis
        self._limit = limit
        self._window = window_seconds
        self._fail_open = fail_open
        self._clock = clock

    async def hit(self, client: str) -> RateLimitDecision:
        now = self._clock()
        window = int(now // self._window)
        retry_after = self._window - int(now % self._window)
        key = f"ratelimit:{client}:{window}"
        try:
            count = int(await self._redis.incr(key))
            if count == 1:
                await self._redis.expire(key, self._window)
        except RedisError as exc:
            if self._fail_open:
                logger.warning("Rate limiter unavailable, allowing request (fail-open): %s", exc)
                return RateLimitDecision(allowed=True, count=0, retry_after=0)
            logger.error("Rate limiter unavailable, rejecting request: %s", exc)
            raise ServiceUnavailableError("Rate limiter unavailable") from exc
        return RateLimitDecision(
            allowed=count <= self._limit, count=count, retry_after=retry_after
        )


def client_identity(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _error(
    request: Request, exc: AppError, headers: dict[str, str] | None = None
) -> JSONResponse:
    resp = error_response(exc.code, exc.message, request_id=current_request_id(request))
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
        headers=headers,
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies the runtime's limiter to write requests on limited paths.

    Errors are rendered here: exceptions raised in middleware never reach
    the app's AppError handler.
    """

    def __init__(
        self, app: ASGIApp, path_prefixes: tuple[str, ...] = LIMITED_PATH_PREFIXES
    ) -> None:
        super().__init__(app)
        self._prefixes = path_prefixes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method != "POST" or not request.url.path.startswith(self._prefixes):
            return await call_next(request)

        limiter: FixedWindowRateLimiter | None = getattr(
            request.app.state.runtime, "rate_limiter", None
        )
        if limiter is None:
            return await call_next(request)

        client = client_identity(request)
        try:
            decision = await limiter.hit(client)
        except ServiceUnavailableError as exc:
            return _error(request, exc)
        if not decision.allowed:
            logger.warning("Rate limit exceeded: client=%s count=%d", client, decision.count)
            return _error(request, RateLimitError(), {"Retry-After": str(decision.retry_after)})
        return await call_next(request)

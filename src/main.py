"""FastAPI application entry point.

Run with: uvicorn src.main:create_app --factory --reload --port 8000
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.settings import Settings, get_settings
from src.pm_account.api.router import router as account_router
from src.pm_betting.api.router import router as betting_router
from src.pm_common.errors import AppError, InsufficientBalanceError
from src.pm_common.response import current_request_id, error_response
from src.pm_gateway.middleware.rate_limit import RateLimitMiddleware
from src.pm_gateway.middleware.request_log import RequestLogMiddleware
from src.pm_market.api.router import router as market_router
from src.pm_rewards.api.router import router as rewards_router
from src.runtime import PlatformRuntime

logger = logging.getLogger(__name__)


def _error_data(exc: AppError) -> dict[str, object] | None:
    """Structured state the client needs to act on the error."""
    if isinstance(exc, InsufficientBalanceError):
        return {
            "required": str(exc.required),
            "available": {wallet: str(amount) for wallet, amount in exc.available.items()},
            "ending_soon": exc.ending_soon,
        }
    next_available_at = getattr(exc, "next_available_at", None)
    if next_available_at is not None:
        return {"next_available_at": next_available_at.isoformat()}
    return None


def create_app(
    settings: Settings | None = None, runtime: PlatformRuntime | None = None
) -> FastAPI:
    """Build the ASGI app. A prebuilt runtime skips start/shutdown (tests)."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if runtime is not None:
            app.state.runtime = runtime
            yield
            return
        app.state.runtime = PlatformRuntime.from_settings(settings)
        await app.state.runtime.start()
        try:
            yield
        finally:
            await app.state.runtime.shutdown()

    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        lifespan=lifespan,
    )
    if runtime is not None:
        app.state.runtime = runtime

    # Last added runs first: request IDs exist before rate limiting logs.
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLogMiddleware)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        resp = error_response(
            exc.code, exc.message, _error_data(exc), request_id=current_request_id(request)
        )
        return JSONResponse(
            status_code=exc.http_status,
            content=resp.model_dump(),
        )

    app.include_router(account_router, prefix="/api/v1")
    app.include_router(market_router, prefix="/api/v1")
    app.include_router(betting_router, prefix="/api/v1")
    app.include_router(rewards_router, prefix="/api/v1")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": "0.1.0"}

    return app


def run() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run(
        "src.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        loop="uvloop",
    )


if __name__ == "__main__":
    run()

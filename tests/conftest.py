"""Shared test fixtures.

The API is exercised against a stub runtime: services are AsyncMocks and
the session factory hands out mock sessions, so no Postgres or Redis is
needed to test routing, auth and the error envelope.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from config.settings import Settings
from src.main import create_app
from src.pm_gateway.auth.jwt_handler import create_access_token

ADMIN_ID = "admin-1"
USER_ID = "user-1"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        JWT_SECRET="test-secret",
        ADMIN_USER_IDS=[ADMIN_ID],
        DAILY_ALLOCATION_SCHEDULER_ENABLED=False,
    )


@pytest.fixture
def runtime(settings: Settings) -> SimpleNamespace:
    @asynccontextmanager
    async def _session():
        yield AsyncMock()

    return SimpleNamespace(
        settings=settings,
        rate_limiter=None,
        session_factory=MagicMock(side_effect=_session),
        ledger_service=AsyncMock(),
        market_service=AsyncMock(),
        betting_service=AsyncMock(),
        resolution_service=AsyncMock(),
        rewards_service=AsyncMock(),
    )


@pytest.fixture
async def client(
    settings: Settings, runtime: SimpleNamespace
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    app = create_app(settings, runtime=runtime)  # type: ignore[arg-type]
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def user_headers(settings: Settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(USER_ID, settings.JWT_SECRET)}"}


@pytest.fixture
def admin_headers(settings: Settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(ADMIN_ID, settings.JWT_SECRET)}"}

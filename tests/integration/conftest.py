"""Integration-test fixtures (requires a migrated PostgreSQL).

Pre-condition: alembic upgrade head against DATABASE_URL.

All integration tests share a single event loop so the session-scoped
engine pool stays valid for the whole run. Every test module is skipped
when the database is unreachable.
"""

import os
import uuid
from collections.abc import AsyncGenerator
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from config.settings import Settings
from src.pm_common.database import create_engine, create_session_factory


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    settings = Settings(JWT_SECRET=os.environ.get("JWT_SECRET", "integration-secret"))
    engine = create_engine(settings)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM users LIMIT 1"))
    except (OSError, DBAPIError) as exc:
        await engine.dispose()
        pytest.skip(f"PostgreSQL not available: {exc}")
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
def make_user(session_factory: async_sessionmaker[AsyncSession]):
    """Insert a fresh ledger row and return its id."""

    async def _make(free: Decimal | int = 0, purchased: Decimal | int = 0) -> str:
        user_id = f"it_{uuid.uuid4().hex[:12]}"
        free, purchased = Decimal(free), Decimal(purchased)
        async with session_factory() as db:
            await db.execute(
                text(
                    "INSERT INTO users (id, free_credits_balance, purchased_credits_balance, "
                    "available_credits) VALUES (:id, :free, :purchased, :available)"
                ),
                {
                    "id": user_id,
                    "free": free,
                    "purchased": purchased,
                    "available": free + purchased,
                },
            )
            await db.commit()
        return user_id

    return _make

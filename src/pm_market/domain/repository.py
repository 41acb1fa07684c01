"""Repository Protocol — dependency inversion for testability.

Unit tests inject a fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_amm.domain.models import Pool
from src.pm_market.domain.models import Market


class MarketRepositoryProtocol(Protocol):
    async def get_market_by_id(
        self, db: AsyncSession, market_id: str
    ) -> Market | None: ...

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]: ...

    async def lock_market(
        self, db: AsyncSession, market_id: str
    ) -> Market | None: ...

    async def update_reserves(
        self, db: AsyncSession, market_id: str, pool: Pool, volume_delta: Decimal
    ) -> None: ...

    async def create_market(
        self,
        db: AsyncSession,
        title: str,
        expires_at: datetime | None,
        pool: Pool,
        fee_bps: int,
    ) -> Market: ...

    async def transition_status(
        self,
        db: AsyncSession,
        market_id: str,
        from_status: str,
        to_status: str,
        resolution: str | None,
        resolved_at: datetime | None,
    ) -> Market | None: ...

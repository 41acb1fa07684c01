"""Repository Protocol — dependency inversion for testability.

Unit tests inject a fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_betting.domain.models import Bet


class BetRepositoryProtocol(Protocol):
    async def create_bet(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str,
        side: str,
        amount: Decimal,
        shares: Decimal,
        credit_source: str,
        price_at_bet: Decimal,
        idempotency_key: str | None,
    ) -> Bet: ...

    async def find_by_idempotency_key(
        self, db: AsyncSession, user_id: str, idempotency_key: str
    ) -> Bet | None: ...

    async def get_bet_for_update(
        self, db: AsyncSession, bet_id: str
    ) -> Bet | None: ...

    async def settle(
        self,
        db: AsyncSession,
        bet_id: str,
        to_status: str,
        actual_payout: Decimal | None,
        resolved_at: datetime,
    ) -> Bet | None: ...

    async def list_pending_for_market(
        self, db: AsyncSession, market_id: str
    ) -> list[Bet]: ...

    async def list_user_bets(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        market_id: str | None,
        limit: int,
        offset: int,
    ) -> list[Bet]: ...

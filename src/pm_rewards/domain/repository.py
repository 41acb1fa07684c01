"""Repository Protocol for the daily reward history."""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession


class DailyRewardRepositoryProtocol(Protocol):
    async def record_claim(
        self,
        db: AsyncSession,
        user_id: str,
        credits_awarded: Decimal,
        streak_day: int,
        claimed_at: datetime,
    ) -> None: ...

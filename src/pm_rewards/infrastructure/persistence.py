"""DailyRewardRepository — append-only claim history.

Transaction ownership: The CALLER (application service) is responsible for
starting and committing the transaction.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_INSERT_CLAIM_SQL = text("""
    INSERT INTO daily_rewards (user_id, credits_awarded, streak_day, claimed_at)
    VALUES (:user_id, :credits_awarded, :streak_day, :claimed_at)
""")


class DailyRewardRepository:
    async def record_claim(
        self,
        db: AsyncSession,
        user_id: str,
        credits_awarded: Decimal,
        streak_day: int,
        claimed_at: datetime,
    ) -> None:
        await db.execute(
            _INSERT_CLAIM_SQL,
            {
                "user_id": user_id,
                "credits_awarded": credits_awarded,
                "streak_day": streak_day,
                "claimed_at": claimed_at,
            },
        )

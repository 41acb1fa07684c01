"""Domain models for pm_betting — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.pm_common.enums import BetStatus


@dataclass
class Bet:
    """A position in one market.

    State machine: pending -> sold | won | lost | cancelled. Every status
    other than pending is terminal.
    """

    id: str
    user_id: str
    market_id: str
    side: str                       # BetSide value
    amount: Decimal                 # stake debited at placement
    shares: Decimal                 # outcome shares received from the pool
    credit_source: str              # Wallet value that funded the stake
    price_at_bet: Decimal           # side probability before the trade
    status: str                     # BetStatus value
    actual_payout: Decimal | None = None
    idempotency_key: str | None = None
    created_at: datetime | None = None
    resolved_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == BetStatus.PENDING

"""Domain models for pm_market — pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.pm_amm.domain.models import Pool


@dataclass
class Market:
    id: str
    title: str
    status: str                 # MarketStatus value
    expires_at: datetime | None
    yes_reserve: Decimal
    no_reserve: Decimal
    fee_bps: int
    volume: Decimal
    resolution: str | None
    resolved_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @property
    def pool(self) -> Pool:
        return Pool(yes_reserve=self.yes_reserve, no_reserve=self.no_reserve)

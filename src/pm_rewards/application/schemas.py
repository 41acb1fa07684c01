"""Pydantic response schemas for pm_rewards."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class DailyClaimResponse(BaseModel):
    credits_awarded: Decimal
    consecutive_days: int
    next_available_at: datetime
    free_credits_balance: Decimal
    available_credits: Decimal


class DailyStatusResponse(BaseModel):
    can_claim: bool
    consecutive_days: int
    next_claim_credits: Decimal
    next_available_at: datetime
    last_daily_reward_at: datetime | None

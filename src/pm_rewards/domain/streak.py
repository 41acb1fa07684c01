"""Daily login streak and credit schedule. Pure functions, no I/O.

Days are UTC calendar days: a claim at 23:59 and another at 00:01 the next
day are consecutive.

Schedule: day 1 -> 1000, then +500 per consecutive day, capped at 10000
from day 18 on.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.pm_common.datetime_utils import ensure_utc, next_utc_midnight, utc_midnight
from src.pm_common.errors import ValidationError

BASE_DAILY_CREDITS = Decimal(1000)
DAILY_INCREMENT = Decimal(500)
MAX_DAILY_CREDITS = Decimal(10_000)
MAX_STREAK_DAY = 18


@dataclass(frozen=True)
class DailyClaimDecision:
    already_claimed: bool
    consecutive_days: int          # streak after this claim (unchanged if already claimed)
    credits_awarded: Decimal
    next_available_at: datetime


def calculate_daily_credits(streak_day: int) -> Decimal:
    if streak_day < 1:
        raise ValidationError("streak_day", f"must be >= 1, got {streak_day}")
    if streak_day >= MAX_STREAK_DAY:
        return MAX_DAILY_CREDITS
    return BASE_DAILY_CREDITS + (streak_day - 1) * DAILY_INCREMENT


def evaluate_daily_claim(
    now: datetime,
    last_daily_reward_at: datetime | None,
    consecutive_days: int,
) -> DailyClaimDecision:
    """Decide what a claim at `now` awards, given the stored streak state."""
    now = ensure_utc(now)
    next_available_at = next_utc_midnight(now)

    if last_daily_reward_at is None:
        streak = 1
    else:
        gap_days = (utc_midnight(now) - utc_midnight(last_daily_reward_at)).days
        if gap_days <= 0:
            # Same UTC day, or a stored timestamp ahead of our clock.
            return DailyClaimDecision(
                already_claimed=True,
                consecutive_days=consecutive_days,
                credits_awarded=Decimal(0),
                next_available_at=next_available_at,
            )
        streak = max(consecutive_days, 0) + 1 if gap_days == 1 else 1

    return DailyClaimDecision(
        already_claimed=False,
        consecutive_days=streak,
        credits_awarded=calculate_daily_credits(streak),
        next_available_at=next_available_at,
    )

"""Dual-wallet spending rules.

Free credits (daily allocation, promos) and purchased credits have different
eligibility: a market close to expiry can only be bet on with purchased
credits, so promotional credits cannot farm near-certain outcomes.
"""

from datetime import datetime, timedelta

from src.pm_common.datetime_utils import ensure_utc
from src.pm_common.enums import Wallet

ENDING_SOON_THRESHOLD = timedelta(hours=24)

_NORMAL_ORDER: tuple[Wallet, ...] = (Wallet.FREE, Wallet.PURCHASED)
_ENDING_SOON_ORDER: tuple[Wallet, ...] = (Wallet.PURCHASED,)


def is_market_ending_soon(
    expires_at: datetime | None,
    now: datetime,
    threshold: timedelta = ENDING_SOON_THRESHOLD,
) -> bool:
    """True when expiry is in the future but within `threshold`."""
    if expires_at is None:
        return False
    expires = ensure_utc(expires_at)
    current = ensure_utc(now)
    return current < expires <= current + threshold


def eligible_wallets(ending_soon: bool) -> tuple[Wallet, ...]:
    """Wallets to try, in order. Exactly one of them funds a trade."""
    return _ENDING_SOON_ORDER if ending_soon else _NORMAL_ORDER

from datetime import datetime

from src.pm_common.datetime_utils import ensure_utc
from src.pm_common.enums import MarketStatus
from src.pm_common.errors import MarketClosedError
from src.pm_market.domain.models import Market


def check_market_open(market: Market, now: datetime) -> None:
    """Raise MarketClosedError unless the market is open and not yet expired."""
    if market.status != MarketStatus.OPEN:
        raise MarketClosedError(market.id, market.status, market.expires_at)
    if market.expires_at is not None and ensure_utc(now) >= ensure_utc(market.expires_at):
        raise MarketClosedError(market.id, market.status, market.expires_at)

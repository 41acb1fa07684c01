"""MarketApplicationService — market lifecycle and read models.

Reads need no commit. create_market / close_market are single-statement
units of work and commit themselves.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_amm.domain import cpmm
from src.pm_common.datetime_utils import ensure_utc, utc_now
from src.pm_common.enums import MarketStatus
from src.pm_common.errors import MarketClosedError, MarketNotFoundError, ValidationError
from src.pm_market.application.schemas import (
    CreateMarketRequest,
    MarketDetail,
    MarketListItem,
    MarketListResponse,
    cursor_decode,
    cursor_encode,
)
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)


class MarketApplicationService:
    def __init__(
        self,
        repo: MarketRepositoryProtocol | None = None,
        default_liquidity: Decimal = Decimal(10_000),
        clock=utc_now,
    ) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()
        self._default_liquidity = default_liquidity
        self._clock = clock

    async def list_markets(
        self,
        db: AsyncSession,
        status: MarketStatus | None,
        cursor: str | None,
        limit: int,
    ) -> MarketListResponse:
        cursor_ts, cursor_id = cursor_decode(cursor)

        # Fetch limit+1 to detect has_more without COUNT(*)
        markets = await self._repo.list_markets(
            db, status.value if status else None, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(markets) > limit
        page = markets[:limit]

        items = [MarketListItem.from_domain(m) for m in page]
        next_cursor = cursor_encode(page[-1]) if has_more and page else None
        return MarketListResponse(items=items, next_cursor=next_cursor, has_more=has_more)

    async def get_market(self, db: AsyncSession, market_id: str) -> MarketDetail:
        market = await self._repo.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return MarketDetail.from_domain(market)

    async def create_market(
        self, db: AsyncSession, request: CreateMarketRequest
    ) -> MarketDetail:
        """Open a market whose pool prices YES at `initial_probability`."""
        if request.expires_at is not None and ensure_utc(request.expires_at) <= self._clock():
            raise ValidationError("expires_at", "must be in the future")
        liquidity = request.liquidity or self._default_liquidity
        pool = cpmm.initialize_pool_with_probability(liquidity, request.initial_probability)
        try:
            market = await self._repo.create_market(
                db, request.title, request.expires_at, pool, request.fee_bps
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Market created: id=%s liquidity=%s p_yes=%s fee_bps=%d",
            market.id,
            liquidity,
            request.initial_probability,
            request.fee_bps,
        )
        return MarketDetail.from_domain(market)

    async def close_market(self, db: AsyncSession, market_id: str) -> MarketDetail:
        """open -> closed. Trading stops; pending bets wait for resolution."""
        try:
            market = await self._repo.transition_status(
                db, market_id, MarketStatus.OPEN.value, MarketStatus.CLOSED.value, None, None
            )
            if market is None:
                current = await self._repo.get_market_by_id(db, market_id)
                if current is None:
                    raise MarketNotFoundError(market_id)
                raise MarketClosedError(market_id, current.status, current.expires_at)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Market closed: id=%s", market_id)
        return MarketDetail.from_domain(market)

"""Market resolution and bet settlement.

The market flips to `resolved` in its own transaction; every pending bet
then settles in a separate transaction so one bad row cannot block the
rest of the market. Calling resolve again with the same outcome settles
whatever is still pending, which makes a partially failed run resumable.

Settlement per bet:
  winner  -> payout = shares (one credit per share) to the funding wallet, `won`
  loser   -> no payout, `lost`, pnl -= stake
  invalid -> stake refunded to the funding wallet, `cancelled`
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.service import LedgerApplicationService
from src.pm_betting.domain.models import Bet
from src.pm_betting.domain.repository import BetRepositoryProtocol
from src.pm_betting.infrastructure.persistence import BetRepository
from src.pm_common.credits import ZERO
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import BetStatus, MarketStatus, Resolution, TransactionType, Wallet
from src.pm_common.errors import MarketClosedError, MarketNotFoundError
from src.pm_market.application.schemas import ResolutionSummary
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)


class MarketResolutionService:
    def __init__(
        self,
        market_repo: MarketRepositoryProtocol | None = None,
        bet_repo: BetRepositoryProtocol | None = None,
        ledger: LedgerApplicationService | None = None,
        clock=utc_now,
    ) -> None:
        self._markets: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._bets: BetRepositoryProtocol = bet_repo or BetRepository()
        self._ledger = ledger or LedgerApplicationService()
        self._clock = clock

    async def resolve_market(
        self, db: AsyncSession, market_id: str, resolution: Resolution
    ) -> ResolutionSummary:
        await self._mark_resolved(db, market_id, resolution)

        pending = await self._bets.list_pending_for_market(db, market_id)
        counts = {"resolved": 0, "won": 0, "lost": 0, "cancelled": 0, "errors": 0}
        for bet in pending:
            try:
                status = await self._settle_bet(db, bet, resolution)
            except Exception:
                counts["errors"] += 1
                logger.exception("Failed to settle bet=%s market=%s", bet.id, market_id)
                continue
            if status is None:
                continue  # settled concurrently
            counts["resolved"] += 1
            counts[status.value] += 1

        logger.info(
            "Market resolved: id=%s resolution=%s resolved=%d won=%d lost=%d cancelled=%d errors=%d",
            market_id,
            resolution.value,
            counts["resolved"],
            counts["won"],
            counts["lost"],
            counts["cancelled"],
            counts["errors"],
        )
        return ResolutionSummary(market_id=market_id, resolution=resolution.value, **counts)

    async def _mark_resolved(
        self, db: AsyncSession, market_id: str, resolution: Resolution
    ) -> Market:
        try:
            market = await self._markets.lock_market(db, market_id)
            if market is None:
                raise MarketNotFoundError(market_id)
            if market.status == MarketStatus.RESOLVED:
                if market.resolution != resolution.value:
                    raise MarketClosedError(market_id, market.status, market.expires_at)
                await db.rollback()
                return market
            resolved = await self._markets.transition_status(
                db,
                market_id,
                market.status,
                MarketStatus.RESOLVED.value,
                resolution.value,
                self._clock(),
            )
            if resolved is None:
                raise MarketClosedError(market_id, market.status, market.expires_at)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return resolved

    async def _settle_bet(
        self, db: AsyncSession, bet: Bet, resolution: Resolution
    ) -> BetStatus | None:
        wallet = Wallet(bet.credit_source)
        if resolution == Resolution.INVALID:
            status, payout = BetStatus.CANCELLED, bet.amount
        elif bet.side == resolution.value:
            status, payout = BetStatus.WON, bet.shares
        else:
            status, payout = BetStatus.LOST, ZERO

        try:
            settled = await self._bets.settle(
                db, bet.id, status.value, payout, self._clock()
            )
            if settled is None:
                await db.rollback()
                return None
            if status == BetStatus.WON:
                ledger = await self._ledger.credit(
                    db, bet.user_id, wallet, payout, pnl_delta=payout - bet.amount
                )
                await self._ledger.record(
                    db, ledger, payout, TransactionType.BET_PAYOUT, bet.id
                )
            elif status == BetStatus.CANCELLED:
                ledger = await self._ledger.credit(db, bet.user_id, wallet, payout)
                await self._ledger.record(
                    db, ledger, payout, TransactionType.BET_REFUND, bet.id
                )
            else:
                await self._ledger.credit(
                    db, bet.user_id, wallet, Decimal(0), pnl_delta=-bet.amount
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return status

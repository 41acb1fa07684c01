"""BettingApplicationService — AMM trade executor.

place_bet_amm / sell_position_amm each run as one transaction:
  debit (or credit) + pool lock + reserve update + bet row + audit row
commit together or not at all. The whole transaction is retried on
Postgres write conflicts; business errors propagate immediately.

Lock order: a buy takes market row (FOR UPDATE) -> user row (guarded debit);
a sell takes bet row -> market row -> user row. The market row always
precedes the user row.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.service import LedgerApplicationService
from src.pm_account.domain.wallet_policy import ENDING_SOON_THRESHOLD, is_market_ending_soon
from src.pm_amm.domain import cpmm
from src.pm_betting.application.schemas import (
    BetListResponse,
    BetResponse,
    PlaceBetRequest,
    PlaceBetResponse,
    SellPositionResponse,
    TradeQuoteResponse,
)
from src.pm_betting.domain.models import Bet
from src.pm_betting.domain.repository import BetRepositoryProtocol
from src.pm_betting.infrastructure.persistence import BetRepository
from src.pm_common.credits import quantize, to_decimal
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import BetSide, BetStatus, MarketStatus, TransactionType, Wallet
from src.pm_common.errors import (
    BetNotFoundError,
    InternalError,
    InvalidBetStateError,
    MarketNotFoundError,
)
from src.pm_common.retry import retry_on_conflict
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_risk.rules.market_status import check_market_open
from src.pm_risk.rules.stake_limit import MAX_BET_AMOUNT, MIN_BET_AMOUNT, check_stake_limit

logger = logging.getLogger(__name__)


class BettingApplicationService:
    def __init__(
        self,
        market_repo: MarketRepositoryProtocol | None = None,
        bet_repo: BetRepositoryProtocol | None = None,
        ledger: LedgerApplicationService | None = None,
        *,
        min_bet_amount: Decimal = MIN_BET_AMOUNT,
        max_bet_amount: Decimal = MAX_BET_AMOUNT,
        ending_soon_threshold: timedelta = ENDING_SOON_THRESHOLD,
        retry_attempts: int = 2,
        retry_delay_ms: int = 500,
        clock=utc_now,
    ) -> None:
        self._markets: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._bets: BetRepositoryProtocol = bet_repo or BetRepository()
        self._ledger = ledger or LedgerApplicationService()
        self._min_bet_amount = min_bet_amount
        self._max_bet_amount = max_bet_amount
        self._ending_soon_threshold = ending_soon_threshold
        self._retry_attempts = retry_attempts
        self._retry_delay_ms = retry_delay_ms
        self._clock = clock

    # ------------------------------------------------------------------
    # Quote (read-only)
    # ------------------------------------------------------------------

    async def get_trade_quote(
        self, db: AsyncSession, market_id: str, amount: Decimal, side: BetSide
    ) -> TradeQuoteResponse:
        stake = to_decimal(amount)
        market = await self._get_market(db, market_id)
        now = self._clock()
        check_market_open(market, now)
        trade = cpmm.buy(market.pool, side, stake, market.fee_bps)
        return TradeQuoteResponse.from_trade(
            market_id,
            side,
            stake,
            trade,
            requires_purchased_credits=self._ending_soon(market, now),
        )

    # ------------------------------------------------------------------
    # Buy
    # ------------------------------------------------------------------

    async def place_bet_amm(
        self, db: AsyncSession, user_id: str, request: PlaceBetRequest
    ) -> PlaceBetResponse:
        amount = to_decimal(request.amount)
        check_stake_limit(amount, self._min_bet_amount, self._max_bet_amount)

        async def _attempt() -> PlaceBetResponse:
            return await self._place_bet_once(db, user_id, request, amount)

        return await retry_on_conflict(
            _attempt, max_retries=self._retry_attempts, initial_delay_ms=self._retry_delay_ms
        )

    async def _place_bet_once(
        self,
        db: AsyncSession,
        user_id: str,
        request: PlaceBetRequest,
        amount: Decimal,
    ) -> PlaceBetResponse:
        key = request.idempotency_key
        try:
            if key is not None:
                existing = await self._bets.find_by_idempotency_key(db, user_id, key)
                if existing is not None:
                    response = await self._replay(db, existing)
                    await db.rollback()
                    return response

            # Status, expiry and reserves are all read under the pool lock.
            locked = await self._markets.lock_market(db, request.market_id)
            if locked is None:
                raise MarketNotFoundError(request.market_id)
            now = self._clock()
            check_market_open(locked, now)
            ending_soon = self._ending_soon(locked, now)

            debit = await self._ledger.debit_for_trade(db, user_id, amount, ending_soon)

            trade = cpmm.buy(locked.pool, request.side, amount, locked.fee_bps)
            await self._markets.update_reserves(db, locked.id, trade.new_pool, amount)
            bet = await self._bets.create_bet(
                db,
                user_id=user_id,
                market_id=locked.id,
                side=request.side.value,
                amount=amount,
                shares=trade.amount_out,
                credit_source=debit.wallet.value,
                price_at_bet=trade.prob_before,
                idempotency_key=key,
            )
            await self._ledger.record(
                db, debit.ledger, -amount, TransactionType.BET_PLACED, bet.id
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            # A concurrent request with the same idempotency key won the insert.
            if key is None:
                raise
            existing = await self._bets.find_by_idempotency_key(db, user_id, key)
            if existing is None:
                raise
            response = await self._replay(db, existing)
            await db.rollback()
            return response
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Bet placed: bet=%s user=%s market=%s side=%s amount=%s shares=%s wallet=%s",
            bet.id,
            user_id,
            locked.id,
            request.side.value,
            amount,
            trade.amount_out,
            debit.wallet.value,
        )
        return PlaceBetResponse(
            bet=BetResponse.from_domain(bet),
            shares_received=trade.amount_out,
            price_impact=quantize(trade.price_impact),
            new_probability=quantize(trade.prob_after),
            credit_source=debit.wallet.value,
            new_balance=debit.ledger.available_credits,
            free_credits_balance=debit.ledger.free_credits_balance,
            purchased_credits_balance=debit.ledger.purchased_credits_balance,
        )

    async def _replay(self, db: AsyncSession, bet: Bet) -> PlaceBetResponse:
        """Rebuild the response for an already-placed bet without touching balances."""
        ledger = await self._ledger.get_ledger(db, bet.user_id)
        market = await self._get_market(db, bet.market_id)
        logger.info("Idempotent replay: bet=%s key=%s", bet.id, bet.idempotency_key)
        return PlaceBetResponse(
            bet=BetResponse.from_domain(bet),
            shares_received=bet.shares,
            price_impact=None,
            new_probability=quantize(cpmm.side_probability(market.pool, BetSide(bet.side))),
            credit_source=bet.credit_source,
            new_balance=ledger.available_credits,
            free_credits_balance=ledger.free_credits_balance,
            purchased_credits_balance=ledger.purchased_credits_balance,
            replayed=True,
        )

    # ------------------------------------------------------------------
    # Sell
    # ------------------------------------------------------------------

    async def sell_position_amm(
        self, db: AsyncSession, user_id: str, bet_id: str
    ) -> SellPositionResponse:
        async def _attempt() -> SellPositionResponse:
            return await self._sell_once(db, user_id, bet_id)

        return await retry_on_conflict(
            _attempt, max_retries=self._retry_attempts, initial_delay_ms=self._retry_delay_ms
        )

    async def _sell_once(
        self, db: AsyncSession, user_id: str, bet_id: str
    ) -> SellPositionResponse:
        try:
            bet = await self._bets.get_bet_for_update(db, bet_id)
            # Someone else's bet is reported as missing, not forbidden.
            if bet is None or bet.user_id != user_id:
                raise BetNotFoundError(bet_id)
            if not bet.is_pending:
                raise InvalidBetStateError(bet.id, bet.status)

            market = await self._markets.lock_market(db, bet.market_id)
            if market is None:
                raise MarketNotFoundError(bet.market_id)
            if market.status == MarketStatus.RESOLVED:
                raise InvalidBetStateError(bet.id, bet.status, market.status)

            trade = cpmm.sell(market.pool, BetSide(bet.side), bet.shares, market.fee_bps)
            credits_out = trade.amount_out
            profit = credits_out - bet.amount

            await self._markets.update_reserves(db, market.id, trade.new_pool, credits_out)
            sold = await self._bets.settle(
                db, bet.id, BetStatus.SOLD.value, credits_out, self._clock()
            )
            if sold is None:
                raise InternalError(f"Bet {bet.id} left pending state while locked")
            # Sale proceeds are always withdrawable credits.
            ledger = await self._ledger.credit(
                db, user_id, Wallet.PURCHASED, credits_out, pnl_delta=profit
            )
            await self._ledger.record(
                db, ledger, credits_out, TransactionType.POSITION_SOLD, bet.id
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Position sold: bet=%s user=%s market=%s shares=%s credits_out=%s profit=%s",
            bet.id,
            user_id,
            market.id,
            bet.shares,
            credits_out,
            profit,
        )
        return SellPositionResponse(
            bet=BetResponse.from_domain(sold),
            credits_received=credits_out,
            profit=profit,
            new_probability=quantize(cpmm.side_probability(trade.new_pool, BetSide(bet.side))),
            new_balance=ledger.available_credits,
            purchased_credits_balance=ledger.purchased_credits_balance,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_user_bets(
        self,
        db: AsyncSession,
        user_id: str,
        status: BetStatus | None,
        market_id: str | None,
        limit: int,
        offset: int,
    ) -> BetListResponse:
        bets = await self._bets.list_user_bets(
            db, user_id, status.value if status else None, market_id, limit, offset
        )
        return BetListResponse(
            items=[BetResponse.from_domain(b) for b in bets], limit=limit, offset=offset
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_market(self, db: AsyncSession, market_id: str) -> Market:
        market = await self._markets.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    def _ending_soon(self, market: Market, now: datetime) -> bool:
        return is_market_ending_soon(market.expires_at, now, self._ending_soon_threshold)

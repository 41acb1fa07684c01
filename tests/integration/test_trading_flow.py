"""End-to-end trading against PostgreSQL: buy, sell, resolve, concurrent claims.

Uses the session-scoped engine from tests/integration/conftest.py.
"""

import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.pm_account.application.service import LedgerApplicationService
from src.pm_amm.domain import cpmm
from src.pm_amm.domain.models import Pool
from src.pm_betting.application.schemas import PlaceBetRequest, PlaceBetResponse
from src.pm_betting.application.service import BettingApplicationService
from src.pm_common.enums import BetSide, Resolution
from src.pm_common.errors import AlreadyClaimedError, InsufficientBalanceError
from src.pm_market.application.resolution import MarketResolutionService
from src.pm_market.application.schemas import CreateMarketRequest
from src.pm_market.application.service import MarketApplicationService
from src.pm_rewards.application.service import DailyAllocationService

pytestmark = [pytest.mark.integration, pytest.mark.asyncio(loop_scope="session")]


async def _open_market(
    session_factory: async_sessionmaker[AsyncSession], expires_in: timedelta = timedelta(days=7)
) -> str:
    async with session_factory() as db:
        market = await MarketApplicationService().create_market(
            db,
            CreateMarketRequest(
                title="Integration market",
                expires_at=datetime.now(UTC) + expires_in,
                liquidity=Decimal(10_000),
            ),
        )
    return market.id


async def test_buy_sell_resolve(session_factory, make_user) -> None:
    ledger = LedgerApplicationService()
    betting = BettingApplicationService(ledger=ledger, retry_delay_ms=10)
    market_id = await _open_market(session_factory)
    alice = await make_user(free=1000)
    bob = await make_user(purchased=500)

    async with session_factory() as db:
        a_bet = await betting.place_bet_amm(
            db, alice, PlaceBetRequest(market_id=market_id, side=BetSide.THIS, amount=Decimal(1000))
        )
    assert a_bet.credit_source == "free"
    assert a_bet.shares_received == Decimal("909.090909")
    assert a_bet.free_credits_balance == Decimal(0)

    async with session_factory() as db:
        b_bet = await betting.place_bet_amm(
            db, bob, PlaceBetRequest(market_id=market_id, side=BetSide.THAT, amount=Decimal(200))
        )
    assert b_bet.credit_source == "purchased"

    async with session_factory() as db:
        sold = await betting.sell_position_amm(db, bob, b_bet.bet.id)
    assert sold.bet.status == "sold"
    assert Decimal(0) < sold.credits_received < Decimal(200)
    assert sold.purchased_credits_balance == Decimal(300) + sold.credits_received

    async with session_factory() as db:
        summary = await MarketResolutionService(ledger=ledger).resolve_market(
            db, market_id, Resolution.THIS
        )
    assert (summary.won, summary.lost, summary.errors) == (1, 0, 0)

    async with session_factory() as db:
        balance = await ledger.get_ledger(db, alice)
    assert balance.free_credits_balance == a_bet.shares_received
    assert balance.overall_pnl == a_bet.shares_received - Decimal(1000)


async def test_idempotent_buy_debits_once(session_factory, make_user) -> None:
    betting = BettingApplicationService(retry_delay_ms=10)
    market_id = await _open_market(session_factory)
    user = await make_user(free=500)
    request = PlaceBetRequest(
        market_id=market_id, side=BetSide.THAT, amount=Decimal(100), idempotency_key="k-1"
    )

    async with session_factory() as db:
        first = await betting.place_bet_amm(db, user, request)
    async with session_factory() as db:
        second = await betting.place_bet_amm(db, user, request)

    assert second.replayed
    assert second.bet.id == first.bet.id
    assert second.free_credits_balance == Decimal(400)


async def test_parallel_buys_never_overdraw(session_factory, make_user) -> None:
    betting = BettingApplicationService(retry_delay_ms=10)
    market_id = await _open_market(session_factory)
    user = await make_user(free=300)

    async def _buy() -> object:
        async with session_factory() as db:
            return await betting.place_bet_amm(
                db, user, PlaceBetRequest(market_id=market_id, side=BetSide.THIS, amount=Decimal(100))
            )

    results = await asyncio.gather(*[_buy() for _ in range(5)], return_exceptions=True)

    placed = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, InsufficientBalanceError)]
    assert (len(placed), len(rejected)) == (3, 2)
    async with session_factory() as db:
        balance = await LedgerApplicationService().get_balance(db, user)
        market = await MarketApplicationService().get_market(db, market_id)
    assert balance.available_credits == Decimal(0)
    assert market.volume == Decimal(300)


async def test_parallel_buys_by_different_users_serialise_on_pool(
    session_factory, make_user
) -> None:
    betting = BettingApplicationService(retry_delay_ms=10)
    market_id = await _open_market(session_factory)
    async with session_factory() as db:
        start = await MarketApplicationService().get_market(db, market_id)
    users = [await make_user(free=100) for _ in range(6)]

    async def _buy(user_id: str) -> PlaceBetResponse:
        async with session_factory() as db:
            return await betting.place_bet_amm(
                db, user_id, PlaceBetRequest(market_id=market_id, side=BetSide.THIS, amount=Decimal(100))
            )

    results = await asyncio.gather(*[_buy(u) for u in users])

    # Equal stakes make the serial outcome independent of commit order.
    expected = Pool(yes_reserve=start.yes_reserve, no_reserve=start.no_reserve)
    for _ in users:
        expected = cpmm.buy_yes(expected, Decimal(100)).new_pool
    async with session_factory() as db:
        final = await MarketApplicationService().get_market(db, market_id)
    assert (final.yes_reserve, final.no_reserve) == (expected.yes_reserve, expected.no_reserve)
    total_shares = sum((r.shares_received for r in results), Decimal(0))
    assert total_shares == start.yes_reserve - final.yes_reserve
    assert len({r.shares_received for r in results}) == len(users)


async def test_concurrent_daily_claims_award_once(session_factory, make_user) -> None:
    rewards = DailyAllocationService()
    user = await make_user()

    async def _claim() -> object:
        async with session_factory() as db:
            return await rewards.process_daily_credit_allocation(db, user)

    results = await asyncio.gather(_claim(), _claim(), _claim(), return_exceptions=True)

    awarded = [r for r in results if not isinstance(r, Exception)]
    assert len(awarded) == 1
    assert sum(isinstance(r, AlreadyClaimedError) for r in results) == 2
    async with session_factory() as db:
        balance = await LedgerApplicationService().get_balance(db, user)
    assert balance.free_credits_balance == Decimal(1000)

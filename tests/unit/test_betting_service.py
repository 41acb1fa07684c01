"""Unit tests for BettingApplicationService (buy, sell, quote)."""

from dataclasses import replace
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import DBAPIError

from src.pm_account.application.service import LedgerApplicationService
from src.pm_amm.domain import cpmm
from src.pm_betting.application.schemas import PlaceBetRequest
from src.pm_betting.application.service import BettingApplicationService
from src.pm_betting.domain.models import Bet
from src.pm_common.enums import BetSide
from src.pm_common.errors import (
    BetNotFoundError,
    InsufficientBalanceError,
    InvalidBetStateError,
    MarketClosedError,
    MarketNotFoundError,
    ValidationError,
)
from tests.unit.factories import NOW, InMemoryLedgerRepository, make_bet, make_market


async def _create_bet(db: object, **fields: object) -> Bet:
    return Bet(id="bet-new", status="pending", created_at=NOW, **fields)  # type: ignore[arg-type]


async def _settle(db: object, bet_id: str, to_status: str, payout: Decimal, at: object) -> Bet:
    return replace(make_bet(bet_id=bet_id), status=to_status, actual_payout=payout)


def _service(
    ledger_repo: InMemoryLedgerRepository,
    market=None,
    bet_repo: AsyncMock | None = None,
    **kwargs: object,
) -> tuple[BettingApplicationService, AsyncMock, AsyncMock]:
    market = market or make_market(expires_at=NOW + timedelta(days=7))
    market_repo = AsyncMock()
    market_repo.get_market_by_id.return_value = market
    market_repo.lock_market.return_value = market
    if bet_repo is None:
        bet_repo = AsyncMock()
        bet_repo.find_by_idempotency_key.return_value = None
        bet_repo.create_bet.side_effect = _create_bet
        bet_repo.settle.side_effect = _settle
    svc = BettingApplicationService(
        market_repo=market_repo,
        bet_repo=bet_repo,
        ledger=LedgerApplicationService(repo=ledger_repo),
        clock=lambda: NOW,
        retry_delay_ms=0,
        **kwargs,  # type: ignore[arg-type]
    )
    return svc, market_repo, bet_repo


def _request(amount: str = "100", side: BetSide = BetSide.THIS, key: str | None = None) -> PlaceBetRequest:
    return PlaceBetRequest(market_id="m1", side=side, amount=Decimal(amount), idempotency_key=key)


class TestPlaceBet:
    async def test_happy_path_single_transaction(
        self, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        ledger_repo.add_user("user-1", free=1000)
        svc, market_repo, bet_repo = _service(ledger_repo)

        result = await svc.place_bet_amm(db, "user-1", _request("1000"))

        expected = cpmm.buy_yes(make_market().pool, Decimal(1000))
        assert result.shares_received == expected.amount_out
        assert result.credit_source == "free"
        assert result.new_balance == Decimal(0)
        assert result.new_probability > Decimal("0.5")
        assert result.bet.status == "pending"
        market_repo.update_reserves.assert_awaited_once_with(
            db, "m1", expected.new_pool, Decimal(1000)
        )
        tx = ledger_repo.transactions[-1]
        assert (tx.amount, tx.transaction_type, tx.reference_id) == (
            Decimal(-1000), "bet_placed", "bet-new",
        )
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()

    async def test_dual_wallet_purchased_used_when_free_short(
        self, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        ledger_repo.add_user("user-1", free=50, purchased=100)
        svc, _, bet_repo = _service(ledger_repo)

        result = await svc.place_bet_amm(db, "user-1", _request("80"))

        assert result.credit_source == "purchased"
        assert result.free_credits_balance == Decimal(50)
        assert result.purchased_credits_balance == Decimal(20)
        assert bet_repo.create_bet.await_args.kwargs["credit_source"] == "purchased"

    async def test_ending_soon_market_rejects_free_credits(
        self, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        ledger_repo.add_user("user-1", free=1000, purchased=0)
        market = make_market(expires_at=NOW + timedelta(hours=2))
        svc, market_repo, bet_repo = _service(ledger_repo, market=market)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await svc.place_bet_amm(db, "user-1", _request("10"))

        assert exc_info.value.ending_soon
        market_repo.update_reserves.assert_not_awaited()
        bet_repo.create_bet.assert_not_awaited()
        db.rollback.assert_awaited_once()
        assert ledger_repo.users["user-1"].free_credits_balance == Decimal(1000)

    @pytest.mark.parametrize("status", ["closed", "resolved"])
    async def test_market_not_open(
        self, status: str, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        ledger_repo.add_user("user-1", free=1000)
        svc, market_repo, _ = _service(ledger_repo, market=make_market(status=status))

        with pytest.raises(MarketClosedError):
            await svc.place_bet_amm(db, "user-1", _request())

        assert ledger_repo.users["user-1"].free_credits_balance == Decimal(1000)
        market_repo.update_reserves.assert_not_awaited()

    async def test_expired_market(
        self, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        ledger_repo.add_user("user-1", free=1000)
        svc, _, _ = _service(ledger_repo, market=make_market(expires_at=NOW - timedelta(seconds=1)))

        with pytest.raises(MarketClosedError):
            await svc.place_bet_amm(db, "user-1", _request())

    async def test_status_read_under_lock_before_debit(
        self, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        ledger_repo.add_user("user-1", free=1000)
        svc, market_repo, _ = _service(ledger_repo)
        market_repo.lock_market.return_value = make_market(status="closed")

        with pytest.raises(MarketClosedError):
            await svc.place_bet_amm(db, "user-1", _request())

        assert ledger_repo.users["user-1"].free_credits_balance == Decimal(1000)
        market_repo.update_reserves.assert_not_awaited()
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_pool_locked_before_wallet_debit(
        self, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        ledger_repo.add_user("user-1", free=1000)
        svc, market_repo, _ = _service(ledger_repo)
        market = market_repo.lock_market.return_value
        balance_at_lock: list[Decimal] = []

        async def _lock(db: object, market_id: str) -> object:
            balance_at_lock.append(ledger_repo.users["user-1"].free_credits_balance)
            return market

        market_repo.lock_market.side_effect = _lock

        await svc.place_bet_amm(db, "user-1", _request("100"))

        assert balance_at_lock == [Decimal(1000)]
        assert ledger_repo.users["user-1"].free_credits_balance == Decimal(900)

    async def test_unknown_market(self, ledger_repo: InMemoryLedgerRepository, db: AsyncMock) -> None:
        svc, market_repo, _ = _service(ledger_repo)
        market_repo.lock_market.return_value = None

        with pytest.raises(MarketNotFoundError):
            await svc.place_bet_amm(db, "user-1", _request())

    @pytest.mark.parametrize("amount", ["5", "10000.5"])
    async def test_stake_bounds(
        self, amount: str, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        svc, market_repo, _ = _service(ledger_repo)

        with pytest.raises(ValidationError):
            await svc.place_bet_amm(db, "user-1", _request(amount))

        market_repo.lock_market.assert_not_awaited()

    async def test_configured_stake_bounds(
        self, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        ledger_repo.add_user("user-1", free=1000)
        svc, _, _ = _service(ledger_repo, min_bet_amount=Decimal(1))

        result = await svc.place_bet_amm(db, "user-1", _request("5"))

        assert result.bet.amount == Decimal(5)

    async def test_idempotent_replay_does_not_debit(
        self, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        ledger_repo.add_user("user-1", free=900)
        existing = make_bet(amount=100)
        svc, market_repo, bet_repo = _service(ledger_repo)
        bet_repo.find_by_idempotency_key.return_value = existing

        result = await svc.place_bet_amm(db, "user-1", _request("100", key="req-1"))

        assert result.replayed
        assert result.bet.id == existing.id
        assert result.new_balance == Decimal(900)
        assert result.price_impact is None
        bet_repo.create_bet.assert_not_awaited()
        market_repo.update_reserves.assert_not_awaited()
        db.commit.assert_not_awaited()

    async def test_write_conflict_retried(
        self, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        class _Serialization(Exception):
            sqlstate = "40001"

        ledger_repo.add_user("user-1", free=1000)
        svc, market_repo, bet_repo = _service(ledger_repo)
        market = make_market(expires_at=NOW + timedelta(days=7))
        market_repo.lock_market.side_effect = [
            DBAPIError("SELECT ... FOR UPDATE", {}, _Serialization()),
            market,
        ]

        result = await svc.place_bet_amm(db, "user-1", _request("100"))

        assert result.bet.id == "bet-new"
        assert market_repo.lock_market.await_count == 2
        assert bet_repo.create_bet.await_count == 1
        assert ledger_repo.users["user-1"].free_credits_balance == Decimal(900)
        db.rollback.assert_awaited_once()
        db.commit.assert_awaited_once()


class TestSellPosition:
    async def test_sell_credits_purchased_wallet(
        self, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        ledger_repo.add_user("user-1", free=0, purchased=0)
        start = make_market().pool
        bought = cpmm.buy_yes(start, Decimal(100))
        market = make_market(yes=bought.new_pool.yes_reserve, no=bought.new_pool.no_reserve)
        bet = make_bet(amount=100, shares=bought.amount_out, credit_source="free")
        bet_repo = AsyncMock()
        bet_repo.get_bet_for_update.return_value = bet
        bet_repo.settle.side_effect = _settle
        svc, market_repo, _ = _service(ledger_repo, market=market, bet_repo=bet_repo)

        result = await svc.sell_position_amm(db, "user-1", "bet-1")

        assert abs(result.credits_received - Decimal(100)) <= Decimal("0.00001")
        assert result.profit == result.credits_received - Decimal(100)
        assert result.bet.status == "sold"
        assert result.purchased_credits_balance == result.credits_received
        assert ledger_repo.users["user-1"].free_credits_balance == Decimal(0)
        assert bet_repo.settle.await_args.args[2] == "sold"
        assert ledger_repo.transactions[-1].transaction_type == "position_sold"
        market_repo.update_reserves.assert_awaited_once()
        db.commit.assert_awaited_once()

    @pytest.mark.parametrize("bet", [None, make_bet(user_id="someone-else")])
    async def test_missing_or_foreign_bet(
        self, bet: Bet | None, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        bet_repo = AsyncMock()
        bet_repo.get_bet_for_update.return_value = bet
        svc, market_repo, _ = _service(ledger_repo, bet_repo=bet_repo)

        with pytest.raises(BetNotFoundError):
            await svc.sell_position_amm(db, "user-1", "bet-1")

        market_repo.lock_market.assert_not_awaited()
        db.rollback.assert_awaited_once()

    @pytest.mark.parametrize("status", ["sold", "won", "lost", "cancelled"])
    async def test_terminal_bet_cannot_be_sold(
        self, status: str, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        bet_repo = AsyncMock()
        bet_repo.get_bet_for_update.return_value = make_bet(status=status)
        svc, _, _ = _service(ledger_repo, bet_repo=bet_repo)

        with pytest.raises(InvalidBetStateError) as exc_info:
            await svc.sell_position_amm(db, "user-1", "bet-1")

        assert exc_info.value.bet_status == status

    async def test_resolved_market_blocks_sale(
        self, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        bet_repo = AsyncMock()
        bet_repo.get_bet_for_update.return_value = make_bet()
        svc, market_repo, _ = _service(
            ledger_repo, market=make_market(status="resolved", resolution="that"), bet_repo=bet_repo
        )

        with pytest.raises(InvalidBetStateError) as exc_info:
            await svc.sell_position_amm(db, "user-1", "bet-1")

        assert exc_info.value.market_status == "resolved"
        market_repo.update_reserves.assert_not_awaited()


class TestQuote:
    async def test_quote_matches_buy(self, ledger_repo: InMemoryLedgerRepository, db: AsyncMock) -> None:
        svc, _, _ = _service(ledger_repo)

        quote = await svc.get_trade_quote(db, "m1", Decimal(1000), BetSide.THAT)

        assert quote.shares == cpmm.quote_no(make_market().pool, Decimal(1000))
        assert quote.probability_after > quote.probability_before
        assert not quote.requires_purchased_credits
        db.commit.assert_not_awaited()

    async def test_quote_flags_ending_soon(
        self, ledger_repo: InMemoryLedgerRepository, db: AsyncMock
    ) -> None:
        svc, _, _ = _service(ledger_repo, market=make_market(expires_at=NOW + timedelta(hours=1)))

        quote = await svc.get_trade_quote(db, "m1", Decimal(10), BetSide.THIS)

        assert quote.requires_purchased_credits


async def test_list_user_bets_passes_filters(
    ledger_repo: InMemoryLedgerRepository, db: AsyncMock
) -> None:
    bet_repo = AsyncMock()
    bet_repo.list_user_bets.return_value = [make_bet(), make_bet(bet_id="bet-2")]
    svc, _, _ = _service(ledger_repo, bet_repo=bet_repo)

    page = await svc.list_user_bets(db, "user-1", None, "m1", 20, 0)

    assert [b.id for b in page.items] == ["bet-1", "bet-2"]
    bet_repo.list_user_bets.assert_awaited_once_with(db, "user-1", None, "m1", 20, 0)

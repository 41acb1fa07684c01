"""Unit tests for the AppError hierarchy."""

from datetime import UTC, datetime
from decimal import Decimal

from src.pm_common.errors import (
    AdminRequiredError,
    AlreadyClaimedError,
    AppError,
    BetNotFoundError,
    InsufficientBalanceError,
    InvalidBetStateError,
    MarketClosedError,
    MarketNotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    UserNotFoundError,
    ValidationError,
)


def test_all_errors_are_app_errors() -> None:
    errors = [
        AdminRequiredError(),
        AlreadyClaimedError(datetime(2026, 1, 2, tzinfo=UTC)),
        BetNotFoundError("b1"),
        InsufficientBalanceError(Decimal(80), {"free": Decimal(50)}),
        InvalidBetStateError("b1", "sold"),
        MarketClosedError("m1", "closed"),
        MarketNotFoundError("m1"),
        RateLimitError(),
        ServiceUnavailableError("redis down"),
        UserNotFoundError("u1"),
        ValidationError("amount", "must be positive"),
    ]
    assert all(isinstance(e, AppError) for e in errors)
    assert len({e.code for e in errors}) == len(errors)


def test_insufficient_balance_carries_wallets() -> None:
    err = InsufficientBalanceError(
        Decimal(10), {"purchased": Decimal(0)}, ending_soon=True
    )
    assert err.code == 2001
    assert err.http_status == 422
    assert err.required == Decimal(10)
    assert err.available == {"purchased": Decimal(0)}
    assert "purchased=0" in err.message
    assert "ends soon" in err.message


def test_already_claimed_is_conflict() -> None:
    next_at = datetime(2026, 3, 1, tzinfo=UTC)
    err = AlreadyClaimedError(next_at)
    assert err.http_status == 409
    assert err.next_available_at == next_at
    assert "2026-03-01T00:00:00+00:00" in err.message


def test_market_closed_message_for_expired_open_market() -> None:
    expired = datetime(2026, 1, 1, tzinfo=UTC)
    err = MarketClosedError("m1", "open", expired)
    assert "expired" in err.message
    assert MarketClosedError("m1", "resolved").message.endswith("(status=resolved)")


def test_invalid_bet_state_includes_market_status() -> None:
    err = InvalidBetStateError("b1", "pending", "resolved")
    assert err.code == 4006
    assert "market status=resolved" in err.message


def test_validation_error_fields() -> None:
    err = ValidationError("amount", "too small")
    assert (err.field, err.detail, err.code) == ("amount", "too small", 4001)
    assert str(err) == "Invalid amount: too small"

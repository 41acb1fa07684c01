"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Ledger / user credits
  3xxx: Market
  4xxx: Bet / trade
  9xxx: System

Every error aborts its enclosing transaction. HTTP status is a hint for the
router layer; services never look at it.
"""

from datetime import datetime
from decimal import Decimal


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Admin privileges required", 403)


# --- 2xxx: Ledger ---

class InsufficientBalanceError(AppError):
    def __init__(
        self,
        required: Decimal,
        available: dict[str, Decimal],
        ending_soon: bool = False,
    ) -> None:
        self.required = required
        self.available = available
        self.ending_soon = ending_soon
        wallets = ", ".join(f"{name}={amount}" for name, amount in available.items())
        detail = " (market ends soon: purchased credits only)" if ending_soon else ""
        super().__init__(
            2001,
            f"Insufficient balance: required {required} credits, available {wallets}{detail}",
            422,
        )


class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(2002, f"User not found: {user_id}", 404)


class AlreadyClaimedError(AppError):
    def __init__(self, next_available_at: datetime) -> None:
        self.next_available_at = next_available_at
        super().__init__(
            2003,
            f"Daily credits already claimed. Next claim available at {next_available_at.isoformat()}",
            409,
        )


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        self.market_id = market_id
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketClosedError(AppError):
    def __init__(
        self, market_id: str, status: str, expires_at: datetime | None = None
    ) -> None:
        self.market_id = market_id
        self.status = status
        self.expires_at = expires_at
        if status == "open" and expires_at is not None:
            message = f"Market {market_id} expired at {expires_at.isoformat()}"
        else:
            message = f"Market {market_id} is not open (status={status})"
        super().__init__(3002, message, 422)


# --- 4xxx: Bet / trade ---

class ValidationError(AppError):
    def __init__(self, field: str, detail: str) -> None:
        self.field = field
        self.detail = detail
        super().__init__(4001, f"Invalid {field}: {detail}", 422)


class BetNotFoundError(AppError):
    def __init__(self, bet_id: str) -> None:
        self.bet_id = bet_id
        super().__init__(4004, f"Bet not found: {bet_id}", 404)


class InvalidBetStateError(AppError):
    def __init__(self, bet_id: str, bet_status: str, market_status: str | None = None) -> None:
        self.bet_id = bet_id
        self.bet_status = bet_status
        self.market_status = market_status
        suffix = f", market status={market_status}" if market_status else ""
        super().__init__(
            4006,
            f"Bet {bet_id} cannot be sold (status={bet_status}{suffix})",
            422,
        )


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class ServiceUnavailableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, detail, 503)

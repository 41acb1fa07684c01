"""Global enums — must match DB CHECK constraints exactly (see alembic/versions)."""

from enum import Enum


class MarketStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    RESOLVED = "resolved"


class BetSide(str, Enum):
    """'this' is the YES outcome, 'that' the NO outcome."""
    THIS = "this"
    THAT = "that"


class BetStatus(str, Enum):
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    SOLD = "sold"
    CANCELLED = "cancelled"


class Resolution(str, Enum):
    THIS = "this"
    THAT = "that"
    INVALID = "invalid"


class Wallet(str, Enum):
    FREE = "free"
    PURCHASED = "purchased"


class TransactionType(str, Enum):
    BET_PLACED = "bet_placed"
    POSITION_SOLD = "position_sold"
    BET_PAYOUT = "bet_payout"
    BET_REFUND = "bet_refund"
    DAILY_REWARD = "daily_reward"
    CREDIT_PURCHASE = "credit_purchase"

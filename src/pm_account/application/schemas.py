"""Pydantic schemas and cursor utilities for pm_account API."""

import base64
import json
from decimal import Decimal

from pydantic import BaseModel, Field

from src.pm_account.domain.models import CreditTransaction, UserLedger
from src.pm_common.credits import credits_to_display

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PurchaseCreditsRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=20, decimal_places=6)
    reference_id: str = Field(..., min_length=1, max_length=64, description="Payment capture id")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    free_credits_balance: Decimal
    purchased_credits_balance: Decimal
    available_credits: Decimal
    available_credits_display: str
    expended_credits: Decimal
    consecutive_days_online: int

    @classmethod
    def from_ledger(cls, ledger: UserLedger) -> "BalanceResponse":
        return cls(
            user_id=ledger.user_id,
            free_credits_balance=ledger.free_credits_balance,
            purchased_credits_balance=ledger.purchased_credits_balance,
            available_credits=ledger.available_credits,
            available_credits_display=credits_to_display(ledger.available_credits),
            expended_credits=ledger.expended_credits,
            consecutive_days_online=ledger.consecutive_days_online,
        )


class PurchaseCreditsResponse(BaseModel):
    purchased_credits_balance: Decimal
    available_credits: Decimal
    purchased: Decimal
    transaction_id: int


class TransactionItem(BaseModel):
    id: int
    amount: Decimal
    amount_display: str
    transaction_type: str
    reference_id: str | None
    balance_after: Decimal
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, tx: CreditTransaction) -> "TransactionItem":
        return cls(
            id=tx.id,
            amount=tx.amount,
            amount_display=credits_to_display(tx.amount),
            transaction_type=tx.transaction_type,
            reference_id=tx.reference_id,
            balance_after=tx.balance_after,
            created_at=tx.created_at.isoformat() if tx.created_at else "",
        )


class TransactionListResponse(BaseModel):
    items: list[TransactionItem]
    next_cursor: str | None
    has_more: bool

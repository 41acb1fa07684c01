"""Domain models for pm_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.pm_common.enums import Wallet


@dataclass
class UserLedger:
    user_id: str
    free_credits_balance: Decimal
    purchased_credits_balance: Decimal
    available_credits: Decimal          # == free + purchased
    expended_credits: Decimal
    total_volume: Decimal
    overall_pnl: Decimal
    last_daily_reward_at: datetime | None
    consecutive_days_online: int
    updated_at: datetime | None = None

    def wallet_balance(self, wallet: Wallet) -> Decimal:
        if wallet == Wallet.FREE:
            return self.free_credits_balance
        return self.purchased_credits_balance

    @property
    def is_consistent(self) -> bool:
        return (
            self.available_credits == self.free_credits_balance + self.purchased_credits_balance
            and self.free_credits_balance >= 0
            and self.purchased_credits_balance >= 0
        )


@dataclass
class CreditTransaction:
    id: int                          # BIGSERIAL
    user_id: str
    amount: Decimal                  # positive=income negative=expense
    transaction_type: str            # TransactionType value
    balance_after: Decimal           # available_credits snapshot after op
    reference_id: str | None = None
    created_at: datetime | None = None


@dataclass
class DebitResult:
    ledger: UserLedger
    wallet: Wallet

"""Repository Protocol — dependency inversion for testability.

Unit tests inject a fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import CreditTransaction, UserLedger
from src.pm_common.enums import Wallet


class LedgerRepositoryProtocol(Protocol):
    async def get_ledger(
        self, db: AsyncSession, user_id: str
    ) -> UserLedger | None: ...

    async def debit_wallet(
        self, db: AsyncSession, user_id: str, wallet: Wallet, amount: Decimal
    ) -> UserLedger | None: ...

    async def credit_wallet(
        self,
        db: AsyncSession,
        user_id: str,
        wallet: Wallet,
        amount: Decimal,
        pnl_delta: Decimal,
    ) -> UserLedger | None: ...

    async def claim_daily_reward(
        self,
        db: AsyncSession,
        user_id: str,
        observed_last_reward_at: datetime | None,
        claimed_at: datetime,
        consecutive_days: int,
        credits: Decimal,
    ) -> UserLedger | None: ...

    async def append_transaction(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        transaction_type: str,
        reference_id: str | None,
        balance_after: Decimal,
    ) -> CreditTransaction: ...

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        transaction_type: str | None,
    ) -> list[CreditTransaction]: ...

    async def list_claimable_user_ids(
        self, db: AsyncSession, before: datetime
    ) -> list[str]: ...

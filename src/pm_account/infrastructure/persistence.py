"""LedgerRepository — concrete implementation of LedgerRepositoryProtocol.

Every balance mutation goes through conditional_write: one UPDATE whose
WHERE clause carries the business guard (balance >= amount, or the daily
claim marker unchanged). None means the guard failed and nothing changed.

Transaction ownership: The CALLER (application service) is responsible for
starting and committing the transaction.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import CreditTransaction, UserLedger
from src.pm_account.infrastructure.db_models import UserORM
from src.pm_common.conditional_write import conditional_write
from src.pm_common.enums import Wallet
from src.pm_common.errors import InternalError

_WALLET_COLUMNS: dict[Wallet, Any] = {
    Wallet.FREE: UserORM.free_credits_balance,
    Wallet.PURCHASED: UserORM.purchased_credits_balance,
}

_LEDGER_RETURNING = (
    UserORM.id.label("user_id"),
    UserORM.free_credits_balance,
    UserORM.purchased_credits_balance,
    UserORM.available_credits,
    UserORM.expended_credits,
    UserORM.total_volume,
    UserORM.overall_pnl,
    UserORM.last_daily_reward_at,
    UserORM.consecutive_days_online,
    UserORM.updated_at,
)

# ---------------------------------------------------------------------------
# SQL: reads and append-only audit log
# ---------------------------------------------------------------------------

_GET_LEDGER_SQL = text("""
    SELECT id AS user_id,
           free_credits_balance, purchased_credits_balance,
           available_credits, expended_credits,
           total_volume, overall_pnl,
           last_daily_reward_at, consecutive_days_online, updated_at
    FROM users
    WHERE id = :user_id
""")

_INSERT_TRANSACTION_SQL = text("""
    INSERT INTO credit_transactions
        (user_id, amount, transaction_type, reference_id, balance_after)
    VALUES
        (:user_id, :amount, :transaction_type, :reference_id, :balance_after)
    RETURNING id, user_id, amount, transaction_type, reference_id, balance_after, created_at
""")

_LIST_TRANSACTIONS_SQL = text("""
    SELECT id, user_id, amount, transaction_type, reference_id, balance_after, created_at
    FROM credit_transactions
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
      AND (CAST(:transaction_type AS TEXT) IS NULL
           OR transaction_type = CAST(:transaction_type AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_CLAIMABLE_SQL = text("""
    SELECT id
    FROM users
    WHERE last_daily_reward_at IS NULL OR last_daily_reward_at < :before
    ORDER BY id
""")


def _row_to_ledger(row: object) -> UserLedger:
    return UserLedger(
        user_id=row.user_id,  # type: ignore[attr-defined]
        free_credits_balance=Decimal(row.free_credits_balance),  # type: ignore[attr-defined]
        purchased_credits_balance=Decimal(row.purchased_credits_balance),  # type: ignore[attr-defined]
        available_credits=Decimal(row.available_credits),  # type: ignore[attr-defined]
        expended_credits=Decimal(row.expended_credits),  # type: ignore[attr-defined]
        total_volume=Decimal(row.total_volume),  # type: ignore[attr-defined]
        overall_pnl=Decimal(row.overall_pnl),  # type: ignore[attr-defined]
        last_daily_reward_at=row.last_daily_reward_at,  # type: ignore[attr-defined]
        consecutive_days_online=row.consecutive_days_online,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_transaction(row: object) -> CreditTransaction:
    return CreditTransaction(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        amount=Decimal(row.amount),  # type: ignore[attr-defined]
        transaction_type=row.transaction_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        balance_after=Decimal(row.balance_after),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class LedgerRepository:
    """Concrete repository — every mutation is one guarded UPDATE ... RETURNING."""

    async def get_ledger(
        self, db: AsyncSession, user_id: str
    ) -> UserLedger | None:
        result = await db.execute(_GET_LEDGER_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_ledger(row) if row else None

    async def debit_wallet(
        self, db: AsyncSession, user_id: str, wallet: Wallet, amount: Decimal
    ) -> UserLedger | None:
        column = _WALLET_COLUMNS[wallet]
        outcome = await conditional_write(
            db,
            UserORM,
            predicate=(UserORM.id == user_id) & (column >= amount),
            mutation={
                column.key: column - amount,
                "available_credits": UserORM.available_credits - amount,
                "expended_credits": UserORM.expended_credits + amount,
                "total_volume": UserORM.total_volume + amount,
                "updated_at": func.now(),
            },
            returning=_LEDGER_RETURNING,
        )
        return _row_to_ledger(outcome.row) if outcome.applied else None

    async def credit_wallet(
        self,
        db: AsyncSession,
        user_id: str,
        wallet: Wallet,
        amount: Decimal,
        pnl_delta: Decimal,
    ) -> UserLedger | None:
        column = _WALLET_COLUMNS[wallet]
        outcome = await conditional_write(
            db,
            UserORM,
            predicate=UserORM.id == user_id,
            mutation={
                column.key: column + amount,
                "available_credits": UserORM.available_credits + amount,
                "overall_pnl": UserORM.overall_pnl + pnl_delta,
                "updated_at": func.now(),
            },
            returning=_LEDGER_RETURNING,
        )
        return _row_to_ledger(outcome.row) if outcome.applied else None

    async def claim_daily_reward(
        self,
        db: AsyncSession,
        user_id: str,
        observed_last_reward_at: datetime | None,
        claimed_at: datetime,
        consecutive_days: int,
        credits: Decimal,
    ) -> UserLedger | None:
        if observed_last_reward_at is None:
            unchanged = UserORM.last_daily_reward_at.is_(None)
        else:
            unchanged = UserORM.last_daily_reward_at == observed_last_reward_at
        outcome = await conditional_write(
            db,
            UserORM,
            predicate=(UserORM.id == user_id) & unchanged,
            mutation={
                "free_credits_balance": UserORM.free_credits_balance + credits,
                "available_credits": UserORM.available_credits + credits,
                "last_daily_reward_at": claimed_at,
                "consecutive_days_online": consecutive_days,
                "updated_at": func.now(),
            },
            returning=_LEDGER_RETURNING,
        )
        return _row_to_ledger(outcome.row) if outcome.applied else None

    async def append_transaction(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        transaction_type: str,
        reference_id: str | None,
        balance_after: Decimal,
    ) -> CreditTransaction:
        result = await db.execute(
            _INSERT_TRANSACTION_SQL,
            {
                "user_id": user_id,
                "amount": amount,
                "transaction_type": transaction_type,
                "reference_id": reference_id,
                "balance_after": balance_after,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Credit transaction insert returned no rows")
        return _row_to_transaction(row)

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        transaction_type: str | None,
    ) -> list[CreditTransaction]:
        result = await db.execute(
            _LIST_TRANSACTIONS_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "transaction_type": transaction_type,
                "limit": limit,
            },
        )
        return [_row_to_transaction(row) for row in result.fetchall()]

    async def list_claimable_user_ids(
        self, db: AsyncSession, before: datetime
    ) -> list[str]:
        result = await db.execute(_LIST_CLAIMABLE_SQL, {"before": before})
        return [row.id for row in result.fetchall()]

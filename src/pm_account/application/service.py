"""LedgerApplicationService — dual-wallet credit ledger.

Two kinds of methods:
  * Units of work (purchase_credits) open and commit their own transaction.
  * Building blocks (debit_for_trade, credit, record) run inside the caller's
    transaction so a trade's debit, pool update and bet insert commit together.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.schemas import (
    BalanceResponse,
    PurchaseCreditsResponse,
    TransactionItem,
    TransactionListResponse,
    cursor_decode,
    cursor_encode,
)
from src.pm_account.domain.models import CreditTransaction, DebitResult, UserLedger
from src.pm_account.domain.repository import LedgerRepositoryProtocol
from src.pm_account.domain.wallet_policy import eligible_wallets
from src.pm_account.infrastructure.persistence import LedgerRepository
from src.pm_common.enums import TransactionType, Wallet
from src.pm_common.errors import InsufficientBalanceError, UserNotFoundError, ValidationError

logger = logging.getLogger(__name__)


class LedgerApplicationService:
    def __init__(self, repo: LedgerRepositoryProtocol | None = None) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_ledger(self, db: AsyncSession, user_id: str) -> UserLedger:
        ledger = await self._repo.get_ledger(db, user_id)
        if ledger is None:
            raise UserNotFoundError(user_id)
        return ledger

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        return BalanceResponse.from_ledger(await self.get_ledger(db, user_id))

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        transaction_type: str | None,
    ) -> TransactionListResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        rows = await self._repo.list_transactions(
            db, user_id, cursor_id, limit + 1, transaction_type
        )
        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return TransactionListResponse(
            items=[TransactionItem.from_domain(tx) for tx in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    # ------------------------------------------------------------------
    # Building blocks (caller owns the transaction)
    # ------------------------------------------------------------------

    async def debit_for_trade(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        ending_soon: bool,
    ) -> DebitResult:
        """Debit exactly one eligible wallet, trying them in policy order.

        Each attempt is a guarded UPDATE; a failed guard leaves the row
        untouched. If no wallet covers the whole amount nothing is debited.
        """
        if amount <= 0:
            raise ValidationError("amount", f"must be positive, got {amount}")
        wallets = eligible_wallets(ending_soon)
        for wallet in wallets:
            ledger = await self._repo.debit_wallet(db, user_id, wallet, amount)
            if ledger is not None:
                logger.debug("Debited %s from %s wallet of user=%s", amount, wallet.value, user_id)
                return DebitResult(ledger=ledger, wallet=wallet)

        current = await self._repo.get_ledger(db, user_id)
        if current is None:
            raise UserNotFoundError(user_id)
        available = {w.value: current.wallet_balance(w) for w in wallets}
        logger.info(
            "Insufficient balance: user=%s required=%s available=%s ending_soon=%s",
            user_id,
            amount,
            available,
            ending_soon,
        )
        raise InsufficientBalanceError(amount, available, ending_soon=ending_soon)

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        wallet: Wallet,
        amount: Decimal,
        pnl_delta: Decimal = Decimal(0),
    ) -> UserLedger:
        ledger = await self._repo.credit_wallet(db, user_id, wallet, amount, pnl_delta)
        if ledger is None:
            raise UserNotFoundError(user_id)
        return ledger

    async def record(
        self,
        db: AsyncSession,
        ledger: UserLedger,
        amount: Decimal,
        transaction_type: TransactionType,
        reference_id: str | None,
    ) -> CreditTransaction:
        """Append an audit row; balance_after is the post-operation available_credits."""
        return await self._repo.append_transaction(
            db,
            ledger.user_id,
            amount,
            transaction_type.value,
            reference_id,
            ledger.available_credits,
        )

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------

    async def purchase_credits(
        self, db: AsyncSession, user_id: str, amount: Decimal, reference_id: str
    ) -> PurchaseCreditsResponse:
        """Book a captured payment into the purchased wallet."""
        if amount <= 0:
            raise ValidationError("amount", f"must be positive, got {amount}")
        try:
            ledger = await self.credit(db, user_id, Wallet.PURCHASED, amount)
            tx = await self.record(
                db, ledger, amount, TransactionType.CREDIT_PURCHASE, reference_id
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Credits purchased: user=%s amount=%s ref=%s", user_id, amount, reference_id)
        return PurchaseCreditsResponse(
            purchased_credits_balance=ledger.purchased_credits_balance,
            available_credits=ledger.available_credits,
            purchased=amount,
            transaction_id=tx.id,
        )

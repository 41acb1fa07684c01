"""DailyAllocationService — daily free-credit claims with login streaks.

A claim is one transaction: guarded ledger update (free wallet, streak,
last_daily_reward_at) + credit transaction + daily reward record. The
guard compares last_daily_reward_at with the value read at the start, so
two concurrent claims for the same user cannot both succeed.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.repository import LedgerRepositoryProtocol
from src.pm_account.infrastructure.persistence import LedgerRepository
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import TransactionType
from src.pm_common.errors import AlreadyClaimedError, UserNotFoundError
from src.pm_rewards.application.schemas import DailyClaimResponse, DailyStatusResponse
from src.pm_rewards.domain.repository import DailyRewardRepositoryProtocol
from src.pm_rewards.domain.streak import calculate_daily_credits, evaluate_daily_claim
from src.pm_rewards.infrastructure.persistence import DailyRewardRepository

logger = logging.getLogger(__name__)


class DailyAllocationService:
    def __init__(
        self,
        ledger_repo: LedgerRepositoryProtocol | None = None,
        reward_repo: DailyRewardRepositoryProtocol | None = None,
        clock=utc_now,
    ) -> None:
        self._ledger_repo: LedgerRepositoryProtocol = ledger_repo or LedgerRepository()
        self._reward_repo: DailyRewardRepositoryProtocol = reward_repo or DailyRewardRepository()
        self._clock = clock

    async def process_daily_credit_allocation(
        self, db: AsyncSession, user_id: str
    ) -> DailyClaimResponse:
        """Award today's credits or raise AlreadyClaimedError. No partial writes."""
        try:
            ledger = await self._ledger_repo.get_ledger(db, user_id)
            if ledger is None:
                raise UserNotFoundError(user_id)

            now = self._clock()
            decision = evaluate_daily_claim(
                now, ledger.last_daily_reward_at, ledger.consecutive_days_online
            )
            if decision.already_claimed:
                raise AlreadyClaimedError(decision.next_available_at)

            updated = await self._ledger_repo.claim_daily_reward(
                db,
                user_id,
                observed_last_reward_at=ledger.last_daily_reward_at,
                claimed_at=now,
                consecutive_days=decision.consecutive_days,
                credits=decision.credits_awarded,
            )
            if updated is None:
                # Another claim committed between our read and our write.
                raise AlreadyClaimedError(decision.next_available_at)

            await self._ledger_repo.append_transaction(
                db,
                user_id,
                decision.credits_awarded,
                TransactionType.DAILY_REWARD.value,
                None,
                updated.available_credits,
            )
            await self._reward_repo.record_claim(
                db, user_id, decision.credits_awarded, decision.consecutive_days, now
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Daily credits awarded: user=%s day=%d credits=%s",
            user_id,
            decision.consecutive_days,
            decision.credits_awarded,
        )
        return DailyClaimResponse(
            credits_awarded=decision.credits_awarded,
            consecutive_days=decision.consecutive_days,
            next_available_at=decision.next_available_at,
            free_credits_balance=updated.free_credits_balance,
            available_credits=updated.available_credits,
        )

    async def get_daily_status(self, db: AsyncSession, user_id: str) -> DailyStatusResponse:
        ledger = await self._ledger_repo.get_ledger(db, user_id)
        if ledger is None:
            raise UserNotFoundError(user_id)
        now = self._clock()
        decision = evaluate_daily_claim(
            now, ledger.last_daily_reward_at, ledger.consecutive_days_online
        )
        if decision.already_claimed:
            # Tomorrow's claim continues today's streak.
            return DailyStatusResponse(
                can_claim=False,
                consecutive_days=ledger.consecutive_days_online,
                next_claim_credits=calculate_daily_credits(
                    max(ledger.consecutive_days_online, 0) + 1
                ),
                next_available_at=decision.next_available_at,
                last_daily_reward_at=ledger.last_daily_reward_at,
            )
        return DailyStatusResponse(
            can_claim=True,
            consecutive_days=ledger.consecutive_days_online,
            next_claim_credits=decision.credits_awarded,
            next_available_at=now,
            last_daily_reward_at=ledger.last_daily_reward_at,
        )

"""Nightly batch: award daily credits to every user not yet served today.

Each user is processed in its own session and transaction; one failure is
logged and counted, never fatal to the batch.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.pm_account.domain.repository import LedgerRepositoryProtocol
from src.pm_account.infrastructure.persistence import LedgerRepository
from src.pm_common.datetime_utils import utc_midnight, utc_now
from src.pm_common.errors import AlreadyClaimedError
from src.pm_rewards.application.service import DailyAllocationService

logger = logging.getLogger(__name__)


@dataclass
class DailyAllocationSummary:
    eligible: int = 0
    awarded: int = 0
    skipped: int = 0
    errors: int = 0
    credits_total: Decimal = Decimal(0)


async def run_daily_allocation(
    session_factory: async_sessionmaker[AsyncSession],
    service: DailyAllocationService,
    ledger_repo: LedgerRepositoryProtocol | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> DailyAllocationSummary:
    repo = ledger_repo or LedgerRepository()
    started = time.perf_counter()
    cutoff = utc_midnight(clock())

    async with session_factory() as db:
        user_ids = await repo.list_claimable_user_ids(db, cutoff)

    summary = DailyAllocationSummary(eligible=len(user_ids))
    logger.info("Daily allocation started: %d eligible users", summary.eligible)

    for user_id in user_ids:
        try:
            async with session_factory() as db:
                result = await service.process_daily_credit_allocation(db, user_id)
        except AlreadyClaimedError:
            summary.skipped += 1
        except Exception:
            summary.errors += 1
            logger.exception("Daily allocation failed for user=%s", user_id)
        else:
            summary.awarded += 1
            summary.credits_total += result.credits_awarded

    logger.info(
        "Daily allocation finished in %.1fs: awarded=%d skipped=%d errors=%d credits=%s",
        time.perf_counter() - started,
        summary.awarded,
        summary.skipped,
        summary.errors,
        summary.credits_total,
    )
    return summary

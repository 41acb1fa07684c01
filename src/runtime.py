"""PlatformRuntime — owns every process-wide resource.

Engine, session factory, Redis client, scheduler and the application
services are created together from one Settings object, started in the
FastAPI lifespan and torn down in reverse order. Nothing is created at
import time, so tests can build a runtime from their own settings.
"""

import logging
from datetime import timedelta, timezone
from decimal import Decimal

import redis.asyncio as aioredis
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from config.settings import Settings
from src.pm_account.application.service import LedgerApplicationService
from src.pm_betting.application.service import BettingApplicationService
from src.pm_common.database import create_engine, create_session_factory
from src.pm_gateway.middleware.rate_limit import FixedWindowRateLimiter
from src.pm_market.application.resolution import MarketResolutionService
from src.pm_market.application.service import MarketApplicationService
from src.pm_rewards.application.job import DailyAllocationSummary, run_daily_allocation
from src.pm_rewards.application.service import DailyAllocationService

logger = logging.getLogger(__name__)

DAILY_ALLOCATION_JOB_ID = "daily_credit_allocation"


class PlatformRuntime:
    def __init__(
        self,
        settings: Settings,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession],
        redis: aioredis.Redis,
    ) -> None:
        self.settings = settings
        self.engine = engine
        self.session_factory = session_factory
        self.redis = redis
        self.scheduler: AsyncIOScheduler | None = None

        self.rate_limiter = FixedWindowRateLimiter(
            redis,
            limit=settings.RATE_LIMIT_PER_MINUTE,
            fail_open=settings.RATE_LIMIT_FAIL_OPEN,
        )
        self.ledger_service = LedgerApplicationService()
        self.market_service = MarketApplicationService(
            default_liquidity=Decimal(settings.DEFAULT_POOL_LIQUIDITY)
        )
        self.betting_service = BettingApplicationService(
            ledger=self.ledger_service,
            min_bet_amount=Decimal(settings.MIN_BET_AMOUNT),
            max_bet_amount=Decimal(settings.MAX_BET_AMOUNT),
            ending_soon_threshold=timedelta(hours=settings.ENDING_SOON_HOURS),
            retry_attempts=settings.TRADE_RETRY_ATTEMPTS,
            retry_delay_ms=settings.TRADE_RETRY_DELAY_MS,
        )
        self.resolution_service = MarketResolutionService(ledger=self.ledger_service)
        self.rewards_service = DailyAllocationService()

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlatformRuntime":
        engine = create_engine(settings)
        return cls(
            settings=settings,
            engine=engine,
            session_factory=create_session_factory(engine),
            redis=aioredis.from_url(settings.REDIS_URL, decode_responses=True),
        )

    async def start(self) -> None:
        """Verify DB + Redis connections and start the nightly scheduler."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        try:
            await self.redis.ping()
        except RedisError as exc:
            if not self.settings.RATE_LIMIT_FAIL_OPEN:
                raise
            logger.warning("Redis unreachable at startup, rate limiting fails open: %s", exc)

        if self.settings.DAILY_ALLOCATION_SCHEDULER_ENABLED:
            self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
            self.scheduler.add_job(
                self.run_daily_allocation,
                trigger=CronTrigger(hour=0, minute=0, timezone=timezone.utc),
                id=DAILY_ALLOCATION_JOB_ID,
                name="Daily credit allocation",
                replace_existing=True,
                max_instances=1,  # Prevent overlapping runs
                coalesce=True,
            )
            self.scheduler.start()
            logger.info("Scheduler started: daily allocation at 00:00 UTC")
        logger.info("Runtime started: %s", self.settings.APP_NAME)

    async def run_daily_allocation(self) -> DailyAllocationSummary:
        return await run_daily_allocation(self.session_factory, self.rewards_service)

    async def shutdown(self) -> None:
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None
        await self.redis.aclose()
        await self.engine.dispose()
        logger.info("Runtime stopped")

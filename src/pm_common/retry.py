"""Retry-on-write-conflict for transactional units of work.

Only the whole transaction is retried, and only for Postgres serialization
failures (40001) and deadlocks (40P01). Business errors (AppError) propagate
immediately. The callable must open and close its own transaction.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import DBAPIError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def is_write_conflict(exc: BaseException) -> bool:
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _RETRYABLE_SQLSTATES:
        return True
    text = str(orig).lower()
    return "deadlock" in text or "could not serialize" in text


async def retry_on_conflict(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 2,
    initial_delay_ms: int = 500,
) -> T:
    """Run `operation`, retrying with exponential backoff on write conflicts."""
    attempt = 0
    while True:
        try:
            return await operation()
        except DBAPIError as exc:
            if attempt >= max_retries or not is_write_conflict(exc):
                raise
            delay = initial_delay_ms * (2**attempt) / 1000
            attempt += 1
            logger.warning(
                "Write conflict, retrying (%d/%d) in %.2fs: %s",
                attempt,
                max_retries,
                delay,
                exc.orig,
            )
            await asyncio.sleep(delay)

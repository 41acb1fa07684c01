"""Unit-test fixtures."""

from unittest.mock import AsyncMock

import pytest

from tests.unit.factories import InMemoryLedgerRepository


@pytest.fixture
def ledger_repo() -> InMemoryLedgerRepository:
    return InMemoryLedgerRepository()


@pytest.fixture
def db() -> AsyncMock:
    """Session stand-in: commit/rollback are recorded, execute is never reached."""
    return AsyncMock()

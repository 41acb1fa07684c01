"""Unit tests for the conditional_write primitive (SQL shape + outcome)."""

from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.dialects import postgresql

from src.pm_account.infrastructure.db_models import UserORM
from src.pm_common.conditional_write import WriteOutcome, conditional_write


def _compiled(db: AsyncMock) -> str:
    stmt = db.execute.call_args.args[0]
    return str(stmt.compile(dialect=postgresql.dialect()))


async def test_guard_and_mutation_in_one_statement() -> None:
    db = AsyncMock()
    result = MagicMock()
    result.fetchall.return_value = [MagicMock(free_credits_balance=20)]
    db.execute.return_value = result

    outcome = await conditional_write(
        db,
        UserORM,
        predicate=(UserORM.id == "u1") & (UserORM.free_credits_balance >= 80),
        mutation={"free_credits_balance": UserORM.free_credits_balance - 80},
        returning=(UserORM.free_credits_balance,),
    )

    sql = _compiled(db)
    assert sql.startswith("UPDATE users SET free_credits_balance=")
    assert "WHERE users.id = " in sql
    assert "users.free_credits_balance >= " in sql
    assert "RETURNING users.free_credits_balance" in sql
    assert db.execute.await_count == 1
    assert outcome.applied
    assert outcome.row.free_credits_balance == 20


async def test_failed_guard_reports_not_applied() -> None:
    db = AsyncMock()
    result = MagicMock()
    result.fetchall.return_value = []
    db.execute.return_value = result

    outcome = await conditional_write(
        db,
        UserORM,
        predicate=UserORM.id == "u1",
        mutation={"consecutive_days_online": 1},
        returning=(UserORM.id,),
    )

    assert outcome == WriteOutcome(affected_rows=0, row=None)
    assert not outcome.applied


async def test_without_returning_uses_rowcount() -> None:
    db = AsyncMock()
    result = MagicMock()
    result.rowcount = 1
    db.execute.return_value = result

    outcome = await conditional_write(
        db, UserORM, predicate=UserORM.id == "u1", mutation={"consecutive_days_online": 0}
    )

    assert outcome.affected_rows == 1
    assert outcome.row is None
    assert "RETURNING" not in _compiled(db)

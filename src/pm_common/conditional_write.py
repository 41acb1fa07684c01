"""conditional_write — the single "UPDATE ... WHERE <guard>" primitive.

Used identically for wallet debits (guard: balance >= amount) and daily-claim
guards (guard: last_daily_reward_at unchanged since it was read). The guard and
the mutation execute as one SQL statement, so there is no window between
check and write. affected_rows == 0 means the guard did not hold.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement, update
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class WriteOutcome:
    affected_rows: int
    row: Any | None = None

    @property
    def applied(self) -> bool:
        return self.affected_rows > 0


async def conditional_write(
    db: AsyncSession,
    target: Any,
    predicate: ColumnElement[bool],
    mutation: Mapping[str, Any],
    returning: Sequence[Any] = (),
) -> WriteOutcome:
    """Apply `mutation` to rows of `target` matching `predicate`.

    With `returning` columns, the first updated row is handed back so callers
    can read post-update balances without a second round trip.
    """
    stmt = update(target).where(predicate).values(**mutation)
    if returning:
        result = await db.execute(stmt.returning(*returning))
        rows = result.fetchall()
        return WriteOutcome(affected_rows=len(rows), row=rows[0] if rows else None)
    result = await db.execute(stmt)
    return WriteOutcome(affected_rows=result.rowcount or 0)

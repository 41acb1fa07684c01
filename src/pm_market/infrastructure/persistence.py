"""MarketRepository — concrete implementation of MarketRepositoryProtocol.

Reserves are only ever written while the row is held by `lock_market`
(SELECT ... FOR UPDATE), so concurrent trades on one market serialise on
the pool row and never price off stale reserves.

Transaction ownership: the CALLER opens and commits the transaction.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_amm.domain.models import Pool
from src.pm_common.errors import InternalError
from src.pm_market.domain.models import Market

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_MARKET_COLUMNS = """
    id, title, status, expires_at,
    yes_reserve, no_reserve, fee_bps, volume,
    resolution, resolved_at, created_at, updated_at
"""

_GET_MARKET_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE id = :market_id
""")

_LOCK_MARKET_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE id = :market_id
    FOR UPDATE
""")

_UPDATE_RESERVES_SQL = text("""
    UPDATE markets
    SET yes_reserve = :yes_reserve,
        no_reserve  = :no_reserve,
        volume      = volume + :volume_delta,
        updated_at  = NOW()
    WHERE id = :market_id
""")

_INSERT_MARKET_SQL = text(f"""
    INSERT INTO markets (id, title, status, expires_at, yes_reserve, no_reserve, fee_bps)
    VALUES (:id, :title, 'open', :expires_at, :yes_reserve, :no_reserve, :fee_bps)
    RETURNING {_MARKET_COLUMNS}
""")

_LIST_MARKETS_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
           OR (created_at, id) < (CAST(:cursor_ts AS TIMESTAMPTZ), CAST(:cursor_id AS TEXT)))
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_TRANSITION_STATUS_SQL = text(f"""
    UPDATE markets
    SET status      = :to_status,
        resolution  = COALESCE(:resolution, resolution),
        resolved_at = COALESCE(:resolved_at, resolved_at),
        updated_at  = NOW()
    WHERE id = :market_id AND status = :from_status
    RETURNING {_MARKET_COLUMNS}
""")


def _row_to_market(row: object) -> Market:
    return Market(
        id=row.id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        expires_at=row.expires_at,  # type: ignore[attr-defined]
        yes_reserve=Decimal(row.yes_reserve),  # type: ignore[attr-defined]
        no_reserve=Decimal(row.no_reserve),  # type: ignore[attr-defined]
        fee_bps=row.fee_bps,  # type: ignore[attr-defined]
        volume=Decimal(row.volume),  # type: ignore[attr-defined]
        resolution=row.resolution,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class MarketRepository:
    """Concrete repository — raw SQL, caller-owned transactions."""

    async def get_market_by_id(
        self, db: AsyncSession, market_id: str
    ) -> Market | None:
        result = await db.execute(_GET_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]:
        # asyncpg requires a real datetime for TIMESTAMPTZ parameters
        cursor_ts_dt: datetime | None = None
        if cursor_ts is not None:
            cursor_ts_dt = datetime.fromisoformat(cursor_ts)

        result = await db.execute(
            _LIST_MARKETS_SQL,
            {
                "status": status,
                "cursor_ts": cursor_ts_dt,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_market(row) for row in result.fetchall()]

    async def lock_market(
        self, db: AsyncSession, market_id: str
    ) -> Market | None:
        result = await db.execute(_LOCK_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def update_reserves(
        self, db: AsyncSession, market_id: str, pool: Pool, volume_delta: Decimal
    ) -> None:
        result = await db.execute(
            _UPDATE_RESERVES_SQL,
            {
                "market_id": market_id,
                "yes_reserve": pool.yes_reserve,
                "no_reserve": pool.no_reserve,
                "volume_delta": volume_delta,
            },
        )
        if result.rowcount == 0:
            raise InternalError(f"Reserve update matched no market row: {market_id}")

    async def create_market(
        self,
        db: AsyncSession,
        title: str,
        expires_at: datetime | None,
        pool: Pool,
        fee_bps: int,
    ) -> Market:
        result = await db.execute(
            _INSERT_MARKET_SQL,
            {
                "id": str(uuid.uuid4()),
                "title": title,
                "expires_at": expires_at,
                "yes_reserve": pool.yes_reserve,
                "no_reserve": pool.no_reserve,
                "fee_bps": fee_bps,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Market insert returned no rows")
        return _row_to_market(row)

    async def transition_status(
        self,
        db: AsyncSession,
        market_id: str,
        from_status: str,
        to_status: str,
        resolution: str | None,
        resolved_at: datetime | None,
    ) -> Market | None:
        result = await db.execute(
            _TRANSITION_STATUS_SQL,
            {
                "market_id": market_id,
                "from_status": from_status,
                "to_status": to_status,
                "resolution": resolution,
                "resolved_at": resolved_at,
            },
        )
        row = result.fetchone()
        return _row_to_market(row) if row else None

"""BetRepository — concrete implementation of BetRepositoryProtocol.

Status changes are guarded on `status = 'pending'`, so a bet leaves the
pending state exactly once even if a sell and a settlement race.

Transaction ownership: The CALLER (application service) is responsible for
starting and committing the transaction.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_betting.domain.models import Bet
from src.pm_common.errors import InternalError

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_BET_COLUMNS = """
    id, user_id, market_id, side, amount, shares, credit_source,
    price_at_bet, status, actual_payout, idempotency_key,
    created_at, resolved_at
"""

_INSERT_BET_SQL = text(f"""
    INSERT INTO bets
        (id, user_id, market_id, side, amount, shares, credit_source,
         price_at_bet, status, idempotency_key)
    VALUES
        (:id, :user_id, :market_id, :side, :amount, :shares, :credit_source,
         :price_at_bet, 'pending', :idempotency_key)
    RETURNING {_BET_COLUMNS}
""")

_FIND_BY_IDEMPOTENCY_KEY_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE user_id = :user_id AND idempotency_key = :idempotency_key
""")

_GET_BET_FOR_UPDATE_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE id = :bet_id
    FOR UPDATE
""")

_SETTLE_BET_SQL = text(f"""
    UPDATE bets
    SET status        = :to_status,
        actual_payout = :actual_payout,
        resolved_at   = :resolved_at
    WHERE id = :bet_id AND status = 'pending'
    RETURNING {_BET_COLUMNS}
""")

_LIST_PENDING_FOR_MARKET_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE market_id = :market_id AND status = 'pending'
    ORDER BY created_at, id
""")

_LIST_USER_BETS_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE user_id = :user_id
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:market_id AS TEXT) IS NULL OR market_id = CAST(:market_id AS TEXT))
    ORDER BY created_at DESC, id DESC
    LIMIT :limit OFFSET :offset
""")


def _row_to_bet(row: object) -> Bet:
    payout = row.actual_payout  # type: ignore[attr-defined]
    return Bet(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        side=row.side,  # type: ignore[attr-defined]
        amount=Decimal(row.amount),  # type: ignore[attr-defined]
        shares=Decimal(row.shares),  # type: ignore[attr-defined]
        credit_source=row.credit_source,  # type: ignore[attr-defined]
        price_at_bet=Decimal(row.price_at_bet),  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        actual_payout=Decimal(payout) if payout is not None else None,
        idempotency_key=row.idempotency_key,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
    )


class BetRepository:
    """Concrete repository — raw SQL, caller-owned transactions."""

    async def create_bet(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str,
        side: str,
        amount: Decimal,
        shares: Decimal,
        credit_source: str,
        price_at_bet: Decimal,
        idempotency_key: str | None,
    ) -> Bet:
        result = await db.execute(
            _INSERT_BET_SQL,
            {
                "id": str(uuid.uuid4()),
                "user_id": user_id,
                "market_id": market_id,
                "side": side,
                "amount": amount,
                "shares": shares,
                "credit_source": credit_source,
                "price_at_bet": price_at_bet,
                "idempotency_key": idempotency_key,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Bet insert returned no rows")
        return _row_to_bet(row)

    async def find_by_idempotency_key(
        self, db: AsyncSession, user_id: str, idempotency_key: str
    ) -> Bet | None:
        result = await db.execute(
            _FIND_BY_IDEMPOTENCY_KEY_SQL,
            {"user_id": user_id, "idempotency_key": idempotency_key},
        )
        row = result.fetchone()
        return _row_to_bet(row) if row else None

    async def get_bet_for_update(
        self, db: AsyncSession, bet_id: str
    ) -> Bet | None:
        result = await db.execute(_GET_BET_FOR_UPDATE_SQL, {"bet_id": bet_id})
        row = result.fetchone()
        return _row_to_bet(row) if row else None

    async def settle(
        self,
        db: AsyncSession,
        bet_id: str,
        to_status: str,
        actual_payout: Decimal | None,
        resolved_at: datetime,
    ) -> Bet | None:
        result = await db.execute(
            _SETTLE_BET_SQL,
            {
                "bet_id": bet_id,
                "to_status": to_status,
                "actual_payout": actual_payout,
                "resolved_at": resolved_at,
            },
        )
        row = result.fetchone()
        return _row_to_bet(row) if row else None

    async def list_pending_for_market(
        self, db: AsyncSession, market_id: str
    ) -> list[Bet]:
        result = await db.execute(_LIST_PENDING_FOR_MARKET_SQL, {"market_id": market_id})
        return [_row_to_bet(row) for row in result.fetchall()]

    async def list_user_bets(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        market_id: str | None,
        limit: int,
        offset: int,
    ) -> list[Bet]:
        result = await db.execute(
            _LIST_USER_BETS_SQL,
            {
                "user_id": user_id,
                "status": status,
                "market_id": market_id,
                "limit": limit,
                "offset": offset,
            },
        )
        return [_row_to_bet(row) for row in result.fetchall()]

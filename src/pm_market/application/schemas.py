"""Pydantic schemas for pm_market API.

Cursor format for markets (VARCHAR PK, not sequential):
  {"ts": "<created_at ISO>", "id": "<market_id>"}
  Encoded as Base64 JSON string.
"""

import base64
import binascii
import json
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.pm_amm.domain import cpmm
from src.pm_common.credits import quantize
from src.pm_common.enums import Resolution
from src.pm_market.domain.models import Market

# ---------------------------------------------------------------------------
# Cursor utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_market: Market) -> str:
    """Encode composite cursor from last market in page."""
    payload = {
        "ts": last_market.created_at.isoformat(),
        "id": last_market.id,
    }
    return base64.b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[str | None, str | None]:
    """Decode composite cursor -> (ts_iso, market_id), or (None, None) on error."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.b64decode(cursor.encode()).decode())
        return data["ts"], data["id"]
    except (binascii.Error, ValueError, KeyError, TypeError):
        return None, None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateMarketRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    expires_at: datetime | None = None
    initial_probability: Decimal = Field(Decimal("0.5"), gt=0, lt=1)
    liquidity: Decimal | None = Field(None, gt=0, description="Defaults to DEFAULT_POOL_LIQUIDITY")
    fee_bps: int = Field(0, ge=0, lt=10_000)


class ResolveMarketRequest(BaseModel):
    resolution: Resolution


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class MarketListItem(BaseModel):
    id: str
    title: str
    status: str
    expires_at: datetime | None
    yes_probability: Decimal
    volume: Decimal

    @classmethod
    def from_domain(cls, m: Market) -> "MarketListItem":
        return cls(
            id=m.id,
            title=m.title,
            status=m.status,
            expires_at=m.expires_at,
            yes_probability=quantize(cpmm.get_yes_probability(m.pool)),
            volume=m.volume,
        )


class MarketListResponse(BaseModel):
    items: list[MarketListItem]
    next_cursor: str | None
    has_more: bool


class MarketDetail(BaseModel):
    id: str
    title: str
    status: str
    expires_at: datetime | None
    yes_reserve: Decimal
    no_reserve: Decimal
    yes_probability: Decimal
    no_probability: Decimal
    yes_price: Decimal
    no_price: Decimal
    total_liquidity: Decimal
    fee_bps: int
    volume: Decimal
    resolution: str | None
    resolved_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, m: Market) -> "MarketDetail":
        pool = m.pool
        return cls(
            id=m.id,
            title=m.title,
            status=m.status,
            expires_at=m.expires_at,
            yes_reserve=m.yes_reserve,
            no_reserve=m.no_reserve,
            yes_probability=quantize(cpmm.get_yes_probability(pool)),
            no_probability=quantize(cpmm.get_no_probability(pool)),
            yes_price=quantize(cpmm.get_yes_price(pool)),
            no_price=quantize(cpmm.get_no_price(pool)),
            total_liquidity=cpmm.get_total_liquidity(pool),
            fee_bps=m.fee_bps,
            volume=m.volume,
            resolution=m.resolution,
            resolved_at=m.resolved_at,
            created_at=m.created_at,
            updated_at=m.updated_at,
        )


class ResolutionSummary(BaseModel):
    market_id: str
    resolution: str
    resolved: int
    won: int
    lost: int
    cancelled: int
    errors: int

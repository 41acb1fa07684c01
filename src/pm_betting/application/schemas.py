"""Pydantic request/response schemas for pm_betting."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.pm_amm.domain.models import TradeResult
from src.pm_betting.domain.models import Bet
from src.pm_common.credits import quantize
from src.pm_common.enums import BetSide

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class PlaceBetRequest(BaseModel):
    market_id: str = Field(..., min_length=1, max_length=64)
    side: BetSide
    amount: Decimal = Field(..., gt=0, max_digits=20, decimal_places=6)
    idempotency_key: str | None = Field(None, min_length=1, max_length=64)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class BetResponse(BaseModel):
    id: str
    market_id: str
    side: str
    amount: Decimal
    shares: Decimal
    credit_source: str
    price_at_bet: Decimal
    status: str
    actual_payout: Decimal | None
    created_at: datetime | None
    resolved_at: datetime | None

    @classmethod
    def from_domain(cls, bet: Bet) -> "BetResponse":
        return cls(
            id=bet.id,
            market_id=bet.market_id,
            side=bet.side,
            amount=bet.amount,
            shares=bet.shares,
            credit_source=bet.credit_source,
            price_at_bet=quantize(bet.price_at_bet),
            status=bet.status,
            actual_payout=bet.actual_payout,
            created_at=bet.created_at,
            resolved_at=bet.resolved_at,
        )


class TradeQuoteResponse(BaseModel):
    market_id: str
    side: str
    amount: Decimal
    shares: Decimal
    price_before: Decimal
    price_after: Decimal
    probability_before: Decimal
    probability_after: Decimal
    price_impact: Decimal
    effective_price: Decimal
    requires_purchased_credits: bool

    @classmethod
    def from_trade(
        cls,
        market_id: str,
        side: BetSide,
        amount: Decimal,
        trade: TradeResult,
        requires_purchased_credits: bool,
    ) -> "TradeQuoteResponse":
        return cls(
            market_id=market_id,
            side=side.value,
            amount=amount,
            shares=trade.amount_out,
            price_before=quantize(trade.price_before),
            price_after=quantize(trade.price_after),
            probability_before=quantize(trade.prob_before),
            probability_after=quantize(trade.prob_after),
            price_impact=quantize(trade.price_impact),
            effective_price=quantize(trade.effective_price),
            requires_purchased_credits=requires_purchased_credits,
        )


class PlaceBetResponse(BaseModel):
    bet: BetResponse
    shares_received: Decimal
    price_impact: Decimal | None      # None when replaying an idempotent request
    new_probability: Decimal
    credit_source: str
    new_balance: Decimal
    free_credits_balance: Decimal
    purchased_credits_balance: Decimal
    replayed: bool = False


class SellPositionResponse(BaseModel):
    bet: BetResponse
    credits_received: Decimal
    profit: Decimal
    new_probability: Decimal
    new_balance: Decimal
    purchased_credits_balance: Decimal


class BetListResponse(BaseModel):
    items: list[BetResponse]
    limit: int
    offset: int

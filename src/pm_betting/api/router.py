"""pm_betting REST endpoints.

GET  /bets/quote          — read-only AMM quote
POST /bets                — place a bet against the market's pool
POST /bets/{bet_id}/sell  — sell a pending position back to the pool
GET  /bets                — the caller's bets
"""

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_betting.application.schemas import PlaceBetRequest
from src.pm_common.database import get_db_session
from src.pm_common.enums import BetSide, BetStatus
from src.pm_common.response import ApiResponse, current_request_id, success_response
from src.pm_gateway.auth.dependencies import get_current_user_id, get_runtime
from src.runtime import PlatformRuntime

router = APIRouter(prefix="/bets", tags=["bets"])


@router.get("/quote")
async def get_trade_quote(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    runtime: Annotated[PlatformRuntime, Depends(get_runtime)],
    market_id: str = Query(..., min_length=1, max_length=64),
    amount: Decimal = Query(..., gt=0),
    side: BetSide = Query(...),
) -> ApiResponse:
    data = await runtime.betting_service.get_trade_quote(db, market_id, amount, side)
    return success_response(
        data.model_dump(mode="json"), request_id=current_request_id(request)
    )


@router.post("", status_code=201)
async def place_bet(
    body: PlaceBetRequest,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    runtime: Annotated[PlatformRuntime, Depends(get_runtime)],
) -> ApiResponse:
    data = await runtime.betting_service.place_bet_amm(db, user_id, body)
    return success_response(
        data.model_dump(mode="json"), request_id=current_request_id(request)
    )


@router.post("/{bet_id}/sell")
async def sell_position(
    bet_id: str,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    runtime: Annotated[PlatformRuntime, Depends(get_runtime)],
) -> ApiResponse:
    data = await runtime.betting_service.sell_position_amm(db, user_id, bet_id)
    return success_response(
        data.model_dump(mode="json"), request_id=current_request_id(request)
    )


@router.get("")
async def list_bets(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    runtime: Annotated[PlatformRuntime, Depends(get_runtime)],
    status: BetStatus | None = Query(None),
    market_id: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    data = await runtime.betting_service.list_user_bets(
        db, user_id, status, market_id, limit, offset
    )
    return success_response(
        data.model_dump(mode="json"), request_id=current_request_id(request)
    )

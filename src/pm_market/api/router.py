"""pm_market REST endpoints.

GET  /markets                        — list with cursor pagination
GET  /markets/{market_id}            — full detail incl. pool prices
POST /markets                        — admin: open a market
POST /markets/{market_id}/close      — admin: stop trading
POST /markets/{market_id}/resolve    — admin: resolve and settle bets
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.enums import MarketStatus
from src.pm_common.response import ApiResponse, current_request_id, success_response
from src.pm_gateway.auth.dependencies import get_current_user_id, get_runtime, require_admin
from src.pm_market.application.schemas import CreateMarketRequest, ResolveMarketRequest
from src.runtime import PlatformRuntime

router = APIRouter(prefix="/markets", tags=["markets"])


@router.get("")
async def list_markets(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    runtime: Annotated[PlatformRuntime, Depends(get_runtime)],
    status: MarketStatus | None = Query(None, description="Filter by status; omit for all"),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await runtime.market_service.list_markets(db, status, cursor, limit)
    return success_response(
        result.model_dump(mode="json"), request_id=current_request_id(request)
    )


@router.get("/{market_id}")
async def get_market(
    market_id: str,
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    runtime: Annotated[PlatformRuntime, Depends(get_runtime)],
) -> ApiResponse:
    result = await runtime.market_service.get_market(db, market_id)
    return success_response(
        result.model_dump(mode="json"), request_id=current_request_id(request)
    )


@router.post("", status_code=201)
async def create_market(
    body: CreateMarketRequest,
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    runtime: Annotated[PlatformRuntime, Depends(get_runtime)],
) -> ApiResponse:
    result = await runtime.market_service.create_market(db, body)
    return success_response(
        result.model_dump(mode="json"), request_id=current_request_id(request)
    )


@router.post("/{market_id}/close")
async def close_market(
    market_id: str,
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    runtime: Annotated[PlatformRuntime, Depends(get_runtime)],
) -> ApiResponse:
    result = await runtime.market_service.close_market(db, market_id)
    return success_response(
        result.model_dump(mode="json"), request_id=current_request_id(request)
    )


@router.post("/{market_id}/resolve")
async def resolve_market(
    market_id: str,
    body: ResolveMarketRequest,
    request: Request,
    admin_id: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    runtime: Annotated[PlatformRuntime, Depends(get_runtime)],
) -> ApiResponse:
    result = await runtime.resolution_service.resolve_market(db, market_id, body.resolution)
    return success_response(
        result.model_dump(mode="json"), request_id=current_request_id(request)
    )

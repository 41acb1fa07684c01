"""pm_rewards REST endpoints: claim and inspect daily credits."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, current_request_id, success_response
from src.pm_gateway.auth.dependencies import get_current_user_id, get_runtime
from src.runtime import PlatformRuntime

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.post("/daily")
async def claim_daily_credits(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    runtime: Annotated[PlatformRuntime, Depends(get_runtime)],
) -> ApiResponse:
    data = await runtime.rewards_service.process_daily_credit_allocation(db, user_id)
    return success_response(
        data.model_dump(mode="json"), request_id=current_request_id(request)
    )


@router.get("/daily")
async def get_daily_status(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    runtime: Annotated[PlatformRuntime, Depends(get_runtime)],
) -> ApiResponse:
    data = await runtime.rewards_service.get_daily_status(db, user_id)
    return success_response(
        data.model_dump(mode="json"), request_id=current_request_id(request)
    )

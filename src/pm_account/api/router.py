"""pm_account REST API — balances, purchase booking and credit history."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.schemas import PurchaseCreditsRequest
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, current_request_id, success_response
from src.pm_gateway.auth.dependencies import get_current_user_id, get_runtime
from src.runtime import PlatformRuntime

router = APIRouter(prefix="/account", tags=["account"])


@router.get("/balance")
async def get_balance(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    runtime: Annotated[PlatformRuntime, Depends(get_runtime)],
    request: Request,
) -> ApiResponse:
    data = await runtime.ledger_service.get_balance(db, user_id)
    return success_response(
        data.model_dump(mode="json"), request_id=current_request_id(request)
    )


@router.post("/purchases")
async def purchase_credits(
    body: PurchaseCreditsRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    runtime: Annotated[PlatformRuntime, Depends(get_runtime)],
    request: Request,
) -> ApiResponse:
    data = await runtime.ledger_service.purchase_credits(
        db, user_id, body.amount, body.reference_id
    )
    return success_response(
        data.model_dump(mode="json"), request_id=current_request_id(request)
    )


@router.get("/transactions")
async def list_transactions(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    runtime: Annotated[PlatformRuntime, Depends(get_runtime)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    transaction_type: str | None = Query(None, description="Filter by TransactionType"),
) -> ApiResponse:
    data = await runtime.ledger_service.list_transactions(
        db, user_id, cursor, limit, transaction_type
    )
    return success_response(
        data.model_dump(mode="json"), request_id=current_request_id(request)
    )

"""p2p_holding REST API: trusted funding plus admin holding management."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.database import get_db_session
from src.p2p_common.response import ApiResponse, success_response
from src.p2p_gateway.auth.dependencies import require_admin, require_funding_api_key
from src.p2p_gateway.user.db_models import UserModel
from src.p2p_holding.application.schemas import FundingRequest, UpdateHoldingPeriodRequest
from src.p2p_holding.application.service import HoldingService

funding_router = APIRouter(prefix="/funding", tags=["funding"])
admin_router = APIRouter(prefix="/admin/holdings", tags=["admin"])

_service = HoldingService()


@funding_router.post("", dependencies=[Depends(require_funding_api_key)])
async def fund_user(
    body: FundingRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.fund_user(db, body.identity_handle, body.amount, body.period_code)
    return success_response(data, request)


@admin_router.get("")
async def list_holdings(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    user_id: int | None = Query(None, gt=0, description="Only this user's holdings"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(50, ge=1, le=200, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_holdings(db, admin.is_admin, cursor, limit, user_id)
    return success_response(data, request)


@admin_router.put("/{holding_id}")
async def update_holding_period(
    holding_id: int,
    body: UpdateHoldingPeriodRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.update_holding_period(db, admin.is_admin, holding_id, body.period_code)
    return success_response(data, request)

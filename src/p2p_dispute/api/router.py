"""p2p_dispute REST API: parties open disputes, admins arbitrate them."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.database import get_db_session
from src.p2p_common.response import ApiResponse, success_response
from src.p2p_dispute.application.schemas import OpenDisputeRequest, ResolveDisputeRequest
from src.p2p_dispute.application.service import DisputeService
from src.p2p_gateway.auth.dependencies import get_current_user, require_admin
from src.p2p_gateway.user.db_models import UserModel

router = APIRouter(tags=["disputes"])
admin_router = APIRouter(prefix="/admin/disputes", tags=["admin"])

_service = DisputeService()


@router.post("/trades/{trade_id}/disputes")
async def open_dispute(
    trade_id: int,
    body: OpenDisputeRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.open_dispute(db, trade_id, current_user.id, body.reason)
    return success_response(data, request)


@router.get("/disputes/{dispute_id}")
async def get_dispute(
    dispute_id: int,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_dispute(db, dispute_id, current_user.id, current_user.is_admin)
    return success_response(data, request)


@admin_router.get("")
async def list_disputes(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: str | None = Query(None, description="Filter by DisputeStatus"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_disputes(db, admin.is_admin, cursor, limit, status)
    return success_response(data, request)


@admin_router.post("/{dispute_id}/resolve")
async def resolve_dispute(
    dispute_id: int,
    body: ResolveDisputeRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.resolve_dispute(
        db,
        dispute_id,
        resolver_id=admin.id,
        is_admin=admin.is_admin,
        outcome=body.status,
        note=body.resolution_note,
        trade_action=body.trade_action,
    )
    return success_response(data, request)

"""Admin REST API: settings, invariant audit and maintenance."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_admin.application.service import AdminService
from src.p2p_common.database import get_db_session
from src.p2p_common.response import ApiResponse, success_response
from src.p2p_gateway.auth.dependencies import require_admin
from src.p2p_gateway.user.db_models import UserModel
from src.p2p_ledger.application.schemas import SettingUpdateRequest
from src.p2p_ledger.application.settings_service import SettingsService

router = APIRouter(prefix="/admin", tags=["admin"])

_service = AdminService()
_settings_service = SettingsService()


@router.get("/settings")
async def list_settings(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _settings_service.list_settings(db, admin.is_admin)
    return success_response(data, request)


@router.put("/settings/{key}")
async def update_setting(
    key: str,
    body: SettingUpdateRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _settings_service.update_setting(
        db, admin.is_admin, key, body.value, body.description
    )
    return success_response(data, request)


@router.get("/invariants")
async def verify_invariants(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.verify_invariants(db, admin.is_admin)
    return success_response(data, request)


@router.post("/maintenance/backfill-transfers")
async def backfill_transfers(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(500, ge=1, le=5000, description="Max trades scanned per call"),
) -> ApiResponse:
    data = await _service.backfill_trade_transfers(db, admin.is_admin, limit)
    return success_response(data, request)

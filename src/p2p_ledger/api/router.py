"""p2p_ledger REST API: balance, journal, transfers and public settings."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.database import get_db_session
from src.p2p_common.response import ApiResponse, success_response
from src.p2p_gateway.auth.dependencies import get_current_user
from src.p2p_gateway.user.db_models import UserModel
from src.p2p_ledger.application.schemas import TransferRequest
from src.p2p_ledger.application.service import LedgerService
from src.p2p_ledger.application.settings_service import SettingsService

router = APIRouter(prefix="/ledger", tags=["ledger"])
settings_router = APIRouter(prefix="/settings", tags=["settings"])

_service = LedgerService()
_settings_service = SettingsService()


@router.get("/balance")
async def get_balance(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, current_user.id)
    return success_response(data, request)


@router.get("/entries")
async def list_entries(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    entry_type: str | None = Query(None, description="Filter by LedgerEntryType"),
) -> ApiResponse:
    data = await _service.list_entries(db, current_user.id, cursor, limit, entry_type)
    return success_response(data, request)


@router.get("/transfers")
async def list_transfers(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(50, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_transfers(db, current_user.id, cursor, limit)
    return success_response(data, request)


@router.post("/transfers")
async def create_transfer(
    body: TransferRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.transfer(
        db, current_user.id, body.recipient_handle, body.amount, body.note
    )
    return success_response(data, request)


@settings_router.get("/p2p-fee-rate")
async def get_fee_rate(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _settings_service.get_fee_rate(db)
    return success_response(data, request)


@settings_router.get("/holding-fda-amount")
async def get_holding_floor(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _settings_service.get_holding_floor(db)
    return success_response(data, request)

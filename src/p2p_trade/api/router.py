"""p2p_trade REST API: accept offers and drive the trade lifecycle."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.database import get_db_session
from src.p2p_common.response import ApiResponse, success_response
from src.p2p_gateway.auth.dependencies import get_current_user
from src.p2p_gateway.user.db_models import UserModel
from src.p2p_trade.application.schemas import AcceptOfferRequest, MarkPaidRequest
from src.p2p_trade.application.service import TradeService

router = APIRouter(prefix="/trades", tags=["trades"])

_service = TradeService()


@router.get("")
async def list_trades(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: str | None = Query(None, description="Filter by TradeStatus"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_trades(db, current_user.id, cursor, limit, status)
    return success_response(data, request)


@router.post("")
async def accept_offer(
    body: AcceptOfferRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.accept_offer(db, body.offer_id, current_user.id, body.amount)
    return success_response(data, request)


@router.get("/{trade_id}")
async def get_trade(
    trade_id: int,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_trade(db, trade_id, current_user.id, current_user.is_admin)
    return success_response(data, request)


@router.post("/{trade_id}/mark-paid")
async def mark_paid(
    trade_id: int,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    body: MarkPaidRequest | None = None,
) -> ApiResponse:
    proof = body.payment_proof if body is not None else None
    data = await _service.mark_paid(db, trade_id, current_user.id, proof)
    return success_response(data, request)


@router.post("/{trade_id}/release")
async def release_trade(
    trade_id: int,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.release(db, trade_id, current_user.id)
    return success_response(data, request)


@router.post("/{trade_id}/cancel")
async def cancel_trade(
    trade_id: int,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.cancel(db, trade_id, current_user.id)
    return success_response(data, request)

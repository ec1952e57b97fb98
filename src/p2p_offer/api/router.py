"""p2p_offer REST API: list, create, view and cancel offers."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.database import get_db_session
from src.p2p_common.response import ApiResponse, success_response
from src.p2p_gateway.auth.dependencies import get_current_user
from src.p2p_gateway.user.db_models import UserModel
from src.p2p_offer.application.schemas import CreateOfferRequest
from src.p2p_offer.application.service import OfferService

router = APIRouter(prefix="/offers", tags=["offers"])

_service = OfferService()


@router.get("")
async def list_offers(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    side: str | None = Query(None, description="BUY or SELL"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_open_offers(db, cursor, limit, side)
    return success_response(data, request)


@router.post("")
async def create_offer(
    body: CreateOfferRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_offer(
        db,
        maker_id=current_user.id,
        side=body.side,
        asset_symbol=body.asset_symbol,
        fiat_currency=body.fiat_currency,
        price=body.price,
        amount=body.amount,
        min_limit=body.min_limit,
        max_limit=body.max_limit,
        payment_methods=body.payment_methods,
    )
    return success_response(data, request)


@router.get("/{offer_id}")
async def get_offer(
    offer_id: int,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_offer(db, offer_id)
    return success_response(data, request)


@router.post("/{offer_id}/cancel")
async def cancel_offer(
    offer_id: int,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.cancel_offer(db, offer_id, current_user.id)
    return success_response(data, request)

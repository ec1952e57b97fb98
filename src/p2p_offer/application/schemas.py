"""Pydantic schemas for p2p_offer API."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.p2p_common.amounts import format_amount
from src.p2p_offer.domain.models import Offer

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateOfferRequest(BaseModel):
    side: str = Field(..., description="BUY or SELL (case-insensitive)")
    asset_symbol: str | None = Field(None, max_length=20, description="Defaults to FDA")
    fiat_currency: str = Field(..., min_length=3, max_length=10)
    price: Decimal = Field(..., gt=0)
    amount: Decimal = Field(..., gt=0)
    min_limit: Decimal | None = Field(None, ge=0)
    max_limit: Decimal | None = Field(None, gt=0)
    payment_methods: list[str] = Field(default_factory=list, max_length=20)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class OfferResponse(BaseModel):
    id: int
    maker_id: int
    side: str
    asset_symbol: str
    fiat_currency: str
    price: str
    amount: str
    remaining: str
    min_limit: str | None
    max_limit: str | None
    payment_methods: list[str]
    status: str
    created_at: str
    cancelled_at: str | None

    @classmethod
    def from_domain(cls, o: Offer) -> "OfferResponse":
        return cls(
            id=o.id,
            maker_id=o.maker_id,
            side=o.side.value,
            asset_symbol=o.asset_symbol,
            fiat_currency=o.fiat_currency,
            price=format_amount(o.price),
            amount=format_amount(o.amount),
            remaining=format_amount(o.remaining),
            min_limit=format_amount(o.min_limit) if o.min_limit is not None else None,
            max_limit=format_amount(o.max_limit) if o.max_limit is not None else None,
            payment_methods=o.payment_methods,
            status=o.status.value,
            created_at=o.created_at.isoformat() if o.created_at else "",
            cancelled_at=o.cancelled_at.isoformat() if o.cancelled_at else None,
        )


class OfferListResponse(BaseModel):
    items: list[OfferResponse]
    next_cursor: str | None
    has_more: bool

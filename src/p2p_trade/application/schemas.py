"""Pydantic schemas for p2p_trade API."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.p2p_common.amounts import format_amount
from src.p2p_trade.domain.models import Trade

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class AcceptOfferRequest(BaseModel):
    offer_id: int = Field(..., gt=0)
    amount: Decimal = Field(..., gt=0)


class MarkPaidRequest(BaseModel):
    payment_proof: str | None = Field(
        None, max_length=2_000_000, description="Screenshot URL or Base64 image"
    )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


def _iso(value: object) -> str | None:
    return value.isoformat() if value is not None else None  # type: ignore[attr-defined]


class TradeResponse(BaseModel):
    id: int
    offer_id: int
    buyer_id: int
    seller_id: int
    amount: str
    price: str
    fiat_total: str
    asset_symbol: str
    fiat_currency: str
    status: str
    escrow_source: str
    has_payment_proof: bool
    paid_at: str | None
    released_at: str | None
    cancelled_at: str | None
    fee_amount: str | None
    fee_rate: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, t: Trade) -> "TradeResponse":
        return cls(
            id=t.id,
            offer_id=t.offer_id,
            buyer_id=t.buyer_id,
            seller_id=t.seller_id,
            amount=format_amount(t.amount),
            price=format_amount(t.price),
            fiat_total=format_amount(t.fiat_total),
            asset_symbol=t.asset_symbol,
            fiat_currency=t.fiat_currency,
            status=t.status.value,
            escrow_source=t.escrow_source.value,
            has_payment_proof=bool(t.payment_proof),
            paid_at=_iso(t.paid_at),
            released_at=_iso(t.released_at),
            cancelled_at=_iso(t.cancelled_at),
            fee_amount=format_amount(t.fee_amount) if t.fee_amount is not None else None,
            fee_rate=format_amount(t.fee_rate) if t.fee_rate is not None else None,
            created_at=_iso(t.created_at),
        )


class TradeListResponse(BaseModel):
    items: list[TradeResponse]
    next_cursor: str | None
    has_more: bool


class BackfillResponse(BaseModel):
    scanned: int
    created: int
    transfer_ids: list[int]

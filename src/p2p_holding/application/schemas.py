"""Pydantic schemas for p2p_holding API."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.p2p_common.amounts import format_amount
from src.p2p_holding.domain.models import Holding

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class FundingRequest(BaseModel):
    identity_handle: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0, decimal_places=18)
    period_code: str | None = Field(None, description='Whole months, e.g. "6M"')


class UpdateHoldingPeriodRequest(BaseModel):
    period_code: str = Field(..., min_length=2, max_length=10)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class HoldingResponse(BaseModel):
    id: int
    user_id: int
    amount: str
    period_code: str
    expires_at: str
    is_expired: bool
    created_at: str | None

    @classmethod
    def from_domain(cls, h: Holding, now: datetime) -> "HoldingResponse":
        return cls(
            id=h.id,
            user_id=h.user_id,
            amount=format_amount(h.amount, 18),
            period_code=h.period_code,
            expires_at=h.expires_at.isoformat(),
            is_expired=h.is_expired(now),
            created_at=h.created_at.isoformat() if h.created_at else None,
        )


class HoldingListResponse(BaseModel):
    items: list[HoldingResponse]
    next_cursor: str | None
    has_more: bool


class FundingResponse(BaseModel):
    user_id: int
    amount: str
    available_balance: str
    holding: HoldingResponse | None

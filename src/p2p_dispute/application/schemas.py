"""Pydantic schemas for p2p_dispute API."""

from pydantic import BaseModel, Field

from src.p2p_dispute.domain.models import Dispute
from src.p2p_trade.application.schemas import TradeResponse


class OpenDisputeRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class ResolveDisputeRequest(BaseModel):
    status: str = Field(..., description="RESOLVED, REJECTED or CLOSED")
    resolution_note: str | None = Field(None, max_length=2000)
    trade_action: str = Field("none", description="release, cancel or none")


class DisputeResponse(BaseModel):
    id: int
    trade_id: int
    raised_by_id: int
    reason: str
    status: str
    resolution_note: str | None
    resolved_by_id: int | None
    created_at: str | None
    resolved_at: str | None

    @classmethod
    def from_domain(cls, d: Dispute) -> "DisputeResponse":
        return cls(
            id=d.id,
            trade_id=d.trade_id,
            raised_by_id=d.raised_by_id,
            reason=d.reason,
            status=d.status.value,
            resolution_note=d.resolution_note,
            resolved_by_id=d.resolved_by_id,
            created_at=d.created_at.isoformat() if d.created_at else None,
            resolved_at=d.resolved_at.isoformat() if d.resolved_at else None,
        )


class DisputeWithTradeResponse(BaseModel):
    dispute: DisputeResponse
    trade: TradeResponse


class DisputeListResponse(BaseModel):
    items: list[DisputeResponse]
    next_cursor: str | None
    has_more: bool

"""Pydantic schemas for p2p_ledger API.

Amounts travel as fixed-point strings (18 places for balances) so clients
never round-trip ledger values through binary floats.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.p2p_common.amounts import ZERO, format_amount
from src.p2p_ledger.domain.models import BalanceSnapshot, LedgerEntry, Setting, Transfer

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class TransferRequest(BaseModel):
    recipient_handle: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0, decimal_places=18)
    note: str | None = Field(None, max_length=500)


class SettingUpdateRequest(BaseModel):
    value: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: int
    asset_symbol: str
    available_balance: str
    locked_balance: str
    holding_locked: str
    holding_floor: str
    usable_balance: str
    total_balance: str

    @classmethod
    def from_snapshot(
        cls, user_id: int, asset_symbol: str, snap: BalanceSnapshot
    ) -> "BalanceResponse":
        return cls(
            user_id=user_id,
            asset_symbol=asset_symbol,
            available_balance=format_amount(snap.available, 18),
            locked_balance=format_amount(snap.locked, 18),
            holding_locked=format_amount(snap.holding_locked, 18),
            holding_floor=format_amount(snap.holding_floor, 18),
            usable_balance=format_amount(max(snap.usable, ZERO), 18),
            total_balance=format_amount(snap.total, 18),
        )


class LedgerEntryItem(BaseModel):
    id: int
    entry_type: str
    amount: str
    available_after: str
    locked_after: str
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, e: LedgerEntry) -> "LedgerEntryItem":
        return cls(
            id=e.id,
            entry_type=e.entry_type,
            amount=format_amount(e.amount, 18),
            available_after=format_amount(e.available_after, 18),
            locked_after=format_amount(e.locked_after, 18),
            reference_type=e.reference_type,
            reference_id=e.reference_id,
            description=e.description,
            created_at=e.created_at.isoformat() if e.created_at else "",
        )


class LedgerEntriesResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool


class TransferItem(BaseModel):
    id: int
    from_user_id: int
    to_user_id: int
    amount: str
    status: str
    note: str | None
    trade_id: int | None
    direction: str | None = None  # "IN" / "OUT" relative to the viewer
    created_at: str

    @classmethod
    def from_domain(cls, t: Transfer, viewer_id: int | None = None) -> "TransferItem":
        direction = None
        if viewer_id is not None:
            direction = "OUT" if t.from_user_id == viewer_id else "IN"
        return cls(
            id=t.id,
            from_user_id=t.from_user_id,
            to_user_id=t.to_user_id,
            amount=format_amount(t.amount, 18),
            status=t.status,
            note=t.note,
            trade_id=t.trade_id,
            direction=direction,
            created_at=t.created_at.isoformat() if t.created_at else "",
        )


class TransferListResponse(BaseModel):
    items: list[TransferItem]
    next_cursor: str | None
    has_more: bool


class SettingResponse(BaseModel):
    key: str
    value: str
    description: str | None
    updated_at: str | None

    @classmethod
    def from_domain(cls, s: Setting) -> "SettingResponse":
        return cls(
            key=s.key,
            value=s.value,
            description=s.description,
            updated_at=s.updated_at.isoformat() if s.updated_at else None,
        )


class FeeRateResponse(BaseModel):
    fee_rate_percent: str


class HoldingFloorResponse(BaseModel):
    holding_amount: str

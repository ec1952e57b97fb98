"""Domain models for p2p_dispute — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.p2p_common.enums import DisputeStatus


@dataclass
class Dispute:
    id: int
    trade_id: int
    raised_by_id: int
    reason: str
    status: DisputeStatus = DisputeStatus.OPEN
    resolution_note: str | None = None
    resolved_by_id: int | None = None
    created_at: datetime | None = None
    resolved_at: datetime | None = None

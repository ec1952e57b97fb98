"""Domain models for p2p_holding — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class Holding:
    id: int
    user_id: int
    amount: Decimal
    period_code: str          # normalized, e.g. "6M"
    expires_at: datetime
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

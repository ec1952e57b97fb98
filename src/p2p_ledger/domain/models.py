"""Domain models for p2p_ledger — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.p2p_common.amounts import ZERO


@dataclass
class LedgerBalance:
    user_id: int
    available_balance: Decimal   # spendable, already net of reservations
    locked_balance: Decimal      # reserved by open SELL offers and pending trades
    version: int = 0
    updated_at: datetime | None = None

    @property
    def total_balance(self) -> Decimal:
        return self.available_balance + self.locked_balance


@dataclass
class LedgerEntry:
    id: int                          # BIGSERIAL
    user_id: int
    entry_type: str                  # LedgerEntryType value
    amount: Decimal                  # magnitude; entry_type carries the direction
    available_after: Decimal
    locked_after: Decimal
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


@dataclass
class Transfer:
    id: int
    from_user_id: int
    to_user_id: int
    amount: Decimal
    status: str = "COMPLETED"
    note: str | None = None
    trade_id: int | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class Setting:
    key: str
    value: str
    description: str | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class TradingSettings:
    """Business settings snapshot, loaded once at the start of an operation."""

    fee_rate_percent: Decimal = ZERO
    holding_floor: Decimal = ZERO


@dataclass(frozen=True)
class BalanceSnapshot:
    available: Decimal
    locked: Decimal
    holding_locked: Decimal      # sum of non-expired holdings
    holding_floor: Decimal       # holding_fda_amount setting

    @property
    def usable(self) -> Decimal:
        return self.available - self.holding_floor - self.holding_locked

    @property
    def total(self) -> Decimal:
        return self.available + self.locked

"""Domain models for p2p_trade — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.p2p_common.enums import EscrowSource, TradeStatus

PENDING_STATES = frozenset({TradeStatus.PENDING, TradeStatus.PENDING_PAYMENT})


@dataclass
class Trade:
    id: int
    offer_id: int
    buyer_id: int
    seller_id: int
    amount: Decimal
    price: Decimal
    asset_symbol: str
    fiat_currency: str
    status: TradeStatus = TradeStatus.PENDING
    escrow_source: EscrowSource = EscrowSource.NONE
    payment_proof: str | None = None
    paid_at: datetime | None = None
    released_at: datetime | None = None
    cancelled_at: datetime | None = None
    fee_amount: Decimal | None = None
    fee_rate: Decimal | None = None     # percentage, 5 == 5%
    created_at: datetime | None = None

    def is_party(self, user_id: int) -> bool:
        return user_id in (self.buyer_id, self.seller_id)

    @property
    def fiat_total(self) -> Decimal:
        return self.amount * self.price

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_STATES

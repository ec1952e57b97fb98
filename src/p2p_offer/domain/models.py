"""Domain models for p2p_offer — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.p2p_common.enums import OfferSide, OfferStatus


@dataclass
class Offer:
    id: int
    maker_id: int
    side: OfferSide
    asset_symbol: str
    fiat_currency: str
    price: Decimal
    amount: Decimal
    remaining: Decimal
    status: OfferStatus = OfferStatus.OPEN
    min_limit: Decimal | None = None
    max_limit: Decimal | None = None
    payment_methods: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    cancelled_at: datetime | None = None

    def escrows_asset(self, ledger_asset: str) -> bool:
        """True when the maker's balance backs this offer (SELL in the ledger asset)."""
        return self.side == OfferSide.SELL and self.asset_symbol == ledger_asset

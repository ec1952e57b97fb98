"""OfferService — create / cancel / list offers.

SELL offers in the ledger asset reserve the full amount from the maker at
creation; `remaining` is the part of that reservation still owed back and is
refunded on cancel. BUY offers never touch balances.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.p2p_common.amounts import require_positive, require_scale, to_decimal
from src.p2p_common.database import atomic
from src.p2p_common.enums import LedgerEntryType, OfferSide, OfferStatus
from src.p2p_common.errors import (
    ConflictError,
    ForbiddenError,
    InputValidationError,
    NotFoundError,
)
from src.p2p_common.pagination import cursor_decode, cursor_encode
from src.p2p_common.state_machine import OFFER_TRANSITIONS
from src.p2p_ledger.application.escrow import EscrowLedger
from src.p2p_ledger.application.settings_service import SettingsService
from src.p2p_offer.application.schemas import OfferListResponse, OfferResponse
from src.p2p_offer.domain.models import Offer
from src.p2p_offer.domain.repository import OfferRepositoryProtocol
from src.p2p_offer.infrastructure.persistence import OfferRepository

logger = logging.getLogger(__name__)


def parse_side(side: object) -> OfferSide:
    if not isinstance(side, str):
        raise InputValidationError("side must be BUY or SELL")
    try:
        return OfferSide(side.strip().upper())
    except ValueError:
        raise InputValidationError(f"side must be BUY or SELL, got {side!r}") from None


def _normalize_code(value: str | None, field: str) -> str:
    code = (value or "").strip().upper()
    if not code or not code.isalnum():
        raise InputValidationError(f"{field} must be a non-empty alphanumeric code")
    return code


class OfferService:
    def __init__(
        self,
        repo: OfferRepositoryProtocol | None = None,
        escrow: EscrowLedger | None = None,
        settings_service: SettingsService | None = None,
    ) -> None:
        self._repo: OfferRepositoryProtocol = repo or OfferRepository()
        self._escrow = escrow or EscrowLedger()
        self._settings = settings_service or SettingsService()

    async def create_offer(
        self,
        db: AsyncSession,
        maker_id: int,
        side: object,
        asset_symbol: str | None,
        fiat_currency: str,
        price: object,
        amount: object,
        min_limit: object = None,
        max_limit: object = None,
        payment_methods: list[str] | None = None,
    ) -> OfferResponse:
        offer_side = parse_side(side)
        asset = _normalize_code(asset_symbol or settings.LEDGER_ASSET_SYMBOL, "asset_symbol")
        fiat = _normalize_code(fiat_currency, "fiat_currency")
        price_value = require_positive(to_decimal(price, "price"), "price")
        require_scale(price_value, 8, "price")
        amount_value = require_scale(require_positive(to_decimal(amount)), 8)
        min_value = to_decimal(min_limit, "min_limit") if min_limit is not None else None
        max_value = to_decimal(max_limit, "max_limit") if max_limit is not None else None
        if min_value is not None and max_value is not None and min_value > max_value:
            raise InputValidationError("min_limit must not exceed max_limit")

        draft = Offer(
            id=0,
            maker_id=maker_id,
            side=offer_side,
            asset_symbol=asset,
            fiat_currency=fiat,
            price=price_value,
            amount=amount_value,
            remaining=amount_value,
            min_limit=min_value,
            max_limit=max_value,
            payment_methods=[m.strip() for m in payment_methods or [] if m.strip()],
        )
        async with atomic(db):
            trading = await self._settings.load_trading_settings(db)
            offer = await self._repo.insert(db, draft)
            if offer.escrows_asset(settings.LEDGER_ASSET_SYMBOL):
                await self._escrow.reserve(
                    db, maker_id, amount_value, trading,
                    LedgerEntryType.OFFER_RESERVE, "OFFER", offer.id,
                    f"Reserve for SELL offer #{offer.id}",
                )
        logger.info(
            "Offer %s created: maker=%s %s %s %s @ %s %s",
            offer.id, maker_id, offer.side.value, amount_value, asset, price_value, fiat,
        )
        return OfferResponse.from_domain(offer)

    async def cancel_offer(
        self, db: AsyncSession, offer_id: int, actor_id: int
    ) -> OfferResponse:
        async with atomic(db):
            offer = await self._repo.get_by_id(db, offer_id, for_update=True)
            if offer is None:
                raise NotFoundError("Offer", offer_id)
            if offer.maker_id != actor_id:
                raise ForbiddenError("only the maker can cancel this offer")
            OFFER_TRANSITIONS.ensure(offer_id, offer.status, OfferStatus.CANCELLED)
            cancelled = await self._repo.mark_cancelled(db, offer_id)
            if cancelled is None:
                raise ConflictError(f"offer {offer_id} changed concurrently")
            if cancelled.escrows_asset(settings.LEDGER_ASSET_SYMBOL) and cancelled.remaining > 0:
                await self._escrow.refund(
                    db, offer.maker_id, cancelled.remaining,
                    LedgerEntryType.OFFER_REFUND, "OFFER", offer_id,
                    f"Refund of cancelled SELL offer #{offer_id}",
                )
        logger.info("Offer %s cancelled, refunded remaining=%s", offer_id, cancelled.remaining)
        return OfferResponse.from_domain(cancelled)

    async def get_offer(self, db: AsyncSession, offer_id: int) -> OfferResponse:
        offer = await self._repo.get_by_id(db, offer_id)
        if offer is None:
            raise NotFoundError("Offer", offer_id)
        return OfferResponse.from_domain(offer)

    async def list_open_offers(
        self,
        db: AsyncSession,
        cursor: str | None,
        limit: int,
        side: str | None = None,
    ) -> OfferListResponse:
        side_value = parse_side(side).value if side else None
        cursor_id = cursor_decode(cursor)
        rows = await self._repo.list_open(db, cursor_id, limit + 1, side_value)
        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return OfferListResponse(
            items=[OfferResponse.from_domain(o) for o in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

"""TradeService — accept / mark-paid / release / cancel.

State machine (validated by TRADE_TRANSITIONS before any side effect):

    PENDING ──mark-paid──> PAID_PENDING_RELEASE ──release──> COMPLETED
       │                          │
       └──cancel──> CANCELLED     └──dispute──> DISPUTED ──arbiter──> COMPLETED | CANCELLED

PENDING_PAYMENT is a legacy spelling of PENDING and is accepted wherever
PENDING is.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.p2p_common.amounts import require_positive, require_scale, to_decimal
from src.p2p_common.database import atomic
from src.p2p_common.datetime_utils import utc_now
from src.p2p_common.enums import (
    EscrowSource,
    LedgerEntryType,
    OfferSide,
    OfferStatus,
    TradeStatus,
)
from src.p2p_common.errors import (
    ConflictError,
    ForbiddenError,
    InputValidationError,
    InsufficientRemainingError,
    InvalidStateError,
    NotFoundError,
)
from src.p2p_common.pagination import cursor_decode, cursor_encode
from src.p2p_common.state_machine import TRADE_TRANSITIONS
from src.p2p_ledger.application.escrow import EscrowLedger
from src.p2p_ledger.application.settings_service import SettingsService
from src.p2p_offer.domain.models import Offer
from src.p2p_offer.domain.repository import OfferRepositoryProtocol
from src.p2p_offer.infrastructure.persistence import OfferRepository
from src.p2p_trade.application.schemas import TradeListResponse, TradeResponse
from src.p2p_trade.domain.models import PENDING_STATES, Trade
from src.p2p_trade.domain.repository import TradeRepositoryProtocol
from src.p2p_trade.domain.settlement import TradeSettlement
from src.p2p_trade.infrastructure.persistence import TradeRepository

logger = logging.getLogger(__name__)

_MARK_PAID_FROM = (*PENDING_STATES, TradeStatus.PAID_PENDING_RELEASE)


def escrow_source_for(offer: Offer, ledger_asset: str) -> EscrowSource:
    if offer.asset_symbol != ledger_asset:
        return EscrowSource.NONE
    return EscrowSource.OFFER if offer.side == OfferSide.SELL else EscrowSource.ACCEPTOR


class TradeService:
    def __init__(
        self,
        trade_repo: TradeRepositoryProtocol | None = None,
        offer_repo: OfferRepositoryProtocol | None = None,
        escrow: EscrowLedger | None = None,
        settlement: TradeSettlement | None = None,
        settings_service: SettingsService | None = None,
    ) -> None:
        self._trades: TradeRepositoryProtocol = trade_repo or TradeRepository()
        self._offers: OfferRepositoryProtocol = offer_repo or OfferRepository()
        self._escrow = escrow or EscrowLedger()
        self._settlement = settlement or TradeSettlement(
            trade_repo=self._trades, escrow=self._escrow
        )
        self._settings = settings_service or SettingsService()

    async def _load_trade(self, db: AsyncSession, trade_id: int) -> Trade:
        trade = await self._trades.get_by_id(db, trade_id, for_update=True)
        if trade is None:
            raise NotFoundError("Trade", trade_id)
        return trade

    async def accept_offer(
        self, db: AsyncSession, offer_id: int, acceptor_id: int, amount: object
    ) -> TradeResponse:
        value = require_scale(require_positive(to_decimal(amount)), 8)
        ledger_asset = settings.LEDGER_ASSET_SYMBOL
        async with atomic(db):
            trading = await self._settings.load_trading_settings(db)
            offer = await self._offers.get_by_id(db, offer_id, for_update=True)
            if offer is None or offer.status != OfferStatus.OPEN:
                raise NotFoundError("Offer", offer_id, f"Open offer not found: {offer_id}")
            if offer.maker_id == acceptor_id:
                raise ForbiddenError("cannot accept your own offer")
            if value > offer.remaining:
                raise InsufficientRemainingError(offer_id, value, offer.remaining)

            if offer.side == OfferSide.SELL:
                buyer_id, seller_id = acceptor_id, offer.maker_id
            else:
                buyer_id, seller_id = offer.maker_id, acceptor_id
            source = escrow_source_for(offer, ledger_asset)

            taken = await self._offers.take_remaining(db, offer_id, value)
            if taken is None:
                raise ConflictError(f"offer {offer_id} changed concurrently")
            trade = await self._trades.insert(
                db,
                Trade(
                    id=0,
                    offer_id=offer_id,
                    buyer_id=buyer_id,
                    seller_id=seller_id,
                    amount=value,
                    price=offer.price,
                    asset_symbol=offer.asset_symbol,
                    fiat_currency=offer.fiat_currency,
                    status=TradeStatus.PENDING,
                    escrow_source=source,
                ),
            )
            if source == EscrowSource.ACCEPTOR:
                await self._escrow.reserve(
                    db, acceptor_id, value, trading,
                    LedgerEntryType.TRADE_RESERVE, "TRADE", trade.id,
                    f"Reserve for P2P Trade #{trade.id} on BUY offer #{offer_id}",
                )
        logger.info(
            "Trade %s created on offer %s: buyer=%s seller=%s amount=%s escrow=%s",
            trade.id, offer_id, buyer_id, seller_id, value, source.value,
        )
        return TradeResponse.from_domain(trade)

    async def mark_paid(
        self, db: AsyncSession, trade_id: int, actor_id: int, proof: str | None = None
    ) -> TradeResponse:
        async with atomic(db):
            trade = await self._load_trade(db, trade_id)
            if actor_id != trade.buyer_id:
                raise ForbiddenError("only the buyer can mark a trade as paid")
            TRADE_TRANSITIONS.ensure(trade_id, trade.status, TradeStatus.PAID_PENDING_RELEASE)
            now = utc_now()
            updated = await self._trades.mark_paid(db, trade_id, proof, now, _MARK_PAID_FROM)
            if updated is None:
                raise ConflictError(f"trade {trade_id} changed concurrently")
        logger.info("Trade %s marked paid at %s (previous %s)", trade_id, now, trade.paid_at)
        return TradeResponse.from_domain(updated)

    async def release(self, db: AsyncSession, trade_id: int, actor_id: int) -> TradeResponse:
        async with atomic(db):
            trading = await self._settings.load_trading_settings(db)
            trade = await self._load_trade(db, trade_id)
            if actor_id != trade.seller_id:
                raise ForbiddenError("only the seller can release a trade")
            if trade.status != TradeStatus.PAID_PENDING_RELEASE:
                raise InvalidStateError("Trade", trade_id, trade.status.value, "be released")
            completed = await self._settlement.release(db, trade, trading, utc_now())
        return TradeResponse.from_domain(completed)

    async def cancel(self, db: AsyncSession, trade_id: int, actor_id: int) -> TradeResponse:
        """Cancel a pending trade on behalf of either party.

        The amount goes back to the parent offer's `remaining` while that offer is
        OPEN. If the parent SELL offer was already cancelled, its reservation for
        this trade is refunded to the seller instead. Acceptor escrow follows
        REFUND_ACCEPTOR_ESCROW_ON_CANCEL.
        """
        async with atomic(db):
            trade = await self._load_trade(db, trade_id)
            if not trade.is_party(actor_id):
                raise ForbiddenError("only the buyer or seller can cancel a trade")
            if not trade.is_pending:
                raise InvalidStateError("Trade", trade_id, trade.status.value, "be cancelled")
            offer = await self._offers.get_by_id(db, trade.offer_id, for_update=True)
            cancelled = await self._trades.cancel(db, trade_id, utc_now(), PENDING_STATES)
            if cancelled is None:
                raise ConflictError(f"trade {trade_id} changed concurrently")

            offer_open = offer is not None and offer.status == OfferStatus.OPEN
            if offer_open:
                restored = await self._offers.restore_remaining(db, trade.offer_id, trade.amount)
                if restored is None:
                    raise ConflictError(f"offer {trade.offer_id} remaining out of bounds")
            await self._settlement.refund_seller(
                db, trade, LedgerEntryType.TRADE_REFUND, offer_still_open=offer_open
            )
        logger.info(
            "Trade %s cancelled by %s, offer %s remaining restored=%s",
            trade_id, actor_id, trade.offer_id, offer_open,
        )
        return TradeResponse.from_domain(cancelled)

    async def get_trade(
        self, db: AsyncSession, trade_id: int, actor_id: int, is_admin: bool = False
    ) -> TradeResponse:
        trade = await self._trades.get_by_id(db, trade_id)
        # Non-parties get NotFound so trade ids do not leak.
        if trade is None or not (is_admin or trade.is_party(actor_id)):
            raise NotFoundError("Trade", trade_id)
        return TradeResponse.from_domain(trade)

    async def list_trades(
        self,
        db: AsyncSession,
        actor_id: int,
        cursor: str | None,
        limit: int,
        status: str | None = None,
    ) -> TradeListResponse:
        if status is not None and status not in TradeStatus.__members__:
            raise InputValidationError(f"unknown trade status {status!r}")
        cursor_id = cursor_decode(cursor)
        rows = await self._trades.list_for_user(db, actor_id, cursor_id, limit + 1, status)
        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return TradeListResponse(
            items=[TradeResponse.from_domain(t) for t in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

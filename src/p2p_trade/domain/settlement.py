"""Trade settlement: release and cancellation balance effects.

Shared by the Trade Engine (seller release, pending cancel) and the Dispute
Arbiter (forced release / cancel of a DISPUTED trade), so both paths move
balances identically.

Release:
    fee    = ceil(amount * p2p_fee_rate / 100, 8dp)
    payout = amount - fee
    seller.locked -= amount; buyer.available += payout; fee is burned
    Transfer(seller -> buyer, payout, "P2P Trade #<id> ...")

Trades whose asset is not the ledger asset (escrow NONE) record the fee and
complete without moving any balance.
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.p2p_common.amounts import ZERO, calculate_fee, format_amount
from src.p2p_common.enums import EscrowSource, LedgerEntryType, TradeStatus
from src.p2p_common.errors import ConflictError
from src.p2p_common.state_machine import TRADE_TRANSITIONS
from src.p2p_ledger.application.escrow import EscrowLedger
from src.p2p_ledger.domain.models import TradingSettings, Transfer
from src.p2p_ledger.domain.repository import LedgerRepositoryProtocol
from src.p2p_ledger.infrastructure.persistence import LedgerRepository
from src.p2p_trade.domain.models import Trade
from src.p2p_trade.domain.repository import TradeRepositoryProtocol
from src.p2p_trade.infrastructure.persistence import TradeRepository

logger = logging.getLogger(__name__)


def transfer_note(trade: Trade, fee: Decimal, via_dispute: bool = False) -> str:
    label = " - Dispute Resolution (Release)" if via_dispute else ""
    return (
        f"P2P Trade #{trade.id}{label} - {format_amount(trade.amount)} {trade.asset_symbol} "
        f"(Fee: {format_amount(fee)} {trade.asset_symbol})"
    )


class TradeSettlement:
    def __init__(
        self,
        trade_repo: TradeRepositoryProtocol | None = None,
        ledger_repo: LedgerRepositoryProtocol | None = None,
        escrow: EscrowLedger | None = None,
        refund_acceptor_escrow: bool | None = None,
    ) -> None:
        self._trades: TradeRepositoryProtocol = trade_repo or TradeRepository()
        self._ledger: LedgerRepositoryProtocol = ledger_repo or LedgerRepository()
        self._escrow = escrow or EscrowLedger(ledger_repo=self._ledger)
        self._refund_acceptor = (
            settings.REFUND_ACCEPTOR_ESCROW_ON_CANCEL
            if refund_acceptor_escrow is None
            else refund_acceptor_escrow
        )

    async def release(
        self,
        db: AsyncSession,
        trade: Trade,
        trading: TradingSettings,
        now: datetime,
        via_dispute: bool = False,
    ) -> Trade:
        """Pay out a PAID_PENDING_RELEASE or DISPUTED trade and mark it COMPLETED."""
        TRADE_TRANSITIONS.ensure(trade.id, trade.status, TradeStatus.COMPLETED)
        fee = calculate_fee(trade.amount, trading.fee_rate_percent)
        payout = trade.amount - fee

        completed = await self._trades.complete(
            db, trade.id, fee, trading.fee_rate_percent, now, [trade.status]
        )
        if completed is None:
            raise ConflictError(f"trade {trade.id} changed concurrently")

        if trade.escrow_source != EscrowSource.NONE:
            await self._escrow.capture(
                db, trade.seller_id, trade.buyer_id, trade.amount, fee, trade.id
            )
            if payout > ZERO:
                await self._ledger.insert_transfer(
                    db,
                    trade.seller_id,
                    trade.buyer_id,
                    payout,
                    transfer_note(trade, fee, via_dispute),
                    trade_id=trade.id,
                    created_at=now,
                )
        logger.info(
            "Trade %s released: amount=%s fee=%s (%s%%) payout=%s",
            trade.id, trade.amount, fee, trading.fee_rate_percent, payout,
        )
        return completed

    async def refund_seller(
        self,
        db: AsyncSession,
        trade: Trade,
        entry_type: LedgerEntryType,
        offer_still_open: bool = False,
    ) -> bool:
        """Return the seller's reservation for a cancelled trade. Returns True if refunded.

        OFFER escrow: refunded unless the parent offer is still OPEN, in which case
        the amount goes back into the offer's reservation via `remaining`.
        ACCEPTOR escrow: refunded only when REFUND_ACCEPTOR_ESCROW_ON_CANCEL is on;
        otherwise the reservation stays locked and a warning is logged.
        """
        if trade.escrow_source == EscrowSource.OFFER:
            if offer_still_open:
                return False
        elif trade.escrow_source == EscrowSource.ACCEPTOR:
            if not self._refund_acceptor:
                logger.warning(
                    "Trade %s cancelled: %s %s stays locked for seller %s "
                    "(acceptor escrow refunds disabled)",
                    trade.id, trade.amount, trade.asset_symbol, trade.seller_id,
                )
                return False
        else:
            return False

        await self._escrow.refund(
            db, trade.seller_id, trade.amount, entry_type, "TRADE", trade.id,
            f"Refund for cancelled P2P Trade #{trade.id}",
        )
        return True

    async def cancel_disputed(self, db: AsyncSession, trade: Trade, now: datetime) -> Trade:
        """Arbiter-forced cancel of a DISPUTED trade. The offer's remaining is not restored.

        Only OFFER escrow (a SELL offer in the ledger asset) is refunded. ACCEPTOR
        escrow stays locked regardless of REFUND_ACCEPTOR_ESCROW_ON_CANCEL, which
        governs the pending-trade cancel only.
        """
        TRADE_TRANSITIONS.ensure(trade.id, trade.status, TradeStatus.CANCELLED)
        cancelled = await self._trades.cancel(db, trade.id, now, [TradeStatus.DISPUTED])
        if cancelled is None:
            raise ConflictError(f"trade {trade.id} changed concurrently")
        refunded = False
        if trade.escrow_source == EscrowSource.OFFER:
            await self._escrow.refund(
                db, trade.seller_id, trade.amount, LedgerEntryType.DISPUTE_REFUND, "TRADE",
                trade.id, f"Refund for cancelled P2P Trade #{trade.id}",
            )
            refunded = True
        elif trade.escrow_source == EscrowSource.ACCEPTOR:
            logger.warning(
                "Disputed trade %s cancelled: acceptor reservation of %s %s stays locked "
                "for seller %s",
                trade.id, trade.amount, trade.asset_symbol, trade.seller_id,
            )
        logger.info("Disputed trade %s cancelled, seller refunded=%s", trade.id, refunded)
        return cancelled

    async def backfill_transfer(self, db: AsyncSession, trade: Trade) -> Transfer | None:
        """Write the missing audit Transfer for a COMPLETED trade, dated at release.

        Uses the recorded fee, or recomputes it from the recorded rate. Returns None
        when the trade already has a Transfer or nothing was paid out.
        """
        if trade.fee_amount is not None:
            fee = trade.fee_amount
        else:
            fee = calculate_fee(trade.amount, trade.fee_rate or ZERO)
        payout = trade.amount - fee
        if payout <= ZERO:
            return None
        return await self._ledger.insert_transfer(
            db,
            trade.seller_id,
            trade.buyer_id,
            payout,
            transfer_note(trade, fee),
            trade_id=trade.id,
            created_at=trade.released_at,
        )

"""Admin application service: invariant audit and transfer backfill."""

import logging

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.p2p_common.database import atomic
from src.p2p_common.errors import ForbiddenError
from src.p2p_ledger.domain.invariants import verify_ledger_invariants
from src.p2p_trade.application.schemas import BackfillResponse
from src.p2p_trade.domain.repository import TradeRepositoryProtocol
from src.p2p_trade.domain.settlement import TradeSettlement
from src.p2p_trade.infrastructure.persistence import TradeRepository

logger = logging.getLogger(__name__)


class InvariantReportResponse(BaseModel):
    ok: bool
    negative_balance_user_ids: list[int]
    out_of_bounds_offer_ids: list[int]
    multi_dispute_trade_ids: list[int]


class AdminService:
    def __init__(
        self,
        trade_repo: TradeRepositoryProtocol | None = None,
        settlement: TradeSettlement | None = None,
    ) -> None:
        self._trades: TradeRepositoryProtocol = trade_repo or TradeRepository()
        self._settlement = settlement or TradeSettlement(trade_repo=self._trades)

    async def verify_invariants(
        self, db: AsyncSession, is_admin: bool
    ) -> InvariantReportResponse:
        if not is_admin:
            raise ForbiddenError("admin privileges required")
        report = await verify_ledger_invariants(db)
        return InvariantReportResponse(
            ok=report.ok,
            negative_balance_user_ids=report.negative_balance_user_ids,
            out_of_bounds_offer_ids=report.out_of_bounds_offer_ids,
            multi_dispute_trade_ids=report.multi_dispute_trade_ids,
        )

    async def backfill_trade_transfers(
        self, db: AsyncSession, is_admin: bool, limit: int = 500
    ) -> BackfillResponse:
        """Write the missing Transfer of every COMPLETED ledger-asset trade.

        Safe to re-run: the unique transfers.trade_id makes a second pass a no-op.
        """
        if not is_admin:
            raise ForbiddenError("admin privileges required")
        transfer_ids: list[int] = []
        async with atomic(db):
            trades = await self._trades.list_completed_without_transfer(
                db, settings.LEDGER_ASSET_SYMBOL, limit
            )
            for trade in trades:
                transfer = await self._settlement.backfill_transfer(db, trade)
                if transfer is None:
                    logger.info("Trade %s: no transfer written (zero payout or exists)", trade.id)
                    continue
                transfer_ids.append(transfer.id)
        logger.info(
            "Backfill scanned %d completed trades, created %d transfers",
            len(trades), len(transfer_ids),
        )
        return BackfillResponse(
            scanned=len(trades), created=len(transfer_ids), transfer_ids=transfer_ids
        )

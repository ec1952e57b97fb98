"""DisputeService — open and arbitrate trade disputes.

Opening:  party only; one dispute per trade; a buyer disputing a
          PAID_PENDING_RELEASE trade must do so within DISPUTE_WINDOW_MINUTES
          of paid_at. The trade moves to DISPUTED.
Resolving: admin only; the dispute leaves OPEN exactly once. trade_action
          release/cancel reuses TradeSettlement; "none" closes the dispute and
          leaves the trade DISPUTED.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.p2p_common.database import atomic
from src.p2p_common.datetime_utils import utc_now
from src.p2p_common.enums import DisputeStatus, TradeAction, TradeStatus
from src.p2p_common.errors import (
    ConflictError,
    ForbiddenError,
    InputValidationError,
    InvalidStateError,
    NotFoundError,
    WindowExpiredError,
)
from src.p2p_common.pagination import cursor_decode, cursor_encode
from src.p2p_common.state_machine import DISPUTE_TRANSITIONS, TRADE_TRANSITIONS
from src.p2p_dispute.application.schemas import (
    DisputeListResponse,
    DisputeResponse,
    DisputeWithTradeResponse,
)
from src.p2p_dispute.domain.repository import DisputeRepositoryProtocol
from src.p2p_dispute.infrastructure.persistence import DisputeRepository
from src.p2p_ledger.application.settings_service import SettingsService
from src.p2p_trade.application.schemas import TradeResponse
from src.p2p_trade.domain.models import Trade
from src.p2p_trade.domain.repository import TradeRepositoryProtocol
from src.p2p_trade.domain.settlement import TradeSettlement
from src.p2p_trade.infrastructure.persistence import TradeRepository

logger = logging.getLogger(__name__)

_OUTCOMES = frozenset({DisputeStatus.RESOLVED, DisputeStatus.REJECTED, DisputeStatus.CLOSED})


def check_dispute_window(
    trade: Trade, now: datetime, window_minutes: int
) -> None:
    """Raise WindowExpiredError if `now` is more than the window past paid_at."""
    if trade.paid_at is None:
        raise InvalidStateError(
            "Trade", trade.id, trade.status.value, "be disputed before payment is recorded"
        )
    elapsed = now - trade.paid_at
    if elapsed > timedelta(minutes=window_minutes):
        raise WindowExpiredError(window_minutes, elapsed.total_seconds() / 60)


def _parse_outcome(value: object) -> DisputeStatus:
    try:
        outcome = DisputeStatus(str(value).strip().upper())
    except ValueError:
        outcome = None
    if outcome not in _OUTCOMES:
        raise InputValidationError("status must be RESOLVED, REJECTED or CLOSED")
    return outcome


def _parse_action(value: object) -> TradeAction:
    try:
        return TradeAction(str(value or "none").strip().lower())
    except ValueError:
        raise InputValidationError("trade_action must be release, cancel or none") from None


class DisputeService:
    def __init__(
        self,
        dispute_repo: DisputeRepositoryProtocol | None = None,
        trade_repo: TradeRepositoryProtocol | None = None,
        settlement: TradeSettlement | None = None,
        settings_service: SettingsService | None = None,
        window_minutes: int | None = None,
    ) -> None:
        self._disputes: DisputeRepositoryProtocol = dispute_repo or DisputeRepository()
        self._trades: TradeRepositoryProtocol = trade_repo or TradeRepository()
        self._settlement = settlement or TradeSettlement(trade_repo=self._trades)
        self._settings = settings_service or SettingsService()
        self._window_minutes = (
            settings.DISPUTE_WINDOW_MINUTES if window_minutes is None else window_minutes
        )

    async def open_dispute(
        self,
        db: AsyncSession,
        trade_id: int,
        actor_id: int,
        reason: str,
        now: datetime | None = None,
    ) -> DisputeResponse:
        reason = (reason or "").strip()
        if not reason:
            raise InputValidationError("reason is required")
        async with atomic(db):
            trade = await self._trades.get_by_id(db, trade_id, for_update=True)
            if trade is None:
                raise NotFoundError("Trade", trade_id)
            if not trade.is_party(actor_id):
                raise ForbiddenError("only the buyer or seller can open a dispute")
            if await self._disputes.get_by_trade_id(db, trade_id) is not None:
                raise ConflictError(f"a dispute already exists for trade {trade_id}")
            TRADE_TRANSITIONS.ensure(trade_id, trade.status, TradeStatus.DISPUTED)
            if actor_id == trade.buyer_id and trade.status == TradeStatus.PAID_PENDING_RELEASE:
                check_dispute_window(trade, now or utc_now(), self._window_minutes)

            dispute = await self._disputes.insert(db, trade_id, actor_id, reason)
            if dispute is None:
                raise ConflictError(f"a dispute already exists for trade {trade_id}")
            if await self._trades.mark_disputed(db, trade_id, [trade.status]) is None:
                raise ConflictError(f"trade {trade_id} changed concurrently")
        logger.info("Dispute %s opened on trade %s by user %s", dispute.id, trade_id, actor_id)
        return DisputeResponse.from_domain(dispute)

    async def resolve_dispute(
        self,
        db: AsyncSession,
        dispute_id: int,
        resolver_id: int,
        is_admin: bool,
        outcome: object,
        note: str | None = None,
        trade_action: object = TradeAction.NONE.value,
    ) -> DisputeWithTradeResponse:
        if not is_admin:
            raise ForbiddenError("admin privileges required to resolve disputes")
        status = _parse_outcome(outcome)
        action = _parse_action(trade_action)
        async with atomic(db):
            dispute = await self._disputes.get_by_id(db, dispute_id, for_update=True)
            if dispute is None:
                raise NotFoundError("Dispute", dispute_id)
            DISPUTE_TRANSITIONS.ensure(dispute_id, dispute.status, status)
            trade = await self._trades.get_by_id(db, dispute.trade_id, for_update=True)
            if trade is None:
                raise NotFoundError("Trade", dispute.trade_id)
            if action != TradeAction.NONE and trade.status != TradeStatus.DISPUTED:
                raise InvalidStateError(
                    "Trade", trade.id, trade.status.value, f"be settled with {action.value}"
                )

            now = utc_now()
            if action == TradeAction.RELEASE:
                trading = await self._settings.load_trading_settings(db)
                trade = await self._settlement.release(db, trade, trading, now, via_dispute=True)
            elif action == TradeAction.CANCEL:
                trade = await self._settlement.cancel_disputed(db, trade, now)
            elif trade.status == TradeStatus.DISPUTED:
                logger.warning(
                    "Dispute %s closed without trade action; trade %s stays DISPUTED",
                    dispute_id, trade.id,
                )

            resolved = await self._disputes.resolve(
                db, dispute_id, status, note, resolver_id, now
            )
            if resolved is None:
                raise ConflictError(f"dispute {dispute_id} changed concurrently")
        logger.info(
            "Dispute %s resolved as %s by %s with trade_action=%s",
            dispute_id, status.value, resolver_id, action.value,
        )
        return DisputeWithTradeResponse(
            dispute=DisputeResponse.from_domain(resolved),
            trade=TradeResponse.from_domain(trade),
        )

    async def get_dispute(
        self, db: AsyncSession, dispute_id: int, actor_id: int, is_admin: bool
    ) -> DisputeWithTradeResponse:
        dispute = await self._disputes.get_by_id(db, dispute_id)
        if dispute is None:
            raise NotFoundError("Dispute", dispute_id)
        trade = await self._trades.get_by_id(db, dispute.trade_id)
        if trade is None or not (is_admin or trade.is_party(actor_id)):
            raise NotFoundError("Dispute", dispute_id)
        return DisputeWithTradeResponse(
            dispute=DisputeResponse.from_domain(dispute),
            trade=TradeResponse.from_domain(trade),
        )

    async def list_disputes(
        self,
        db: AsyncSession,
        is_admin: bool,
        cursor: str | None,
        limit: int,
        status: str | None = None,
    ) -> DisputeListResponse:
        if not is_admin:
            raise ForbiddenError("admin privileges required")
        if status is not None and status not in DisputeStatus.__members__:
            raise InputValidationError(f"unknown dispute status {status!r}")
        cursor_id = cursor_decode(cursor)
        rows = await self._disputes.list_disputes(db, status, cursor_id, limit + 1)
        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return DisputeListResponse(
            items=[DisputeResponse.from_domain(d) for d in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

"""HoldingService — time-locked holdings and trusted funding.

A holding credits its amount to the user's available balance and, until
expires_at, subtracts the same amount from what the user may reserve or
transfer (see EscrowLedger.snapshot).
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.amounts import format_amount, require_positive, require_scale, to_decimal
from src.p2p_common.database import atomic
from src.p2p_common.datetime_utils import utc_now
from src.p2p_common.enums import LedgerEntryType
from src.p2p_common.errors import ForbiddenError, NotFoundError
from src.p2p_common.pagination import cursor_decode, cursor_encode
from src.p2p_gateway.user.repository import UserRepository, UserRepositoryProtocol
from src.p2p_holding.application.schemas import (
    FundingResponse,
    HoldingListResponse,
    HoldingResponse,
)
from src.p2p_holding.domain.models import Holding
from src.p2p_holding.domain.period import expiry_for
from src.p2p_holding.domain.repository import HoldingRepositoryProtocol
from src.p2p_holding.infrastructure.persistence import HoldingRepository
from src.p2p_ledger.application.escrow import EscrowLedger
from src.p2p_ledger.domain.models import LedgerBalance

logger = logging.getLogger(__name__)


def _funding_amount(amount: object) -> Decimal:
    return require_scale(require_positive(to_decimal(amount)), 18)


class HoldingService:
    def __init__(
        self,
        holding_repo: HoldingRepositoryProtocol | None = None,
        escrow: EscrowLedger | None = None,
        user_repo: UserRepositoryProtocol | None = None,
    ) -> None:
        self._holdings: HoldingRepositoryProtocol = holding_repo or HoldingRepository()
        self._escrow = escrow or EscrowLedger(holding_repo=self._holdings)
        self._users: UserRepositoryProtocol = user_repo or UserRepository()

    async def _credit(
        self,
        db: AsyncSession,
        user_id: int,
        amount: Decimal,
        reference_type: str,
        reference_id: object,
        description: str,
    ) -> LedgerBalance:
        return await self._escrow.credit(
            db, user_id, amount, LedgerEntryType.FUNDING,
            reference_type, reference_id, description,
        )

    async def _insert_holding(
        self, db: AsyncSession, user_id: int, amount: Decimal, period_code: str, now: datetime
    ) -> Holding:
        code, expires_at = expiry_for(period_code, now)
        return await self._holdings.insert(db, user_id, amount, code, expires_at)

    async def create_holding(
        self, db: AsyncSession, user_id: int, amount: object, period_code: str
    ) -> HoldingResponse:
        value = _funding_amount(amount)
        now = utc_now()
        # Validate the period before any write.
        expiry_for(period_code, now)
        async with atomic(db):
            holding = await self._insert_holding(db, user_id, value, period_code, now)
            await self._credit(
                db, user_id, value, "HOLDING", holding.id,
                f"Holding #{holding.id} ({holding.period_code})",
            )
        logger.info(
            "Holding %s created for user %s: %s until %s",
            holding.id, user_id, value, holding.expires_at,
        )
        return HoldingResponse.from_domain(holding, now)

    async def update_holding_period(
        self, db: AsyncSession, is_admin: bool, holding_id: int, period_code: str
    ) -> HoldingResponse:
        if not is_admin:
            raise ForbiddenError("admin privileges required")
        now = utc_now()
        code, expires_at = expiry_for(period_code, now)
        async with atomic(db):
            holding = await self._holdings.get_by_id(db, holding_id, for_update=True)
            if holding is None:
                raise NotFoundError("Holding", holding_id)
            updated = await self._holdings.update_period(db, holding_id, code, expires_at)
            if updated is None:
                raise NotFoundError("Holding", holding_id)
        logger.info(
            "Holding %s period %s -> %s, expires %s",
            holding_id, holding.period_code, code, expires_at,
        )
        return HoldingResponse.from_domain(updated, now)

    async def fund_user(
        self,
        db: AsyncSession,
        identity_handle: str,
        amount: object,
        period_code: str | None = None,
    ) -> FundingResponse:
        """Credit a user from the trusted funding system, optionally time-locked."""
        value = _funding_amount(amount)
        now = utc_now()
        if period_code:
            expiry_for(period_code, now)
        async with atomic(db):
            user = await self._users.get_by_handle(db, identity_handle)
            if user is None:
                raise NotFoundError("User", identity_handle)
            holding = None
            if period_code:
                holding = await self._insert_holding(db, user.id, value, period_code, now)
                balance = await self._credit(
                    db, user.id, value, "HOLDING", holding.id,
                    f"Funding with {holding.period_code} holding #{holding.id}",
                )
            else:
                balance = await self._credit(db, user.id, value, "FUNDING", None, "Funding")
        logger.info(
            "Funded user %s (%s) with %s, holding=%s",
            user.id, identity_handle, value, holding.id if holding else None,
        )
        return FundingResponse(
            user_id=user.id,
            amount=format_amount(value, 18),
            available_balance=format_amount(balance.available_balance, 18),
            holding=HoldingResponse.from_domain(holding, now) if holding else None,
        )

    async def list_holdings(
        self,
        db: AsyncSession,
        is_admin: bool,
        cursor: str | None,
        limit: int,
        user_id: int | None = None,
    ) -> HoldingListResponse:
        if not is_admin:
            raise ForbiddenError("admin privileges required")
        cursor_id = cursor_decode(cursor)
        rows = await self._holdings.list_holdings(db, user_id, cursor_id, limit + 1)
        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        now = utc_now()
        return HoldingListResponse(
            items=[HoldingResponse.from_domain(h, now) for h in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

"""LedgerService — balance view, direct transfers and journal listings.

Transfers are zero-fee and move usable balance only: reserved, held and
floor amounts can never leave the sender.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.p2p_common.amounts import require_positive, require_scale, to_decimal
from src.p2p_common.database import atomic
from src.p2p_common.enums import LedgerEntryType
from src.p2p_common.errors import InputValidationError, InternalError, NotFoundError
from src.p2p_common.pagination import cursor_decode, cursor_encode
from src.p2p_gateway.user.repository import UserRepository, UserRepositoryProtocol
from src.p2p_ledger.application.escrow import EscrowLedger
from src.p2p_ledger.application.schemas import (
    BalanceResponse,
    LedgerEntriesResponse,
    LedgerEntryItem,
    TransferItem,
    TransferListResponse,
)
from src.p2p_ledger.application.settings_service import SettingsService
from src.p2p_ledger.domain.repository import LedgerRepositoryProtocol
from src.p2p_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)


class LedgerService:
    def __init__(
        self,
        ledger_repo: LedgerRepositoryProtocol | None = None,
        escrow: EscrowLedger | None = None,
        settings_service: SettingsService | None = None,
        user_repo: UserRepositoryProtocol | None = None,
    ) -> None:
        self._repo: LedgerRepositoryProtocol = ledger_repo or LedgerRepository()
        self._escrow = escrow or EscrowLedger(ledger_repo=self._repo)
        self._settings = settings_service or SettingsService()
        self._users: UserRepositoryProtocol = user_repo or UserRepository()

    async def get_balance(self, db: AsyncSession, user_id: int) -> BalanceResponse:
        async with atomic(db):
            trading = await self._settings.load_trading_settings(db)
            snap = await self._escrow.snapshot(db, user_id, trading)
        return BalanceResponse.from_snapshot(user_id, settings.LEDGER_ASSET_SYMBOL, snap)

    async def transfer(
        self,
        db: AsyncSession,
        sender_id: int,
        recipient_handle: str,
        amount: object,
        note: str | None = None,
    ) -> TransferItem:
        value = require_scale(require_positive(to_decimal(amount)), 18)
        async with atomic(db):
            recipient = await self._users.get_by_handle(db, recipient_handle)
            if recipient is None:
                raise NotFoundError("User", recipient_handle)
            if recipient.id == sender_id:
                raise InputValidationError("cannot transfer to yourself")
            trading = await self._settings.load_trading_settings(db)
            transfer = await self._repo.insert_transfer(
                db, sender_id, recipient.id, value, note
            )
            if transfer is None:
                raise InternalError("transfer insert returned no row")
            await self._escrow.debit_usable(
                db, sender_id, value, trading,
                LedgerEntryType.TRANSFER_OUT, "TRANSFER", transfer.id, note,
            )
            await self._escrow.credit(
                db, recipient.id, value,
                LedgerEntryType.TRANSFER_IN, "TRANSFER", transfer.id, note,
            )
        logger.info(
            "Transfer %s: %s -> %s amount=%s", transfer.id, sender_id, recipient.id, value
        )
        return TransferItem.from_domain(transfer, viewer_id=sender_id)

    async def list_transfers(
        self, db: AsyncSession, user_id: int, cursor: str | None, limit: int
    ) -> TransferListResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        rows = await self._repo.list_transfers(db, user_id, cursor_id, limit + 1)
        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return TransferListResponse(
            items=[TransferItem.from_domain(t, viewer_id=user_id) for t in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: int,
        cursor: str | None,
        limit: int,
        entry_type: str | None = None,
    ) -> LedgerEntriesResponse:
        if entry_type is not None and entry_type not in LedgerEntryType.__members__:
            raise InputValidationError(f"unknown entry_type {entry_type!r}")
        cursor_id = cursor_decode(cursor)
        rows = await self._repo.list_entries(db, user_id, cursor_id, limit + 1, entry_type)
        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerEntriesResponse(
            items=[LedgerEntryItem.from_domain(e) for e in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

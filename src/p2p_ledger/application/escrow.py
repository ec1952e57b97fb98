"""EscrowLedger — reserve / refund / capture over the two balance counters.

Every balance movement in the system goes through this class:

    reserve(user, A)        available -= A, locked += A   (usable checked first)
    refund(user, A)         locked -= A, available += A
    capture(s, b, A, fee)   s.locked -= A, b.available += A - fee  (fee is burned)
    credit(user, A)         available += A
    debit_usable(user, A)   available -= A                (usable checked first)

usable = available - holding_floor - sum(non-expired holdings)

Each mutation appends a ledger_entries row and runs inside the caller's
transaction; the balance row is locked with SELECT ... FOR UPDATE before the
usable check so the check and the write see the same state.
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.amounts import ZERO, require_positive
from src.p2p_common.datetime_utils import utc_now
from src.p2p_common.enums import LedgerEntryType
from src.p2p_common.errors import ConflictError, InsufficientFundsError, InternalError
from src.p2p_holding.domain.repository import HoldingRepositoryProtocol
from src.p2p_holding.infrastructure.persistence import HoldingRepository
from src.p2p_ledger.domain.models import BalanceSnapshot, LedgerBalance, TradingSettings
from src.p2p_ledger.domain.repository import LedgerRepositoryProtocol
from src.p2p_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)


class EscrowLedger:
    def __init__(
        self,
        ledger_repo: LedgerRepositoryProtocol | None = None,
        holding_repo: HoldingRepositoryProtocol | None = None,
    ) -> None:
        self._ledger: LedgerRepositoryProtocol = ledger_repo or LedgerRepository()
        self._holdings: HoldingRepositoryProtocol = holding_repo or HoldingRepository()

    async def snapshot(
        self,
        db: AsyncSession,
        user_id: int,
        trading: TradingSettings,
        lock: bool = False,
        now: datetime | None = None,
    ) -> BalanceSnapshot:
        await self._ledger.ensure_balance(db, user_id)
        balance = await self._ledger.get_balance(db, user_id, for_update=lock)
        if balance is None:
            raise InternalError(f"Ledger balance missing for user {user_id}")
        holding_locked = await self._holdings.sum_active(db, user_id, now or utc_now())
        return BalanceSnapshot(
            available=balance.available_balance,
            locked=balance.locked_balance,
            holding_locked=holding_locked,
            holding_floor=trading.holding_floor,
        )

    async def _require_usable(
        self, db: AsyncSession, user_id: int, amount: Decimal, trading: TradingSettings
    ) -> BalanceSnapshot:
        snap = await self.snapshot(db, user_id, trading, lock=True)
        if snap.available < amount:
            raise InsufficientFundsError(amount, snap.available, "balance")
        if snap.usable < amount:
            raise InsufficientFundsError(amount, max(snap.usable, ZERO), "usable")
        return snap

    async def _journal(
        self,
        db: AsyncSession,
        user_id: int,
        entry_type: LedgerEntryType,
        amount: Decimal,
        balance: LedgerBalance,
        reference_type: str | None,
        reference_id: object,
        description: str | None,
    ) -> None:
        await self._ledger.insert_entry(
            db,
            user_id,
            entry_type.value,
            amount,
            balance,
            reference_type,
            str(reference_id) if reference_id is not None else None,
            description,
        )

    async def reserve(
        self,
        db: AsyncSession,
        user_id: int,
        amount: Decimal,
        trading: TradingSettings,
        entry_type: LedgerEntryType,
        reference_type: str,
        reference_id: object,
        description: str | None = None,
    ) -> LedgerBalance:
        require_positive(amount)
        await self._require_usable(db, user_id, amount, trading)
        balance = await self._ledger.reserve(db, user_id, amount)
        if balance is None:
            raise ConflictError(f"balance of user {user_id} changed during reservation")
        await self._journal(
            db, user_id, entry_type, amount, balance, reference_type, reference_id, description
        )
        return balance

    async def refund(
        self,
        db: AsyncSession,
        user_id: int,
        amount: Decimal,
        entry_type: LedgerEntryType,
        reference_type: str,
        reference_id: object,
        description: str | None = None,
    ) -> LedgerBalance:
        require_positive(amount)
        balance = await self._ledger.refund(db, user_id, amount)
        if balance is None:
            raise InternalError(
                f"Locked balance of user {user_id} is below refund amount {amount}"
            )
        await self._journal(
            db, user_id, entry_type, amount, balance, reference_type, reference_id, description
        )
        return balance

    async def capture(
        self,
        db: AsyncSession,
        seller_id: int,
        buyer_id: int,
        amount: Decimal,
        fee: Decimal,
        trade_id: int,
    ) -> Decimal:
        """Move a reserved trade amount to the buyer, burning `fee`. Returns the payout."""
        require_positive(amount)
        payout = amount - fee
        seller_balance = await self._ledger.consume_locked(db, seller_id, amount)
        if seller_balance is None:
            raise InternalError(
                f"Locked balance of seller {seller_id} is below trade amount {amount}"
            )
        await self._journal(
            db, seller_id, LedgerEntryType.TRADE_CAPTURE, amount, seller_balance,
            "TRADE", trade_id, f"P2P Trade #{trade_id} escrow captured",
        )
        if payout > ZERO:
            await self._ledger.ensure_balance(db, buyer_id)
            buyer_balance = await self._ledger.credit(db, buyer_id, payout)
            if buyer_balance is None:
                raise InternalError(f"Ledger balance missing for user {buyer_id}")
            await self._journal(
                db, buyer_id, LedgerEntryType.TRADE_PAYOUT, payout, buyer_balance,
                "TRADE", trade_id, f"P2P Trade #{trade_id} payout (fee {fee})",
            )
        if fee > ZERO:
            logger.info("Trade %s burned fee %s", trade_id, fee)
        return payout

    async def credit(
        self,
        db: AsyncSession,
        user_id: int,
        amount: Decimal,
        entry_type: LedgerEntryType,
        reference_type: str,
        reference_id: object,
        description: str | None = None,
    ) -> LedgerBalance:
        require_positive(amount)
        await self._ledger.ensure_balance(db, user_id)
        balance = await self._ledger.credit(db, user_id, amount)
        if balance is None:
            raise InternalError(f"Ledger balance missing for user {user_id}")
        await self._journal(
            db, user_id, entry_type, amount, balance, reference_type, reference_id, description
        )
        return balance

    async def debit_usable(
        self,
        db: AsyncSession,
        user_id: int,
        amount: Decimal,
        trading: TradingSettings,
        entry_type: LedgerEntryType,
        reference_type: str,
        reference_id: object,
        description: str | None = None,
    ) -> LedgerBalance:
        require_positive(amount)
        await self._require_usable(db, user_id, amount, trading)
        balance = await self._ledger.debit(db, user_id, amount)
        if balance is None:
            raise ConflictError(f"balance of user {user_id} changed during debit")
        await self._journal(
            db, user_id, entry_type, amount, balance, reference_type, reference_id, description
        )
        return balance

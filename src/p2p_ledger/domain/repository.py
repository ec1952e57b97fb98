"""Repository Protocols: dependency inversion for testability.

Unit tests inject mocks or in-memory fakes conforming to these Protocols.
Infrastructure layer provides the real implementations.

Mutations return None when their SQL guard predicate matched no row
(insufficient counter, missing row); callers translate that into a
business error.
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_ledger.domain.models import LedgerBalance, LedgerEntry, Setting, Transfer


class LedgerRepositoryProtocol(Protocol):
    async def ensure_balance(self, db: AsyncSession, user_id: int) -> None: ...

    async def get_balance(
        self, db: AsyncSession, user_id: int, for_update: bool = False
    ) -> LedgerBalance | None: ...

    async def reserve(
        self, db: AsyncSession, user_id: int, amount: Decimal
    ) -> LedgerBalance | None: ...

    async def refund(
        self, db: AsyncSession, user_id: int, amount: Decimal
    ) -> LedgerBalance | None: ...

    async def consume_locked(
        self, db: AsyncSession, user_id: int, amount: Decimal
    ) -> LedgerBalance | None: ...

    async def credit(
        self, db: AsyncSession, user_id: int, amount: Decimal
    ) -> LedgerBalance | None: ...

    async def debit(
        self, db: AsyncSession, user_id: int, amount: Decimal
    ) -> LedgerBalance | None: ...

    async def insert_entry(
        self,
        db: AsyncSession,
        user_id: int,
        entry_type: str,
        amount: Decimal,
        balance: LedgerBalance,
        reference_type: str | None,
        reference_id: str | None,
        description: str | None,
    ) -> LedgerEntry: ...

    async def insert_transfer(
        self,
        db: AsyncSession,
        from_user_id: int,
        to_user_id: int,
        amount: Decimal,
        note: str | None,
        trade_id: int | None = None,
        created_at: datetime | None = None,
    ) -> Transfer | None: ...

    async def list_transfers(
        self, db: AsyncSession, user_id: int, cursor_id: int | None, limit: int
    ) -> list[Transfer]: ...

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: int,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]: ...


class SettingsRepositoryProtocol(Protocol):
    async def list_settings(self, db: AsyncSession) -> list[Setting]: ...

    async def upsert_setting(
        self, db: AsyncSession, key: str, value: str, description: str | None
    ) -> Setting: ...

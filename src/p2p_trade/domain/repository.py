"""Trade repository Protocol.

Every status change takes the set of statuses it may leave from; the SQL
`WHERE status = ANY(...)` guard makes a concurrent loser see None.
"""

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.enums import TradeStatus
from src.p2p_trade.domain.models import Trade


class TradeRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, trade: Trade) -> Trade: ...

    async def get_by_id(
        self, db: AsyncSession, trade_id: int, for_update: bool = False
    ) -> Trade | None: ...

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: int,
        cursor_id: int | None,
        limit: int,
        status: str | None,
    ) -> list[Trade]: ...

    async def mark_paid(
        self,
        db: AsyncSession,
        trade_id: int,
        proof: str | None,
        paid_at: datetime,
        from_statuses: Iterable[TradeStatus],
    ) -> Trade | None: ...

    async def complete(
        self,
        db: AsyncSession,
        trade_id: int,
        fee_amount: Decimal,
        fee_rate: Decimal,
        released_at: datetime,
        from_statuses: Iterable[TradeStatus],
    ) -> Trade | None: ...

    async def cancel(
        self,
        db: AsyncSession,
        trade_id: int,
        cancelled_at: datetime,
        from_statuses: Iterable[TradeStatus],
    ) -> Trade | None: ...

    async def mark_disputed(
        self, db: AsyncSession, trade_id: int, from_statuses: Iterable[TradeStatus]
    ) -> Trade | None: ...

    async def list_completed_without_transfer(
        self, db: AsyncSession, asset_symbol: str, limit: int
    ) -> list[Trade]: ...

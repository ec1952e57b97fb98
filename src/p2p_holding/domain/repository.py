"""Holding repository Protocol."""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_holding.domain.models import Holding


class HoldingRepositoryProtocol(Protocol):
    async def insert(
        self,
        db: AsyncSession,
        user_id: int,
        amount: Decimal,
        period_code: str,
        expires_at: datetime,
    ) -> Holding: ...

    async def get_by_id(
        self, db: AsyncSession, holding_id: int, for_update: bool = False
    ) -> Holding | None: ...

    async def update_period(
        self, db: AsyncSession, holding_id: int, period_code: str, expires_at: datetime
    ) -> Holding | None: ...

    async def sum_active(self, db: AsyncSession, user_id: int, now: datetime) -> Decimal: ...

    async def list_holdings(
        self, db: AsyncSession, user_id: int | None, cursor_id: int | None, limit: int
    ) -> list[Holding]: ...

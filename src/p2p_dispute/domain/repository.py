"""Dispute repository Protocol.

`insert` returns None when the trade already has a dispute (UNIQUE trade_id);
`resolve` returns None unless the dispute was still OPEN.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.enums import DisputeStatus
from src.p2p_dispute.domain.models import Dispute


class DisputeRepositoryProtocol(Protocol):
    async def insert(
        self, db: AsyncSession, trade_id: int, raised_by_id: int, reason: str
    ) -> Dispute | None: ...

    async def get_by_id(
        self, db: AsyncSession, dispute_id: int, for_update: bool = False
    ) -> Dispute | None: ...

    async def get_by_trade_id(self, db: AsyncSession, trade_id: int) -> Dispute | None: ...

    async def resolve(
        self,
        db: AsyncSession,
        dispute_id: int,
        outcome: DisputeStatus,
        note: str | None,
        resolved_by_id: int,
        resolved_at: datetime,
    ) -> Dispute | None: ...

    async def list_disputes(
        self, db: AsyncSession, status: str | None, cursor_id: int | None, limit: int
    ) -> list[Dispute]: ...

"""Offer repository Protocol.

`take_remaining`, `restore_remaining` and `mark_cancelled` are guarded by
state predicates; None means the guard failed (lost race or illegal state).
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_offer.domain.models import Offer


class OfferRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, offer: Offer) -> Offer: ...

    async def get_by_id(
        self, db: AsyncSession, offer_id: int, for_update: bool = False
    ) -> Offer | None: ...

    async def list_open(
        self, db: AsyncSession, cursor_id: int | None, limit: int, side: str | None
    ) -> list[Offer]: ...

    async def mark_cancelled(self, db: AsyncSession, offer_id: int) -> Offer | None: ...

    async def take_remaining(
        self, db: AsyncSession, offer_id: int, amount: Decimal
    ) -> Offer | None: ...

    async def restore_remaining(
        self, db: AsyncSession, offer_id: int, amount: Decimal
    ) -> Offer | None: ...

"""User lookups shared by the request layer and the core services."""

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class UserRef:
    id: int
    identity_handle: str
    is_admin: bool = False
    is_active: bool = True


class UserRepositoryProtocol(Protocol):
    async def get_by_id(self, db: AsyncSession, user_id: int) -> UserRef | None: ...

    async def get_by_handle(self, db: AsyncSession, handle: str) -> UserRef | None: ...


_GET_BY_ID_SQL = text("""
    SELECT id, identity_handle, is_admin, is_active
    FROM users
    WHERE id = :user_id
""")

_GET_BY_HANDLE_SQL = text("""
    SELECT id, identity_handle, is_admin, is_active
    FROM users
    WHERE identity_handle = :handle
""")


def _row_to_user(row: object) -> UserRef:
    return UserRef(
        id=row.id,  # type: ignore[attr-defined]
        identity_handle=row.identity_handle,  # type: ignore[attr-defined]
        is_admin=row.is_admin,  # type: ignore[attr-defined]
        is_active=row.is_active,  # type: ignore[attr-defined]
    )


class UserRepository:
    async def get_by_id(self, db: AsyncSession, user_id: int) -> UserRef | None:
        result = await db.execute(_GET_BY_ID_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_user(row) if row else None

    async def get_by_handle(self, db: AsyncSession, handle: str) -> UserRef | None:
        result = await db.execute(_GET_BY_HANDLE_SQL, {"handle": handle.strip()})
        row = result.fetchone()
        return _row_to_user(row) if row else None

"""HoldingRepository — concrete implementation of HoldingRepositoryProtocol."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_holding.domain.models import Holding

_COLUMNS = "id, user_id, amount, period_code, expires_at, created_at, updated_at"

_INSERT_SQL = text(f"""
    INSERT INTO holdings (user_id, amount, period_code, expires_at)
    VALUES (:user_id, :amount, :period_code, :expires_at)
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM holdings WHERE id = :holding_id")

_GET_FOR_UPDATE_SQL = text(f"SELECT {_COLUMNS} FROM holdings WHERE id = :holding_id FOR UPDATE")

_UPDATE_PERIOD_SQL = text(f"""
    UPDATE holdings
    SET period_code = :period_code,
        expires_at = :expires_at,
        updated_at = NOW()
    WHERE id = :holding_id
    RETURNING {_COLUMNS}
""")

_SUM_ACTIVE_SQL = text("""
    SELECT COALESCE(SUM(amount), 0)
    FROM holdings
    WHERE user_id = :user_id AND expires_at > :now
""")

_LIST_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM holdings
    WHERE (CAST(:user_id AS BIGINT) IS NULL OR user_id = CAST(:user_id AS BIGINT))
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_holding(row: object) -> Holding:
    return Holding(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        period_code=row.period_code,  # type: ignore[attr-defined]
        expires_at=row.expires_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class HoldingRepository:
    async def insert(
        self,
        db: AsyncSession,
        user_id: int,
        amount: Decimal,
        period_code: str,
        expires_at: datetime,
    ) -> Holding:
        result = await db.execute(
            _INSERT_SQL,
            {
                "user_id": user_id,
                "amount": amount,
                "period_code": period_code,
                "expires_at": expires_at,
            },
        )
        return _row_to_holding(result.fetchone())

    async def get_by_id(
        self, db: AsyncSession, holding_id: int, for_update: bool = False
    ) -> Holding | None:
        sql = _GET_FOR_UPDATE_SQL if for_update else _GET_SQL
        result = await db.execute(sql, {"holding_id": holding_id})
        row = result.fetchone()
        return _row_to_holding(row) if row else None

    async def update_period(
        self, db: AsyncSession, holding_id: int, period_code: str, expires_at: datetime
    ) -> Holding | None:
        result = await db.execute(
            _UPDATE_PERIOD_SQL,
            {"holding_id": holding_id, "period_code": period_code, "expires_at": expires_at},
        )
        row = result.fetchone()
        return _row_to_holding(row) if row else None

    async def sum_active(self, db: AsyncSession, user_id: int, now: datetime) -> Decimal:
        result = await db.execute(_SUM_ACTIVE_SQL, {"user_id": user_id, "now": now})
        return Decimal(result.scalar_one())

    async def list_holdings(
        self, db: AsyncSession, user_id: int | None, cursor_id: int | None, limit: int
    ) -> list[Holding]:
        result = await db.execute(
            _LIST_SQL, {"user_id": user_id, "cursor_id": cursor_id, "limit": limit}
        )
        return [_row_to_holding(r) for r in result.fetchall()]

"""DisputeRepository — concrete implementation of DisputeRepositoryProtocol."""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.enums import DisputeStatus
from src.p2p_dispute.domain.models import Dispute

_COLUMNS = (
    "id, trade_id, raised_by_id, reason, status, resolution_note, resolved_by_id, "
    "created_at, resolved_at"
)

# UNIQUE(trade_id) turns a concurrent second insert into zero rows, not an error.
_INSERT_SQL = text(f"""
    INSERT INTO disputes (trade_id, raised_by_id, reason, status)
    VALUES (:trade_id, :raised_by_id, :reason, 'OPEN')
    ON CONFLICT (trade_id) DO NOTHING
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM disputes WHERE id = :dispute_id")

_GET_FOR_UPDATE_SQL = text(f"SELECT {_COLUMNS} FROM disputes WHERE id = :dispute_id FOR UPDATE")

_GET_BY_TRADE_SQL = text(f"SELECT {_COLUMNS} FROM disputes WHERE trade_id = :trade_id")

_RESOLVE_SQL = text(f"""
    UPDATE disputes
    SET status = :outcome,
        resolution_note = :note,
        resolved_by_id = :resolved_by_id,
        resolved_at = :resolved_at,
        updated_at = NOW()
    WHERE id = :dispute_id AND status = 'OPEN'
    RETURNING {_COLUMNS}
""")

_LIST_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM disputes
    WHERE (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_dispute(row: object) -> Dispute:
    return Dispute(
        id=row.id,  # type: ignore[attr-defined]
        trade_id=row.trade_id,  # type: ignore[attr-defined]
        raised_by_id=row.raised_by_id,  # type: ignore[attr-defined]
        reason=row.reason,  # type: ignore[attr-defined]
        status=DisputeStatus(row.status),  # type: ignore[attr-defined]
        resolution_note=row.resolution_note,  # type: ignore[attr-defined]
        resolved_by_id=row.resolved_by_id,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
    )


class DisputeRepository:
    async def insert(
        self, db: AsyncSession, trade_id: int, raised_by_id: int, reason: str
    ) -> Dispute | None:
        result = await db.execute(
            _INSERT_SQL,
            {"trade_id": trade_id, "raised_by_id": raised_by_id, "reason": reason},
        )
        row = result.fetchone()
        return _row_to_dispute(row) if row else None

    async def get_by_id(
        self, db: AsyncSession, dispute_id: int, for_update: bool = False
    ) -> Dispute | None:
        sql = _GET_FOR_UPDATE_SQL if for_update else _GET_SQL
        result = await db.execute(sql, {"dispute_id": dispute_id})
        row = result.fetchone()
        return _row_to_dispute(row) if row else None

    async def get_by_trade_id(self, db: AsyncSession, trade_id: int) -> Dispute | None:
        result = await db.execute(_GET_BY_TRADE_SQL, {"trade_id": trade_id})
        row = result.fetchone()
        return _row_to_dispute(row) if row else None

    async def resolve(
        self,
        db: AsyncSession,
        dispute_id: int,
        outcome: DisputeStatus,
        note: str | None,
        resolved_by_id: int,
        resolved_at: datetime,
    ) -> Dispute | None:
        result = await db.execute(
            _RESOLVE_SQL,
            {
                "dispute_id": dispute_id,
                "outcome": outcome.value,
                "note": note,
                "resolved_by_id": resolved_by_id,
                "resolved_at": resolved_at,
            },
        )
        row = result.fetchone()
        return _row_to_dispute(row) if row else None

    async def list_disputes(
        self, db: AsyncSession, status: str | None, cursor_id: int | None, limit: int
    ) -> list[Dispute]:
        result = await db.execute(
            _LIST_SQL, {"status": status, "cursor_id": cursor_id, "limit": limit}
        )
        return [_row_to_dispute(r) for r in result.fetchall()]

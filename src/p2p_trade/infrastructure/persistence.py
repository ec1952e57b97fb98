"""TradeRepository — concrete implementation of TradeRepositoryProtocol."""

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.enums import EscrowSource, TradeStatus
from src.p2p_trade.domain.models import Trade

_COLUMNS = (
    "id, offer_id, buyer_id, seller_id, amount, price, asset_symbol, fiat_currency, "
    "status, escrow_source, payment_proof, paid_at, released_at, cancelled_at, "
    "fee_amount, fee_rate, created_at"
)

_INSERT_SQL = text(f"""
    INSERT INTO trades
        (offer_id, buyer_id, seller_id, amount, price, asset_symbol, fiat_currency,
         status, escrow_source)
    VALUES
        (:offer_id, :buyer_id, :seller_id, :amount, :price, :asset_symbol, :fiat_currency,
         :status, :escrow_source)
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM trades WHERE id = :trade_id")

_GET_FOR_UPDATE_SQL = text(f"SELECT {_COLUMNS} FROM trades WHERE id = :trade_id FOR UPDATE")

_LIST_FOR_USER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM trades
    WHERE (buyer_id = :user_id OR seller_id = :user_id)
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")

_MARK_PAID_SQL = text(f"""
    UPDATE trades
    SET status = 'PAID_PENDING_RELEASE',
        paid_at = :paid_at,
        payment_proof = COALESCE(CAST(:proof AS TEXT), payment_proof),
        updated_at = NOW()
    WHERE id = :trade_id AND status = ANY(CAST(:from_statuses AS TEXT[]))
    RETURNING {_COLUMNS}
""")

_COMPLETE_SQL = text(f"""
    UPDATE trades
    SET status = 'COMPLETED',
        released_at = :released_at,
        fee_amount = :fee_amount,
        fee_rate = :fee_rate,
        updated_at = NOW()
    WHERE id = :trade_id AND status = ANY(CAST(:from_statuses AS TEXT[]))
    RETURNING {_COLUMNS}
""")

_CANCEL_SQL = text(f"""
    UPDATE trades
    SET status = 'CANCELLED',
        cancelled_at = :cancelled_at,
        updated_at = NOW()
    WHERE id = :trade_id AND status = ANY(CAST(:from_statuses AS TEXT[]))
    RETURNING {_COLUMNS}
""")

_MARK_DISPUTED_SQL = text(f"""
    UPDATE trades
    SET status = 'DISPUTED',
        updated_at = NOW()
    WHERE id = :trade_id AND status = ANY(CAST(:from_statuses AS TEXT[]))
    RETURNING {_COLUMNS}
""")

# Completed ledger-asset trades that never got their audit Transfer row.
_COMPLETED_WITHOUT_TRANSFER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM trades t
    WHERE t.status = 'COMPLETED'
      AND t.released_at IS NOT NULL
      AND t.asset_symbol = :asset_symbol
      AND NOT EXISTS (SELECT 1 FROM transfers tr WHERE tr.trade_id = t.id)
    ORDER BY t.id
    LIMIT :limit
""")


def _statuses(values: Iterable[TradeStatus]) -> list[str]:
    return [s.value for s in values]


def _row_to_trade(row: object) -> Trade:
    return Trade(
        id=row.id,  # type: ignore[attr-defined]
        offer_id=row.offer_id,  # type: ignore[attr-defined]
        buyer_id=row.buyer_id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        asset_symbol=row.asset_symbol,  # type: ignore[attr-defined]
        fiat_currency=row.fiat_currency,  # type: ignore[attr-defined]
        status=TradeStatus(row.status),  # type: ignore[attr-defined]
        escrow_source=EscrowSource(row.escrow_source),  # type: ignore[attr-defined]
        payment_proof=row.payment_proof,  # type: ignore[attr-defined]
        paid_at=row.paid_at,  # type: ignore[attr-defined]
        released_at=row.released_at,  # type: ignore[attr-defined]
        cancelled_at=row.cancelled_at,  # type: ignore[attr-defined]
        fee_amount=row.fee_amount,  # type: ignore[attr-defined]
        fee_rate=row.fee_rate,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class TradeRepository:
    async def insert(self, db: AsyncSession, trade: Trade) -> Trade:
        result = await db.execute(
            _INSERT_SQL,
            {
                "offer_id": trade.offer_id,
                "buyer_id": trade.buyer_id,
                "seller_id": trade.seller_id,
                "amount": trade.amount,
                "price": trade.price,
                "asset_symbol": trade.asset_symbol,
                "fiat_currency": trade.fiat_currency,
                "status": trade.status.value,
                "escrow_source": trade.escrow_source.value,
            },
        )
        return _row_to_trade(result.fetchone())

    async def get_by_id(
        self, db: AsyncSession, trade_id: int, for_update: bool = False
    ) -> Trade | None:
        sql = _GET_FOR_UPDATE_SQL if for_update else _GET_SQL
        result = await db.execute(sql, {"trade_id": trade_id})
        row = result.fetchone()
        return _row_to_trade(row) if row else None

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: int,
        cursor_id: int | None,
        limit: int,
        status: str | None,
    ) -> list[Trade]:
        result = await db.execute(
            _LIST_FOR_USER_SQL,
            {"user_id": user_id, "cursor_id": cursor_id, "limit": limit, "status": status},
        )
        return [_row_to_trade(r) for r in result.fetchall()]

    async def _transition(
        self, db: AsyncSession, sql: object, params: dict[str, object]
    ) -> Trade | None:
        result = await db.execute(sql, params)  # type: ignore[arg-type]
        row = result.fetchone()
        return _row_to_trade(row) if row else None

    async def mark_paid(
        self,
        db: AsyncSession,
        trade_id: int,
        proof: str | None,
        paid_at: datetime,
        from_statuses: Iterable[TradeStatus],
    ) -> Trade | None:
        return await self._transition(
            db,
            _MARK_PAID_SQL,
            {
                "trade_id": trade_id,
                "proof": proof,
                "paid_at": paid_at,
                "from_statuses": _statuses(from_statuses),
            },
        )

    async def complete(
        self,
        db: AsyncSession,
        trade_id: int,
        fee_amount: Decimal,
        fee_rate: Decimal,
        released_at: datetime,
        from_statuses: Iterable[TradeStatus],
    ) -> Trade | None:
        return await self._transition(
            db,
            _COMPLETE_SQL,
            {
                "trade_id": trade_id,
                "fee_amount": fee_amount,
                "fee_rate": fee_rate,
                "released_at": released_at,
                "from_statuses": _statuses(from_statuses),
            },
        )

    async def cancel(
        self,
        db: AsyncSession,
        trade_id: int,
        cancelled_at: datetime,
        from_statuses: Iterable[TradeStatus],
    ) -> Trade | None:
        return await self._transition(
            db,
            _CANCEL_SQL,
            {
                "trade_id": trade_id,
                "cancelled_at": cancelled_at,
                "from_statuses": _statuses(from_statuses),
            },
        )

    async def mark_disputed(
        self, db: AsyncSession, trade_id: int, from_statuses: Iterable[TradeStatus]
    ) -> Trade | None:
        return await self._transition(
            db,
            _MARK_DISPUTED_SQL,
            {"trade_id": trade_id, "from_statuses": _statuses(from_statuses)},
        )

    async def list_completed_without_transfer(
        self, db: AsyncSession, asset_symbol: str, limit: int
    ) -> list[Trade]:
        result = await db.execute(
            _COMPLETED_WITHOUT_TRANSFER_SQL, {"asset_symbol": asset_symbol, "limit": limit}
        )
        return [_row_to_trade(r) for r in result.fetchall()]

"""OfferRepository — concrete implementation of OfferRepositoryProtocol."""

import json
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.enums import OfferSide, OfferStatus
from src.p2p_offer.domain.models import Offer

_COLUMNS = (
    "id, maker_id, side, asset_symbol, fiat_currency, price, amount, remaining, "
    "min_limit, max_limit, payment_methods, status, created_at, cancelled_at"
)

_INSERT_SQL = text(f"""
    INSERT INTO offers
        (maker_id, side, asset_symbol, fiat_currency, price, amount, remaining,
         min_limit, max_limit, payment_methods, status)
    VALUES
        (:maker_id, :side, :asset_symbol, :fiat_currency, :price, :amount, :amount,
         :min_limit, :max_limit, CAST(:payment_methods AS JSONB), 'OPEN')
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM offers WHERE id = :offer_id")

_GET_FOR_UPDATE_SQL = text(f"SELECT {_COLUMNS} FROM offers WHERE id = :offer_id FOR UPDATE")

_LIST_OPEN_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM offers
    WHERE status = 'OPEN'
      AND remaining > 0
      AND (CAST(:side AS TEXT) IS NULL OR side = CAST(:side AS TEXT))
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")

_MARK_CANCELLED_SQL = text(f"""
    UPDATE offers
    SET status = 'CANCELLED',
        cancelled_at = NOW(),
        updated_at = NOW()
    WHERE id = :offer_id AND status = 'OPEN'
    RETURNING {_COLUMNS}
""")

_TAKE_REMAINING_SQL = text(f"""
    UPDATE offers
    SET remaining = remaining - :amount,
        updated_at = NOW()
    WHERE id = :offer_id AND status = 'OPEN' AND remaining >= :amount
    RETURNING {_COLUMNS}
""")

_RESTORE_REMAINING_SQL = text(f"""
    UPDATE offers
    SET remaining = remaining + :amount,
        updated_at = NOW()
    WHERE id = :offer_id AND status = 'OPEN' AND remaining + :amount <= amount
    RETURNING {_COLUMNS}
""")


def _row_to_offer(row: object) -> Offer:
    methods = row.payment_methods  # type: ignore[attr-defined]
    if isinstance(methods, str):
        methods = json.loads(methods)
    return Offer(
        id=row.id,  # type: ignore[attr-defined]
        maker_id=row.maker_id,  # type: ignore[attr-defined]
        side=OfferSide(row.side),  # type: ignore[attr-defined]
        asset_symbol=row.asset_symbol,  # type: ignore[attr-defined]
        fiat_currency=row.fiat_currency,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        remaining=row.remaining,  # type: ignore[attr-defined]
        status=OfferStatus(row.status),  # type: ignore[attr-defined]
        min_limit=row.min_limit,  # type: ignore[attr-defined]
        max_limit=row.max_limit,  # type: ignore[attr-defined]
        payment_methods=list(methods or []),
        created_at=row.created_at,  # type: ignore[attr-defined]
        cancelled_at=row.cancelled_at,  # type: ignore[attr-defined]
    )


class OfferRepository:
    async def insert(self, db: AsyncSession, offer: Offer) -> Offer:
        result = await db.execute(
            _INSERT_SQL,
            {
                "maker_id": offer.maker_id,
                "side": offer.side.value,
                "asset_symbol": offer.asset_symbol,
                "fiat_currency": offer.fiat_currency,
                "price": offer.price,
                "amount": offer.amount,
                "min_limit": offer.min_limit,
                "max_limit": offer.max_limit,
                "payment_methods": json.dumps(offer.payment_methods),
            },
        )
        return _row_to_offer(result.fetchone())

    async def get_by_id(
        self, db: AsyncSession, offer_id: int, for_update: bool = False
    ) -> Offer | None:
        sql = _GET_FOR_UPDATE_SQL if for_update else _GET_SQL
        result = await db.execute(sql, {"offer_id": offer_id})
        row = result.fetchone()
        return _row_to_offer(row) if row else None

    async def list_open(
        self, db: AsyncSession, cursor_id: int | None, limit: int, side: str | None
    ) -> list[Offer]:
        result = await db.execute(
            _LIST_OPEN_SQL, {"cursor_id": cursor_id, "limit": limit, "side": side}
        )
        return [_row_to_offer(r) for r in result.fetchall()]

    async def mark_cancelled(self, db: AsyncSession, offer_id: int) -> Offer | None:
        result = await db.execute(_MARK_CANCELLED_SQL, {"offer_id": offer_id})
        row = result.fetchone()
        return _row_to_offer(row) if row else None

    async def take_remaining(
        self, db: AsyncSession, offer_id: int, amount: Decimal
    ) -> Offer | None:
        result = await db.execute(_TAKE_REMAINING_SQL, {"offer_id": offer_id, "amount": amount})
        row = result.fetchone()
        return _row_to_offer(row) if row else None

    async def restore_remaining(
        self, db: AsyncSession, offer_id: int, amount: Decimal
    ) -> Offer | None:
        result = await db.execute(
            _RESTORE_REMAINING_SQL, {"offer_id": offer_id, "amount": amount}
        )
        row = result.fetchone()
        return _row_to_offer(row) if row else None

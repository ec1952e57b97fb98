"""LedgerRepository / SettingsRepository — concrete Protocol implementations.

All balance-mutating operations use atomic PostgreSQL UPDATE ... RETURNING.
A result of 0 rows means a guard predicate failed (counter would go negative).
The CHECK constraints on ledger_balances are the last line of defence.

Transaction ownership: the CALLER (application service) owns the transaction
via `async with atomic(db)`.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_ledger.domain.models import LedgerBalance, LedgerEntry, Setting, Transfer

# ---------------------------------------------------------------------------
# SQL: ledger_balances
# ---------------------------------------------------------------------------

_BALANCE_COLUMNS = "user_id, available_balance, locked_balance, version, updated_at"

_ENSURE_BALANCE_SQL = text("""
    INSERT INTO ledger_balances (user_id)
    VALUES (:user_id)
    ON CONFLICT (user_id) DO NOTHING
""")

_GET_BALANCE_SQL = text(f"""
    SELECT {_BALANCE_COLUMNS}
    FROM ledger_balances
    WHERE user_id = :user_id
""")

_GET_BALANCE_FOR_UPDATE_SQL = text(f"""
    SELECT {_BALANCE_COLUMNS}
    FROM ledger_balances
    WHERE user_id = :user_id
    FOR UPDATE
""")

_RESERVE_SQL = text(f"""
    UPDATE ledger_balances
    SET available_balance = available_balance - :amount,
        locked_balance    = locked_balance    + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND available_balance >= :amount
    RETURNING {_BALANCE_COLUMNS}
""")

_REFUND_SQL = text(f"""
    UPDATE ledger_balances
    SET available_balance = available_balance + :amount,
        locked_balance    = locked_balance    - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND locked_balance >= :amount
    RETURNING {_BALANCE_COLUMNS}
""")

_CONSUME_LOCKED_SQL = text(f"""
    UPDATE ledger_balances
    SET locked_balance = locked_balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND locked_balance >= :amount
    RETURNING {_BALANCE_COLUMNS}
""")

_CREDIT_SQL = text(f"""
    UPDATE ledger_balances
    SET available_balance = available_balance + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING {_BALANCE_COLUMNS}
""")

_DEBIT_SQL = text(f"""
    UPDATE ledger_balances
    SET available_balance = available_balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND available_balance >= :amount
    RETURNING {_BALANCE_COLUMNS}
""")

# ---------------------------------------------------------------------------
# SQL: ledger_entries / transfers
# ---------------------------------------------------------------------------

_ENTRY_COLUMNS = (
    "id, user_id, entry_type, amount, available_after, locked_after, "
    "reference_type, reference_id, description, created_at"
)

_INSERT_ENTRY_SQL = text(f"""
    INSERT INTO ledger_entries
        (user_id, entry_type, amount, available_after, locked_after,
         reference_type, reference_id, description)
    VALUES
        (:user_id, :entry_type, :amount, :available_after, :locked_after,
         :reference_type, :reference_id, :description)
    RETURNING {_ENTRY_COLUMNS}
""")

_LIST_ENTRIES_SQL = text(f"""
    SELECT {_ENTRY_COLUMNS}
    FROM ledger_entries
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
      AND (CAST(:entry_type AS TEXT) IS NULL OR entry_type = CAST(:entry_type AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_TRANSFER_COLUMNS = "id, from_user_id, to_user_id, amount, status, note, trade_id, created_at"

# trade_id is UNIQUE; NULLs never conflict, so direct transfers always insert.
_INSERT_TRANSFER_SQL = text(f"""
    INSERT INTO transfers (from_user_id, to_user_id, amount, note, trade_id, created_at)
    VALUES (:from_user_id, :to_user_id, :amount, :note, :trade_id,
            COALESCE(CAST(:created_at AS TIMESTAMPTZ), NOW()))
    ON CONFLICT (trade_id) DO NOTHING
    RETURNING {_TRANSFER_COLUMNS}
""")

_LIST_TRANSFERS_SQL = text(f"""
    SELECT {_TRANSFER_COLUMNS}
    FROM transfers
    WHERE (from_user_id = :user_id OR to_user_id = :user_id)
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# SQL: settings
# ---------------------------------------------------------------------------

_LIST_SETTINGS_SQL = text("""
    SELECT key, value, description, updated_at FROM settings ORDER BY key
""")

_UPSERT_SETTING_SQL = text("""
    INSERT INTO settings (key, value, description)
    VALUES (:key, :value, :description)
    ON CONFLICT (key) DO UPDATE
        SET value = EXCLUDED.value,
            description = COALESCE(EXCLUDED.description, settings.description),
            updated_at = NOW()
    RETURNING key, value, description, updated_at
""")


def _row_to_balance(row: object) -> LedgerBalance:
    return LedgerBalance(
        user_id=row.user_id,  # type: ignore[attr-defined]
        available_balance=row.available_balance,  # type: ignore[attr-defined]
        locked_balance=row.locked_balance,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_entry(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        available_after=row.available_after,  # type: ignore[attr-defined]
        locked_after=row.locked_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_transfer(row: object) -> Transfer:
    return Transfer(
        id=row.id,  # type: ignore[attr-defined]
        from_user_id=row.from_user_id,  # type: ignore[attr-defined]
        to_user_id=row.to_user_id,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        note=row.note,  # type: ignore[attr-defined]
        trade_id=row.trade_id,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_setting(row: object) -> Setting:
    return Setting(
        key=row.key,  # type: ignore[attr-defined]
        value=row.value,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class LedgerRepository:
    """Concrete repository; every counter mutation is atomic at the SQL level."""

    async def ensure_balance(self, db: AsyncSession, user_id: int) -> None:
        await db.execute(_ENSURE_BALANCE_SQL, {"user_id": user_id})

    async def get_balance(
        self, db: AsyncSession, user_id: int, for_update: bool = False
    ) -> LedgerBalance | None:
        sql = _GET_BALANCE_FOR_UPDATE_SQL if for_update else _GET_BALANCE_SQL
        result = await db.execute(sql, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_balance(row) if row else None

    async def _mutate(
        self, db: AsyncSession, sql: object, user_id: int, amount: Decimal
    ) -> LedgerBalance | None:
        result = await db.execute(sql, {"user_id": user_id, "amount": amount})  # type: ignore[arg-type]
        row = result.fetchone()
        return _row_to_balance(row) if row else None

    async def reserve(
        self, db: AsyncSession, user_id: int, amount: Decimal
    ) -> LedgerBalance | None:
        return await self._mutate(db, _RESERVE_SQL, user_id, amount)

    async def refund(
        self, db: AsyncSession, user_id: int, amount: Decimal
    ) -> LedgerBalance | None:
        return await self._mutate(db, _REFUND_SQL, user_id, amount)

    async def consume_locked(
        self, db: AsyncSession, user_id: int, amount: Decimal
    ) -> LedgerBalance | None:
        return await self._mutate(db, _CONSUME_LOCKED_SQL, user_id, amount)

    async def credit(
        self, db: AsyncSession, user_id: int, amount: Decimal
    ) -> LedgerBalance | None:
        return await self._mutate(db, _CREDIT_SQL, user_id, amount)

    async def debit(
        self, db: AsyncSession, user_id: int, amount: Decimal
    ) -> LedgerBalance | None:
        return await self._mutate(db, _DEBIT_SQL, user_id, amount)

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
    ) -> LedgerEntry:
        result = await db.execute(
            _INSERT_ENTRY_SQL,
            {
                "user_id": user_id,
                "entry_type": entry_type,
                "amount": amount,
                "available_after": balance.available_balance,
                "locked_after": balance.locked_balance,
                "reference_type": reference_type,
                "reference_id": reference_id,
                "description": description,
            },
        )
        return _row_to_entry(result.fetchone())

    async def insert_transfer(
        self,
        db: AsyncSession,
        from_user_id: int,
        to_user_id: int,
        amount: Decimal,
        note: str | None,
        trade_id: int | None = None,
        created_at: datetime | None = None,
    ) -> Transfer | None:
        result = await db.execute(
            _INSERT_TRANSFER_SQL,
            {
                "from_user_id": from_user_id,
                "to_user_id": to_user_id,
                "amount": amount,
                "note": note,
                "trade_id": trade_id,
                "created_at": created_at,
            },
        )
        row = result.fetchone()
        return _row_to_transfer(row) if row else None

    async def list_transfers(
        self, db: AsyncSession, user_id: int, cursor_id: int | None, limit: int
    ) -> list[Transfer]:
        result = await db.execute(
            _LIST_TRANSFERS_SQL,
            {"user_id": user_id, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_transfer(r) for r in result.fetchall()]

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: int,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_ENTRIES_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "limit": limit,
                "entry_type": entry_type,
            },
        )
        return [_row_to_entry(r) for r in result.fetchall()]


class SettingsRepository:
    async def list_settings(self, db: AsyncSession) -> list[Setting]:
        result = await db.execute(_LIST_SETTINGS_SQL)
        return [_row_to_setting(r) for r in result.fetchall()]

    async def upsert_setting(
        self, db: AsyncSession, key: str, value: str, description: str | None
    ) -> Setting:
        result = await db.execute(
            _UPSERT_SETTING_SQL, {"key": key, "value": value, "description": description}
        )
        return _row_to_setting(result.fetchone())

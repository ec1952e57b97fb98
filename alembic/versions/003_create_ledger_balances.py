"""003: create ledger_balances table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE ledger_balances (
            user_id             BIGINT          PRIMARY KEY REFERENCES users (id),
            available_balance   NUMERIC(30,18)  NOT NULL DEFAULT 0,
            locked_balance      NUMERIC(30,18)  NOT NULL DEFAULT 0,
            version             BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_ledger_available_gte_0  CHECK (available_balance >= 0),
            CONSTRAINT ck_ledger_locked_gte_0     CHECK (locked_balance >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_ledger_balances_updated_at
            BEFORE UPDATE ON ledger_balances
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON TABLE ledger_balances IS "
        "'Ledger asset balances: available + locked (escrow reservations)';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ledger_balances CASCADE;")

"""004: create ledger_entries table

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE ledger_entries (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         BIGINT          NOT NULL REFERENCES users (id),
            entry_type      VARCHAR(30)     NOT NULL,
            amount          NUMERIC(30,18)  NOT NULL,
            available_after NUMERIC(30,18)  NOT NULL,
            locked_after    NUMERIC(30,18)  NOT NULL,
            reference_type  VARCHAR(30),
            reference_id    VARCHAR(64),
            description     VARCHAR(500),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_ledger_entry_type CHECK (
                entry_type IN (
                    'FUNDING', 'TRANSFER_OUT', 'TRANSFER_IN',
                    'OFFER_RESERVE', 'TRADE_RESERVE',
                    'OFFER_REFUND', 'TRADE_REFUND', 'DISPUTE_REFUND',
                    'TRADE_CAPTURE', 'TRADE_PAYOUT'
                )
            ),
            CONSTRAINT ck_ledger_entry_amount_gt_0 CHECK (amount > 0)
        );
    """)
    op.execute("CREATE INDEX idx_ledger_user_id ON ledger_entries (user_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_ledger_reference
        ON ledger_entries (reference_type, reference_id)
        WHERE reference_id IS NOT NULL;
    """)
    op.execute("""
        CREATE TRIGGER trg_ledger_entries_append_only
        BEFORE UPDATE OR DELETE ON ledger_entries
        FOR EACH ROW EXECUTE FUNCTION fn_reject_journal_mutation();
    """)
    op.execute(
        "COMMENT ON TABLE ledger_entries IS 'Balance journal, append-only, never updated or deleted';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ledger_entries CASCADE;")

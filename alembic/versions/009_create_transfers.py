"""009: create transfers table

Revision ID: 009
Revises: 008
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "009"
down_revision: Union[str, None] = "008"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transfers (
            id              BIGSERIAL       PRIMARY KEY,
            from_user_id    BIGINT          NOT NULL REFERENCES users (id),
            to_user_id      BIGINT          NOT NULL REFERENCES users (id),
            amount          NUMERIC(30,18)  NOT NULL,
            status          VARCHAR(16)     NOT NULL DEFAULT 'COMPLETED',
            note            VARCHAR(500),
            trade_id        BIGINT          REFERENCES trades (id),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_transfers_trade_id    UNIQUE (trade_id),
            CONSTRAINT ck_transfers_amount_gt_0 CHECK (amount > 0)
        );
    """)
    op.execute("CREATE INDEX idx_transfers_from ON transfers (from_user_id, id DESC);")
    op.execute("CREATE INDEX idx_transfers_to ON transfers (to_user_id, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_transfers_append_only
        BEFORE UPDATE OR DELETE ON transfers
        FOR EACH ROW EXECUTE FUNCTION fn_reject_journal_mutation();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transfers CASCADE;")

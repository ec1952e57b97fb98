"""010: create disputes table

Revision ID: 010
Revises: 009
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "010"
down_revision: Union[str, None] = "009"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE disputes (
            id                  BIGSERIAL       PRIMARY KEY,
            trade_id            BIGINT          NOT NULL REFERENCES trades (id),
            raised_by_id        BIGINT          NOT NULL REFERENCES users (id),
            reason              TEXT            NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'OPEN',
            resolution_note     TEXT,
            resolved_by_id      BIGINT          REFERENCES users (id),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            resolved_at         TIMESTAMPTZ,
            CONSTRAINT uq_disputes_trade_id UNIQUE (trade_id),
            CONSTRAINT ck_disputes_status CHECK (
                status IN ('OPEN', 'RESOLVED', 'REJECTED', 'CLOSED')
            )
        );
    """)
    op.execute("CREATE INDEX idx_disputes_status ON disputes (status, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_disputes_updated_at
            BEFORE UPDATE ON disputes
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS disputes CASCADE;")

"""008: create holdings table

Revision ID: 008
Revises: 007
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE holdings (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         BIGINT          NOT NULL REFERENCES users (id),
            amount          NUMERIC(30,18)  NOT NULL,
            period_code     VARCHAR(10)     NOT NULL,
            expires_at      TIMESTAMPTZ     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_holdings_amount_gt_0  CHECK (amount > 0),
            CONSTRAINT ck_holdings_period_code  CHECK (period_code ~ '^[0-9]+M$')
        );
    """)
    op.execute("CREATE INDEX idx_holdings_user_expires ON holdings (user_id, expires_at);")
    op.execute("""
        CREATE TRIGGER trg_holdings_updated_at
            BEFORE UPDATE ON holdings
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS holdings CASCADE;")

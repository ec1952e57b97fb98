"""006: create offers table

Revision ID: 006
Revises: 005
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE offers (
            id                  BIGSERIAL       PRIMARY KEY,
            maker_id            BIGINT          NOT NULL REFERENCES users (id),
            side                VARCHAR(4)      NOT NULL,
            asset_symbol        VARCHAR(16)     NOT NULL,
            fiat_currency       VARCHAR(16)     NOT NULL,
            price               NUMERIC(20,8)   NOT NULL,
            amount              NUMERIC(20,8)   NOT NULL,
            remaining           NUMERIC(20,8)   NOT NULL,
            min_limit           NUMERIC(20,8),
            max_limit           NUMERIC(20,8),
            payment_methods     JSONB           NOT NULL DEFAULT '[]'::jsonb,
            status              VARCHAR(16)     NOT NULL DEFAULT 'OPEN',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            cancelled_at        TIMESTAMPTZ,
            CONSTRAINT ck_offers_side           CHECK (side IN ('BUY', 'SELL')),
            CONSTRAINT ck_offers_status         CHECK (status IN ('OPEN', 'CANCELLED')),
            CONSTRAINT ck_offers_price_gt_0     CHECK (price > 0),
            CONSTRAINT ck_offers_amount_gt_0    CHECK (amount > 0),
            CONSTRAINT ck_offers_remaining      CHECK (remaining >= 0 AND remaining <= amount)
        );
    """)
    op.execute("CREATE INDEX idx_offers_open ON offers (id DESC) WHERE status = 'OPEN';")
    op.execute("CREATE INDEX idx_offers_maker ON offers (maker_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_offers_updated_at
            BEFORE UPDATE ON offers
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS offers CASCADE;")

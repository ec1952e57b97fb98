"""007: create trades table

Revision ID: 007
Revises: 006
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE trades (
            id                  BIGSERIAL       PRIMARY KEY,
            offer_id            BIGINT          NOT NULL REFERENCES offers (id),
            buyer_id            BIGINT          NOT NULL REFERENCES users (id),
            seller_id           BIGINT          NOT NULL REFERENCES users (id),
            amount              NUMERIC(20,8)   NOT NULL,
            price               NUMERIC(20,8)   NOT NULL,
            asset_symbol        VARCHAR(16)     NOT NULL,
            fiat_currency       VARCHAR(16)     NOT NULL,
            status              VARCHAR(24)     NOT NULL DEFAULT 'PENDING',
            escrow_source       VARCHAR(10)     NOT NULL DEFAULT 'NONE',
            payment_proof       TEXT,
            paid_at             TIMESTAMPTZ,
            released_at         TIMESTAMPTZ,
            cancelled_at        TIMESTAMPTZ,
            fee_amount          NUMERIC(20,8),
            fee_rate            NUMERIC(12,8),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_trades_status CHECK (
                status IN (
                    'PENDING', 'PENDING_PAYMENT', 'PAID_PENDING_RELEASE',
                    'DISPUTED', 'COMPLETED', 'CANCELLED'
                )
            ),
            CONSTRAINT ck_trades_escrow_source  CHECK (escrow_source IN ('OFFER', 'ACCEPTOR', 'NONE')),
            CONSTRAINT ck_trades_amount_gt_0    CHECK (amount > 0),
            CONSTRAINT ck_trades_parties        CHECK (buyer_id <> seller_id)
        );
    """)
    op.execute("CREATE INDEX idx_trades_offer ON trades (offer_id);")
    op.execute("CREATE INDEX idx_trades_buyer ON trades (buyer_id, id DESC);")
    op.execute("CREATE INDEX idx_trades_seller ON trades (seller_id, id DESC);")
    op.execute("CREATE INDEX idx_trades_status ON trades (status);")
    op.execute("""
        CREATE TRIGGER trg_trades_updated_at
            BEFORE UPDATE ON trades
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades CASCADE;")

"""005: create settings table and seed trading settings

Revision ID: 005
Revises: 004
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE settings (
            key             VARCHAR(64)     PRIMARY KEY,
            value           VARCHAR(100)    NOT NULL,
            description     VARCHAR(500),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_settings_updated_at
            BEFORE UPDATE ON settings
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("""
        INSERT INTO settings (key, value, description) VALUES
            ('p2p_fee_rate', '0', 'P2P trade fee in percent (0-100), burned on release'),
            ('holding_fda_amount', '0', 'Minimum balance every user must keep unreserved')
        ON CONFLICT (key) DO NOTHING;
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS settings CASCADE;")

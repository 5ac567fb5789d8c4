"""003: create illiquid_markets table

Revision ID: 003
Revises: 002
Create Date: 2025-12-01
"""
from typing import Sequence, Union

from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE illiquid_markets (
            ticker      VARCHAR(128)    PRIMARY KEY,
            reason      TEXT,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("COMMENT ON TABLE illiquid_markets IS 'Tickers excluded from candidate selection';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS illiquid_markets CASCADE;")

"""001: create order_batches table and the updated_at trigger function

IDs are VARCHAR(64): the application generates string ids and reads them
back as str.

Revision ID: 001
Revises:
Create Date: 2025-12-01
"""
from typing import Sequence, Union

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE order_batches (
            id                              VARCHAR(64)     PRIMARY KEY,
            batch_date                      DATE            NOT NULL,
            unit_size_cents                 INT             NOT NULL DEFAULT 100,
            total_orders                    INT             NOT NULL DEFAULT 0,
            total_cost_cents                BIGINT          NOT NULL DEFAULT 0,
            total_potential_payout_cents    BIGINT          NOT NULL DEFAULT 0,
            is_paused                       BOOLEAN         NOT NULL DEFAULT FALSE,
            prepared_at                     TIMESTAMPTZ,
            executed_at                     TIMESTAMPTZ,
            created_at                      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at                      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_order_batches_date        UNIQUE (batch_date),
            CONSTRAINT ck_order_batches_totals      CHECK (
                total_orders >= 0 AND total_cost_cents >= 0 AND total_potential_payout_cents >= 0
            )
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_order_batches_updated_at
            BEFORE UPDATE ON order_batches
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE order_batches IS 'One batch of favourite-side orders per game date';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS order_batches CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")

"""002: create orders table

Status CHECK constraints must match src/ff_common/enums.py exactly.

Revision ID: 002
Revises: 001
Create Date: 2025-12-01
"""
from typing import Sequence, Union

from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id                      VARCHAR(64)     PRIMARY KEY,
            batch_id                VARCHAR(64)     NOT NULL REFERENCES order_batches(id),
            ticker                  VARCHAR(128)    NOT NULL,
            event_ticker            VARCHAR(128)    NOT NULL DEFAULT '',
            title                   TEXT            NOT NULL DEFAULT '',
            side                    VARCHAR(3)      NOT NULL,
            price_cents             SMALLINT        NOT NULL,
            units                   INT             NOT NULL,
            cost_cents              BIGINT          NOT NULL,
            potential_payout_cents  BIGINT          NOT NULL,
            open_interest           BIGINT          NOT NULL DEFAULT 0,
            market_close_time       TIMESTAMPTZ,
            placement_status        VARCHAR(16)     NOT NULL DEFAULT 'pending',
            placement_status_at     TIMESTAMPTZ,
            client_order_id         VARCHAR(128),
            exchange_order_id       VARCHAR(64),
            executed_price_cents    SMALLINT,
            executed_cost_cents     BIGINT,
            failure_reason          TEXT,
            result_status           VARCHAR(16)     NOT NULL DEFAULT 'undecided',
            result_status_at        TIMESTAMPTZ,
            settlement_status       VARCHAR(16)     NOT NULL DEFAULT 'pending',
            settled_at              TIMESTAMPTZ,
            payout_cents            BIGINT,
            fee_cents               BIGINT,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_side               CHECK (side IN ('YES', 'NO')),
            CONSTRAINT ck_orders_price              CHECK (price_cents BETWEEN 0 AND 100),
            CONSTRAINT ck_orders_units              CHECK (units >= 0),
            CONSTRAINT ck_orders_cost               CHECK (cost_cents >= 0),
            CONSTRAINT ck_orders_placement_status   CHECK (
                placement_status IN ('pending', 'submitted', 'confirmed', 'resting', 'failed')
            ),
            CONSTRAINT ck_orders_result_status      CHECK (
                result_status IN ('undecided', 'won', 'lost')
            ),
            CONSTRAINT ck_orders_settlement_status  CHECK (
                settlement_status IN ('pending', 'settled')
            ),
            CONSTRAINT ck_orders_outcome_confirmed  CHECK (
                result_status = 'undecided' OR placement_status = 'confirmed'
            )
        );
    """)
    op.execute("CREATE INDEX idx_orders_batch ON orders (batch_id);")
    op.execute("CREATE INDEX idx_orders_ticker ON orders (ticker, created_at);")
    op.execute("""
        CREATE INDEX idx_orders_awaiting_outcome
        ON orders (created_at)
        WHERE placement_status = 'confirmed' AND settlement_status = 'pending';
    """)
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE orders IS 'Favourite-side limit orders, placement and outcome';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")

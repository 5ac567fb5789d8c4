# src/ff_order/infrastructure/persistence.py
"""BatchRepository / OrderRepository — raw SQL persistence implementations.

Callers own the transaction: nothing here commits.
"""
from dataclasses import asdict
from datetime import date
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_order.domain.models import Batch, BatchTotals, Order

# ---------------------------------------------------------------------------
# SQL statements — batches
# ---------------------------------------------------------------------------

_BATCH_COLUMNS = """
    id, batch_date, unit_size_cents, total_orders, total_cost_cents,
    total_potential_payout_cents, is_paused, prepared_at, executed_at,
    created_at, updated_at
"""

_INSERT_BATCH_SQL = text("""
    INSERT INTO order_batches (id, batch_date, unit_size_cents, total_orders,
        total_cost_cents, total_potential_payout_cents, is_paused, prepared_at)
    VALUES (:id, :batch_date, :unit_size_cents, :total_orders,
        :total_cost_cents, :total_potential_payout_cents, :is_paused, :prepared_at)
""")

_GET_BATCH_BY_ID_SQL = text(f"""
    SELECT {_BATCH_COLUMNS} FROM order_batches WHERE id = :id
""")

_GET_BATCH_BY_DATE_SQL = text(f"""
    SELECT {_BATCH_COLUMNS} FROM order_batches WHERE batch_date = :batch_date
""")

_LIST_RECENT_BATCHES_SQL = text(f"""
    SELECT {_BATCH_COLUMNS}
    FROM order_batches
    ORDER BY batch_date DESC
    LIMIT :limit
""")

_SET_PAUSED_SQL = text("""
    UPDATE order_batches
    SET is_paused = :is_paused, updated_at = NOW()
    WHERE id = :id
""")

_UPDATE_TOTALS_SQL = text("""
    UPDATE order_batches
    SET total_orders = :total_orders,
        total_cost_cents = :total_cost_cents,
        total_potential_payout_cents = :total_potential_payout_cents,
        executed_at = CASE WHEN CAST(:mark_executed AS BOOLEAN) THEN NOW() ELSE executed_at END,
        updated_at = NOW()
    WHERE id = :id
""")

# ---------------------------------------------------------------------------
# SQL statements — orders
# ---------------------------------------------------------------------------

_ORDER_COLUMNS = """
    id, batch_id, ticker, event_ticker, title, side, price_cents, units,
    cost_cents, potential_payout_cents, open_interest, market_close_time,
    placement_status, placement_status_at, client_order_id, exchange_order_id,
    executed_price_cents, executed_cost_cents, failure_reason,
    result_status, result_status_at, settlement_status, settled_at,
    payout_cents, fee_cents, created_at, updated_at
"""

_INSERT_ORDER_SQL = text("""
    INSERT INTO orders (id, batch_id, ticker, event_ticker, title, side,
        price_cents, units, cost_cents, potential_payout_cents, open_interest,
        market_close_time, placement_status, placement_status_at,
        client_order_id, exchange_order_id, executed_price_cents,
        executed_cost_cents, failure_reason, result_status, result_status_at,
        settlement_status, settled_at, payout_cents, fee_cents)
    VALUES (:id, :batch_id, :ticker, :event_ticker, :title, :side,
        :price_cents, :units, :cost_cents, :potential_payout_cents, :open_interest,
        :market_close_time, :placement_status, :placement_status_at,
        :client_order_id, :exchange_order_id, :executed_price_cents,
        :executed_cost_cents, :failure_reason, :result_status, :result_status_at,
        :settlement_status, :settled_at, :payout_cents, :fee_cents)
""")

_UPDATE_ORDER_SQL = text("""
    UPDATE orders
    SET units = :units, cost_cents = :cost_cents,
        potential_payout_cents = :potential_payout_cents,
        placement_status = :placement_status,
        placement_status_at = :placement_status_at,
        client_order_id = :client_order_id,
        exchange_order_id = :exchange_order_id,
        executed_price_cents = :executed_price_cents,
        executed_cost_cents = :executed_cost_cents,
        failure_reason = :failure_reason,
        result_status = :result_status, result_status_at = :result_status_at,
        settlement_status = :settlement_status, settled_at = :settled_at,
        payout_cents = :payout_cents, fee_cents = :fee_cents,
        updated_at = NOW()
    WHERE id = :id
""")

_CLAIM_ORDER_SQL = text("""
    UPDATE orders
    SET placement_status = :placement_status,
        placement_status_at = :placement_status_at,
        client_order_id = :client_order_id,
        failure_reason = NULL,
        updated_at = NOW()
    WHERE id = :id AND placement_status = :expected_status
    RETURNING id
""")

_LIST_ORDERS_BY_BATCH_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders WHERE batch_id = :batch_id
    ORDER BY open_interest DESC, ticker
""")

_LIST_ALL_ORDERS_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders
    ORDER BY created_at, id
""")

_LIST_AWAITING_OUTCOME_SQL = text(f"""
    SELECT {_ORDER_COLUMNS}
    FROM orders
    WHERE placement_status = 'confirmed' AND settlement_status = 'pending'
    ORDER BY created_at, id
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_batch(row: Any) -> Batch:
    return Batch(
        id=row.id,
        batch_date=row.batch_date,
        unit_size_cents=row.unit_size_cents,
        total_orders=row.total_orders,
        total_cost_cents=row.total_cost_cents,
        total_potential_payout_cents=row.total_potential_payout_cents,
        is_paused=row.is_paused,
        prepared_at=row.prepared_at,
        executed_at=row.executed_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_order(row: Any) -> Order:
    return Order(
        id=row.id,
        batch_id=row.batch_id,
        ticker=row.ticker,
        event_ticker=row.event_ticker,
        title=row.title,
        side=row.side,
        price_cents=row.price_cents,
        units=row.units,
        cost_cents=row.cost_cents,
        potential_payout_cents=row.potential_payout_cents,
        open_interest=row.open_interest,
        market_close_time=row.market_close_time,
        placement_status=row.placement_status,
        placement_status_at=row.placement_status_at,
        client_order_id=row.client_order_id,
        exchange_order_id=row.exchange_order_id,
        executed_price_cents=row.executed_price_cents,
        executed_cost_cents=row.executed_cost_cents,
        failure_reason=row.failure_reason,
        result_status=row.result_status,
        result_status_at=row.result_status_at,
        settlement_status=row.settlement_status,
        settled_at=row.settled_at,
        payout_cents=row.payout_cents,
        fee_cents=row.fee_cents,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _order_params(order: Order) -> dict[str, Any]:
    params = asdict(order)
    params.pop("created_at")
    params.pop("updated_at")
    return params


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class BatchRepository:
    """Concrete implementation of BatchRepositoryProtocol using raw SQL."""

    async def create(self, batch: Batch, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_BATCH_SQL,
            {
                "id": batch.id,
                "batch_date": batch.batch_date,
                "unit_size_cents": batch.unit_size_cents,
                "total_orders": batch.total_orders,
                "total_cost_cents": batch.total_cost_cents,
                "total_potential_payout_cents": batch.total_potential_payout_cents,
                "is_paused": batch.is_paused,
                "prepared_at": batch.prepared_at,
            },
        )

    async def get_by_id(self, batch_id: str, db: AsyncSession) -> Batch | None:
        result = await db.execute(_GET_BATCH_BY_ID_SQL, {"id": batch_id})
        row = result.fetchone()
        return _row_to_batch(row) if row else None

    async def get_by_date(self, batch_date: date, db: AsyncSession) -> Batch | None:
        result = await db.execute(_GET_BATCH_BY_DATE_SQL, {"batch_date": batch_date})
        row = result.fetchone()
        return _row_to_batch(row) if row else None

    async def get_latest(self, db: AsyncSession) -> Batch | None:
        batches = await self.list_recent(1, db)
        return batches[0] if batches else None

    async def list_recent(self, limit: int, db: AsyncSession) -> list[Batch]:
        result = await db.execute(_LIST_RECENT_BATCHES_SQL, {"limit": limit})
        return [_row_to_batch(row) for row in result.fetchall()]

    async def set_paused(self, batch_id: str, is_paused: bool, db: AsyncSession) -> None:
        await db.execute(_SET_PAUSED_SQL, {"id": batch_id, "is_paused": is_paused})

    async def update_totals(
        self, batch_id: str, totals: BatchTotals, mark_executed: bool, db: AsyncSession
    ) -> None:
        await db.execute(
            _UPDATE_TOTALS_SQL,
            {
                "id": batch_id,
                "total_orders": totals.total_orders,
                "total_cost_cents": totals.total_cost_cents,
                "total_potential_payout_cents": totals.total_potential_payout_cents,
                "mark_executed": mark_executed,
            },
        )


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol using raw SQL."""

    async def save(self, order: Order, db: AsyncSession) -> None:
        await db.execute(_INSERT_ORDER_SQL, _order_params(order))

    async def update(self, order: Order, db: AsyncSession) -> None:
        params = _order_params(order)
        for column in ("batch_id", "ticker", "event_ticker", "title", "side", "price_cents",
                       "open_interest", "market_close_time"):
            params.pop(column)
        await db.execute(_UPDATE_ORDER_SQL, params)

    async def claim_for_submission(
        self, order: Order, expected_status: str, db: AsyncSession
    ) -> bool:
        """Persist the move to submitted only if the row is still in expected_status.

        Returns False when another execute run claimed the order first.
        """
        result = await db.execute(
            _CLAIM_ORDER_SQL,
            {
                "id": order.id,
                "expected_status": expected_status,
                "placement_status": order.placement_status,
                "placement_status_at": order.placement_status_at,
                "client_order_id": order.client_order_id,
            },
        )
        return result.fetchone() is not None

    async def list_by_batch(self, batch_id: str, db: AsyncSession) -> list[Order]:
        result = await db.execute(_LIST_ORDERS_BY_BATCH_SQL, {"batch_id": batch_id})
        return [_row_to_order(row) for row in result.fetchall()]

    async def list_all(self, db: AsyncSession) -> list[Order]:
        result = await db.execute(_LIST_ALL_ORDERS_SQL)
        return [_row_to_order(row) for row in result.fetchall()]

    async def list_awaiting_outcome(self, db: AsyncSession) -> list[Order]:
        result = await db.execute(_LIST_AWAITING_OUTCOME_SQL)
        return [_row_to_order(row) for row in result.fetchall()]

# src/ff_order/application/schemas.py
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel

from src.ff_common.response import OperationResult
from src.ff_order.domain.models import Batch, Order

SubmissionOutcome = Literal["confirmed", "resting", "failed", "rejected", "skipped"]


class OrderResponse(BaseModel):
    id: str
    batch_id: str
    ticker: str
    title: str
    side: str
    price_cents: int
    units: int
    cost_cents: int
    potential_payout_cents: int
    open_interest: int
    placement_status: str
    exchange_order_id: str | None = None
    executed_price_cents: int | None = None
    executed_cost_cents: int | None = None
    failure_reason: str | None = None
    result_status: str
    settlement_status: str
    payout_cents: int | None = None
    fee_cents: int | None = None

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            batch_id=order.batch_id,
            ticker=order.ticker,
            title=order.title,
            side=order.side,
            price_cents=order.price_cents,
            units=order.units,
            cost_cents=order.cost_cents,
            potential_payout_cents=order.potential_payout_cents,
            open_interest=order.open_interest,
            placement_status=order.placement_status,
            exchange_order_id=order.exchange_order_id,
            executed_price_cents=order.executed_price_cents,
            executed_cost_cents=order.executed_cost_cents,
            failure_reason=order.failure_reason,
            result_status=order.result_status,
            settlement_status=order.settlement_status,
            payout_cents=order.payout_cents,
            fee_cents=order.fee_cents,
        )


class BatchResponse(BaseModel):
    id: str
    batch_date: date
    unit_size_cents: int
    total_orders: int
    total_cost_cents: int
    total_potential_payout_cents: int
    is_paused: bool
    prepared_at: datetime | None = None
    executed_at: datetime | None = None
    placement_breakdown: dict[str, int] = {}
    result_breakdown: dict[str, int] = {}
    orders: list[OrderResponse] = []

    @classmethod
    def from_domain(cls, batch: Batch, orders: list[Order]) -> "BatchResponse":
        placement: dict[str, int] = {}
        result: dict[str, int] = {}
        for o in orders:
            placement[o.placement_status] = placement.get(o.placement_status, 0) + 1
            result[o.result_status] = result.get(o.result_status, 0) + 1
        return cls(
            id=batch.id,
            batch_date=batch.batch_date,
            unit_size_cents=batch.unit_size_cents,
            total_orders=batch.total_orders,
            total_cost_cents=batch.total_cost_cents,
            total_potential_payout_cents=batch.total_potential_payout_cents,
            is_paused=batch.is_paused,
            prepared_at=batch.prepared_at,
            executed_at=batch.executed_at,
            placement_breakdown=placement,
            result_breakdown=result,
            orders=[OrderResponse.from_domain(o) for o in orders],
        )


class BatchListResponse(BaseModel):
    items: list[BatchResponse]


# ---------------------------------------------------------------------------
# Job results
# ---------------------------------------------------------------------------


class PrepareResult(OperationResult):
    batch_id: str | None = None
    batch_date: date | None = None
    no_op: bool = False
    candidates: int = 0
    orders_created: int = 0
    total_cost_cents: int = 0
    total_potential_payout_cents: int = 0
    balance_cents: int = 0
    portfolio_value_cents: int = 0


class SubmissionItem(BaseModel):
    order_id: str
    ticker: str
    outcome: SubmissionOutcome
    units: int
    price_cents: int
    reason: str | None = None


class ExecuteResult(OperationResult):
    batch_id: str | None = None
    confirmed: int = 0
    resting: int = 0
    failed: int = 0
    rejected: int = 0
    skipped: int = 0
    cancelled: bool = False
    portfolio_value_cents: int = 0
    items: list[SubmissionItem] = []


class OutcomeItem(BaseModel):
    order_id: str
    ticker: str
    result_status: str


class OutcomeResult(OperationResult):
    checked: int = 0
    won: int = 0
    lost: int = 0
    still_open: int = 0
    errors: list[str] = []
    items: list[OutcomeItem] = []


class PauseResult(OperationResult):
    batch_id: str
    is_paused: bool

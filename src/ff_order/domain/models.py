"""Batch and Order domain models — pure dataclasses, no SQLAlchemy dependency."""
from dataclasses import dataclass, field
from datetime import date, datetime

from src.ff_common.enums import PlacementStatus, ResultStatus, SettlementStatus


@dataclass
class Batch:
    id: str
    batch_date: date
    unit_size_cents: int = 100
    total_orders: int = 0
    total_cost_cents: int = 0
    total_potential_payout_cents: int = 0
    is_paused: bool = False
    prepared_at: datetime | None = None
    executed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Order:
    id: str
    batch_id: str
    ticker: str
    side: str  # YES / NO
    price_cents: int
    units: int
    cost_cents: int
    potential_payout_cents: int
    event_ticker: str = ""
    title: str = ""
    open_interest: int = 0
    market_close_time: datetime | None = None
    # Placement
    placement_status: str = PlacementStatus.PENDING.value
    placement_status_at: datetime | None = None
    client_order_id: str | None = None
    exchange_order_id: str | None = None
    executed_price_cents: int | None = None
    executed_cost_cents: int | None = None
    failure_reason: str | None = None
    # Outcome
    result_status: str = ResultStatus.UNDECIDED.value
    result_status_at: datetime | None = None
    settlement_status: str = SettlementStatus.PENDING.value
    settled_at: datetime | None = None
    payout_cents: int | None = None
    fee_cents: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_executed(self) -> bool:
        return self.executed_cost_cents is not None

    @property
    def reached_exchange(self) -> bool:
        """Sent at least once and not definitively rejected.

        A failed order that kept its client_order_id had an ambiguous send and
        may exist on the exchange; one whose token was cleared never does.
        """
        if self.placement_status == PlacementStatus.FAILED.value:
            return self.client_order_id is not None
        return self.placement_status != PlacementStatus.PENDING.value

    @property
    def effective_cost_cents(self) -> int:
        """Exchange-reported cost once executed, intended cost before."""
        return self.executed_cost_cents if self.executed_cost_cents is not None else self.cost_cents

    @property
    def is_submittable(self) -> bool:
        return self.placement_status in (
            PlacementStatus.PENDING.value,
            PlacementStatus.FAILED.value,
        )


@dataclass
class BatchTotals:
    total_orders: int = 0
    total_cost_cents: int = 0
    total_potential_payout_cents: int = 0
    by_placement: dict[str, int] = field(default_factory=dict)
    by_result: dict[str, int] = field(default_factory=dict)


def compute_batch_totals(orders: list[Order]) -> BatchTotals:
    """Aggregate totals from current order state; never patched incrementally."""
    totals = BatchTotals()
    for order in orders:
        totals.total_orders += 1
        totals.total_cost_cents += order.effective_cost_cents
        totals.total_potential_payout_cents += order.potential_payout_cents
        totals.by_placement[order.placement_status] = (
            totals.by_placement.get(order.placement_status, 0) + 1
        )
        totals.by_result[order.result_status] = totals.by_result.get(order.result_status, 0) + 1
    return totals

"""ReconciliationEngine — rebuilds per-market truth from fills and settlements.

Pure: takes exchange history plus local orders, returns the orders to create
(recovered) and the orders to overwrite (corrected). Persistence lives in the
application service.

Per ticker:
  1. Fills are grouped by ticker, never by exchange order id.
  2. The held side is the side with the most bought units; only that side's
     fills count. Net units = bought - sold; remaining cost comes from the
     cost-basis policy.
  3. A settlement, when present, decides won/lost against the held side.
     Payout is the settlement revenue, fee is the dollar fee in cents.
  4. Only local orders that reached the exchange are matched against the
     position; pending orders and definitively rejected ones are planned
     state and stay untouched. Without such an order the position is
     synthesised as a confirmed order. Otherwise the most recently created
     one is the primary: it is set to the truth minus what the other
     confirmed orders of the ticker already hold.

Nothing is deleted, no outcome is set without a settlement, and a second run
over the same input yields no corrections.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from src.ff_common.cents import CONTRACT_FACE_VALUE_CENTS, round_half_up_div
from src.ff_common.datetime_utils import utc_now
from src.ff_common.enums import Action, PlacementStatus, ResultStatus, SettlementStatus, Side
from src.ff_exchange.schemas import Fill, Settlement
from src.ff_order.domain.models import Order
from src.ff_order.domain.state_machine import promote_from_fills
from src.ff_reconciliation.domain.cost_basis import AverageCostBasis, CostBasisPolicy

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

_AUDITED_FIELDS = (
    "units",
    "cost_cents",
    "executed_price_cents",
    "executed_cost_cents",
    "placement_status",
    "result_status",
    "settlement_status",
    "payout_cents",
    "fee_cents",
)


@dataclass(frozen=True)
class Tolerance:
    cents: int = 10
    fraction: float = 0.01

    def exceeded(self, actual: int, target: int) -> bool:
        diff = abs(actual - target)
        return diff > self.cents or diff > target * self.fraction


@dataclass
class Position:
    """Exchange-derived truth for one ticker."""

    ticker: str
    side: Side
    total_bought: int
    total_buy_cost: int
    total_sold: int
    net_units: int
    cost_cents: int
    first_order_id: str
    first_fill_time: datetime | None
    settlement: Settlement | None = None

    @property
    def event_ticker(self) -> str:
        return self.ticker.rsplit("-", 1)[0] if "-" in self.ticker else self.ticker

    @property
    def outcome(self) -> ResultStatus:
        if self.settlement is None:
            return ResultStatus.UNDECIDED
        won = self.settlement.market_result.lower() == self.side.wire
        return ResultStatus.WON if won else ResultStatus.LOST


@dataclass
class Recovery:
    order: Order
    position: Position


@dataclass
class Correction:
    order: Order
    reasons: list[str]
    before: dict[str, Any]
    after: dict[str, Any]


@dataclass
class ReconciliationResult:
    positions: list[Position] = field(default_factory=list)
    recovered: list[Recovery] = field(default_factory=list)
    corrected: list[Correction] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Truth
# ---------------------------------------------------------------------------


def _held_side(fills: list[Fill]) -> Side:
    bought = {Side.YES: 0, Side.NO: 0}
    for f in fills:
        if f.action == Action.BUY.value:
            bought[Side(f.side.upper())] += f.count
    return Side.NO if bought[Side.NO] > bought[Side.YES] else Side.YES


def build_position(
    ticker: str, fills: list[Fill], policy: CostBasisPolicy
) -> Position | None:
    side = _held_side(fills)
    side_fills = sorted(
        (f for f in fills if f.side == side.wire), key=lambda f: f.created_time or _EPOCH
    )
    buys = [f for f in side_fills if f.action == Action.BUY.value]
    sells = [f for f in side_fills if f.action == Action.SELL.value]
    total_bought = sum(f.count for f in buys)
    if total_bought == 0:
        return None
    total_sold = sum(f.count for f in sells)
    return Position(
        ticker=ticker,
        side=side,
        total_bought=total_bought,
        total_buy_cost=sum(f.count * f.price_cents for f in buys),
        total_sold=total_sold,
        net_units=max(total_bought - total_sold, 0),
        cost_cents=policy.remaining_cost(buys, sells),
        first_order_id=buys[0].order_id,
        first_fill_time=buys[0].created_time,
    )


def build_positions(
    fills: list[Fill], settlements: list[Settlement], policy: CostBasisPolicy
) -> list[Position]:
    by_ticker: dict[str, list[Fill]] = defaultdict(list)
    for f in fills:
        by_ticker[f.ticker].append(f)
    settlement_by_ticker = {s.ticker: s for s in settlements}

    positions = []
    for ticker in sorted(by_ticker):
        position = build_position(ticker, by_ticker[ticker], policy)
        if position is None:
            continue
        position.settlement = settlement_by_ticker.get(ticker)
        positions.append(position)
    return positions


# ---------------------------------------------------------------------------
# Recovery / correction
# ---------------------------------------------------------------------------


def _average_price(cost: int, units: int, fallback: int) -> int:
    return round_half_up_div(cost, units) if units > 0 else fallback


def _apply_settlement(order: Order, settlement: Settlement, is_primary: bool) -> None:
    won = settlement.market_result.lower() == order.side.lower()
    result = ResultStatus.WON.value if won else ResultStatus.LOST.value
    now = utc_now()
    if order.result_status != result:
        order.result_status = result
        order.result_status_at = now
    if order.settlement_status != SettlementStatus.SETTLED.value:
        order.settlement_status = SettlementStatus.SETTLED.value
        order.settled_at = now
    if is_primary:
        order.payout_cents = settlement.revenue
        order.fee_cents = settlement.fee_cents


def recover_order(position: Position) -> Order:
    units = position.net_units
    price = _average_price(position.cost_cents, units, 0)
    now = utc_now()
    order = Order(
        id="",
        batch_id="",
        ticker=position.ticker,
        event_ticker=position.event_ticker,
        title=position.ticker,
        side=position.side.value,
        price_cents=price,
        units=units,
        cost_cents=position.cost_cents,
        potential_payout_cents=units * CONTRACT_FACE_VALUE_CENTS,
        placement_status=PlacementStatus.CONFIRMED.value,
        placement_status_at=now,
        exchange_order_id=position.first_order_id or None,
        executed_price_cents=price,
        executed_cost_cents=position.cost_cents,
    )
    if position.settlement is not None:
        _apply_settlement(order, position.settlement, is_primary=True)
    return order


def _snapshot(order: Order) -> dict[str, Any]:
    return {name: getattr(order, name) for name in _AUDITED_FIELDS}


def _primary(orders: list[Order]) -> Order:
    # Latest created wins; among equal timestamps the last listed
    return max(enumerate(orders), key=lambda p: (p[1].created_at or _EPOCH, p[0]))[1]


def correct_orders(
    position: Position, orders: list[Order], tolerance: Tolerance
) -> list[Correction]:
    primary = _primary(orders)
    others = [
        o for o in orders
        if o is not primary and o.placement_status == PlacementStatus.CONFIRMED.value
    ]
    target_units = max(position.net_units - sum(o.units for o in others), 0)
    target_cost = max(position.cost_cents - sum(o.effective_cost_cents for o in others), 0)

    corrections = []
    for order in orders:
        before = _snapshot(order)
        reasons = []
        if order is primary:
            if order.units != target_units or tolerance.exceeded(
                order.effective_cost_cents, target_cost
            ):
                reasons.append(
                    f"position {order.units}u/{order.effective_cost_cents}c "
                    f"-> {target_units}u/{target_cost}c"
                )
                price = _average_price(target_cost, target_units, order.price_cents)
                order.units = target_units
                order.cost_cents = target_cost
                order.executed_cost_cents = target_cost
                order.executed_price_cents = price
                order.potential_payout_cents = target_units * CONTRACT_FACE_VALUE_CENTS
            if promote_from_fills(order):
                reasons.append("placement confirmed by fills")
                if order.exchange_order_id is None:
                    order.exchange_order_id = position.first_order_id or None
            if not order.is_executed:
                reasons.append("executed figures recorded")
                order.executed_cost_cents = order.cost_cents
                order.executed_price_cents = order.price_cents
        if (
            position.settlement is not None
            and order.placement_status == PlacementStatus.CONFIRMED.value
        ):
            _apply_settlement(order, position.settlement, is_primary=order is primary)
        after = _snapshot(order)
        if after != before:
            if not reasons:
                reasons.append("settlement applied")
            corrections.append(Correction(order=order, reasons=reasons, before=before, after=after))
    return corrections


def reconcile(
    fills: list[Fill],
    settlements: list[Settlement],
    existing_orders: list[Order],
    policy: CostBasisPolicy | None = None,
    tolerance: Tolerance | None = None,
) -> ReconciliationResult:
    policy = policy or AverageCostBasis()
    tolerance = tolerance or Tolerance()
    orders_by_ticker: dict[str, list[Order]] = defaultdict(list)
    for order in existing_orders:
        if order.reached_exchange:
            orders_by_ticker[order.ticker].append(order)

    result = ReconciliationResult(positions=build_positions(fills, settlements, policy))
    for position in result.positions:
        local = orders_by_ticker.get(position.ticker)
        if not local:
            if position.net_units == 0:
                continue
            result.recovered.append(Recovery(order=recover_order(position), position=position))
            logger.warning(
                "Recovered %s: %s %du cost %dc outcome=%s",
                position.ticker, position.side.value, position.net_units,
                position.cost_cents, position.outcome.value,
            )
            continue
        for correction in correct_orders(position, local, tolerance):
            result.corrected.append(correction)
            logger.warning(
                "Corrected order %s (%s): %s before=%s after=%s",
                correction.order.id, position.ticker, "; ".join(correction.reasons),
                correction.before, correction.after,
            )
    return result

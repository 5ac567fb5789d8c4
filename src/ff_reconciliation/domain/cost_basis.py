"""Cost-basis policies for positions reduced by sells.

Both policies return the remaining cost of ``sum(buys) - sum(sells)`` units.
With no sells every policy returns the total buy cost.
"""
from datetime import datetime, timezone
from typing import Protocol

from src.ff_common.cents import round_half_up_div
from src.ff_common.enums import CostBasisMethod
from src.ff_exchange.schemas import Fill

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class CostBasisPolicy(Protocol):
    name: str

    def remaining_cost(self, buys: list[Fill], sells: list[Fill]) -> int: ...


class AverageCostBasis:
    """Remaining cost = round_half_up(net_units * total_buy_cost / total_bought)."""

    name = CostBasisMethod.AVERAGE.value

    def remaining_cost(self, buys: list[Fill], sells: list[Fill]) -> int:
        total_bought = sum(f.count for f in buys)
        total_buy_cost = sum(f.count * f.price_cents for f in buys)
        total_sold = sum(f.count for f in sells)
        if total_sold == 0:
            return total_buy_cost
        net_units = max(total_bought - total_sold, 0)
        if total_bought == 0:
            return 0
        return round_half_up_div(net_units * total_buy_cost, total_bought)


class FifoCostBasis:
    """Sells consume the oldest buy lots first; remaining lots keep their price."""

    name = CostBasisMethod.FIFO.value

    def remaining_cost(self, buys: list[Fill], sells: list[Fill]) -> int:
        lots = [
            [f.count, f.price_cents]
            for f in sorted(buys, key=lambda f: f.created_time or _EPOCH)
        ]
        to_consume = sum(f.count for f in sells)
        for lot in lots:
            if to_consume == 0:
                break
            taken = min(lot[0], to_consume)
            lot[0] -= taken
            to_consume -= taken
        return sum(units * price for units, price in lots)


def policy_for(method: str) -> CostBasisPolicy:
    if CostBasisMethod(method) is CostBasisMethod.FIFO:
        return FifoCostBasis()
    return AverageCostBasis()

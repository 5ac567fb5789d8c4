"""CapitalAllocator — round-robin unit allocation under a per-market cap.

Each pass walks the ranked candidates once and gives one more unit to every
candidate that is below its cap and still affordable. The loop ends on a pass
that allocates nothing or when the balance is exhausted. Every non-empty pass
spends at least the cheapest price, so ``ceil(balance / min_price)`` passes
plus one terminating pass bound the loop.

Invariants on the result:
  - sum(cost) <= balance
  - cost <= floor(portfolio_value * cap_percent) for every market
  - no allocation with units == 0
"""

from collections.abc import Sequence
from dataclasses import dataclass

from src.ff_common.cents import CONTRACT_FACE_VALUE_CENTS, cap_cents
from src.ff_market.domain.models import Market


@dataclass(frozen=True)
class Allocation:
    market: Market
    units: int
    cost_cents: int
    potential_payout_cents: int

    @property
    def price_cents(self) -> int:
        return self.market.favorite_price_cents


def _validate(balance: int, candidates: Sequence[Market], cap_percent: float) -> None:
    if balance < 0:
        raise ValueError(f"balance must be non-negative, got {balance}")
    if not 0 < cap_percent <= 1:
        raise ValueError(f"cap_percent must be in (0, 1], got {cap_percent}")
    for market in candidates:
        if market.favorite_price_cents <= 0:
            raise ValueError(
                f"candidate {market.ticker} has non-positive price {market.favorite_price_cents}"
            )


def allocate(
    balance: int,
    candidates: Sequence[Market],
    cap_percent: float,
    portfolio_value: int | None = None,
) -> list[Allocation]:
    _validate(balance, candidates, cap_percent)
    if not candidates or balance == 0:
        return []

    cap = cap_cents(balance if portfolio_value is None else portfolio_value, cap_percent)
    prices = [m.favorite_price_cents for m in candidates]
    cap_units = [cap // price for price in prices]
    units = [0] * len(candidates)

    remaining = balance
    max_passes = -(-balance // min(prices)) + 1
    for _ in range(max_passes):
        progressed = False
        for i, price in enumerate(prices):
            if units[i] < cap_units[i] and price <= remaining:
                units[i] += 1
                remaining -= price
                progressed = True
        if not progressed or remaining == 0:
            break

    return [
        Allocation(
            market=market,
            units=n,
            cost_cents=n * price,
            potential_payout_cents=n * CONTRACT_FACE_VALUE_CENTS,
        )
        for market, price, n in zip(candidates, prices, units)
        if n > 0
    ]

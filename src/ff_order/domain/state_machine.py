"""Placement state machine.

    pending ──> submitted ──> confirmed
       ^            │   └───> resting
       │            └──────> failed ──> submitted (next cycle)
       └ guard reject / not affordable (no transition)

Reconciliation may promote an order that reached the exchange (submitted,
resting, or failed with its token kept) to ``confirmed`` when fills exist
for its market; that path goes through ``promote_from_fills``. Pending
orders are never promoted.
Outcomes (won/lost) are only ever set on confirmed orders.
"""

from src.ff_common.datetime_utils import utc_now
from src.ff_common.enums import PlacementStatus as PS
from src.ff_common.enums import ResultStatus, SettlementStatus
from src.ff_common.errors import InvalidTransitionError
from src.ff_order.domain.models import Order

TRANSITIONS: dict[PS, frozenset[PS]] = {
    PS.PENDING: frozenset({PS.SUBMITTED}),
    PS.SUBMITTED: frozenset({PS.CONFIRMED, PS.RESTING, PS.FAILED}),
    PS.FAILED: frozenset({PS.SUBMITTED}),
    PS.RESTING: frozenset(),
    PS.CONFIRMED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return PS(target) in TRANSITIONS[PS(current)]


def transition(order: Order, target: PS) -> None:
    if not can_transition(order.placement_status, target):
        raise InvalidTransitionError(order.id, order.placement_status, target.value)
    order.placement_status = target.value
    order.placement_status_at = utc_now()


def promote_from_fills(order: Order) -> bool:
    """Fills on the exchange prove the position exists. Returns True if changed."""
    if order.placement_status == PS.CONFIRMED.value:
        return False
    if not order.reached_exchange:
        raise InvalidTransitionError(order.id, order.placement_status, PS.CONFIRMED.value)
    order.placement_status = PS.CONFIRMED.value
    order.placement_status_at = utc_now()
    order.failure_reason = None
    return True


def apply_outcome(order: Order, won: bool) -> None:
    if order.placement_status != PS.CONFIRMED.value:
        raise InvalidTransitionError(
            order.id,
            order.placement_status,
            ResultStatus.WON.value if won else ResultStatus.LOST.value,
        )
    now = utc_now()
    order.result_status = ResultStatus.WON.value if won else ResultStatus.LOST.value
    order.result_status_at = now
    order.settlement_status = SettlementStatus.SETTLED.value
    order.settled_at = now

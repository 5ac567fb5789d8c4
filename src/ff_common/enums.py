"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class Side(str, Enum):
    YES = "YES"
    NO = "NO"

    @property
    def wire(self) -> str:
        """Exchange wire form is lowercase."""
        return self.value.lower()


class Action(str, Enum):
    BUY = "buy"
    SELL = "sell"


class PlacementStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    RESTING = "resting"
    FAILED = "failed"


class ResultStatus(str, Enum):
    UNDECIDED = "undecided"
    WON = "won"
    LOST = "lost"


class SettlementStatus(str, Enum):
    PENDING = "pending"
    SETTLED = "settled"


class ExchangeOrderStatus(str, Enum):
    """Order status strings as reported by the exchange."""
    EXECUTED = "executed"
    RESTING = "resting"
    CANCELED = "canceled"
    PENDING = "pending"


class CostBasisMethod(str, Enum):
    AVERAGE = "average"
    FIFO = "fifo"

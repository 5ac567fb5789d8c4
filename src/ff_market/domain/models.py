"""Domain models for ff_market — immutable snapshots, no local ownership."""

from dataclasses import dataclass
from datetime import datetime

from src.ff_common.cents import CONTRACT_FACE_VALUE_CENTS
from src.ff_common.enums import Side


@dataclass(frozen=True)
class Market:
    ticker: str
    event_ticker: str
    title: str
    yes_price_cents: int  # quoted YES probability, 0-100
    open_interest: int
    close_time: datetime | None = None

    @property
    def no_price_cents(self) -> int:
        return CONTRACT_FACE_VALUE_CENTS - self.yes_price_cents

    @property
    def favorite_side(self) -> Side:
        return Side.YES if self.yes_price_cents >= self.no_price_cents else Side.NO

    @property
    def favorite_price_cents(self) -> int:
        return max(self.yes_price_cents, self.no_price_cents)


@dataclass
class IlliquidMarket:
    ticker: str
    reason: str | None = None
    created_at: datetime | None = None

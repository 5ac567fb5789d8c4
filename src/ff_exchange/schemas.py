"""Pydantic models for exchange responses, validated at the client boundary.

Unknown fields are ignored; fields the system depends on are required, so a
malformed payload fails validation in the client instead of surfacing as a
missing key deep in the allocator or reconciliation code.
"""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator

from src.ff_common.cents import dollars_to_cents, probability_to_cents, validate_price


class _ExchangeModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ---------------------------------------------------------------------------
# Markets
# ---------------------------------------------------------------------------


class ExchangeMarket(_ExchangeModel):
    ticker: str
    event_ticker: str = ""
    title: str = ""
    status: str = ""
    close_time: datetime | None = None
    last_price: int = 0
    last_price_dollars: str | None = None
    open_interest: int = 0
    volume_24h: int = 0
    result: str = ""

    @property
    def yes_price_cents(self) -> int:
        if self.last_price_dollars:
            return probability_to_cents(float(self.last_price_dollars))
        return self.last_price

    @property
    def settled_result(self) -> str | None:
        return self.result if self.result in ("yes", "no") else None


class MarketsPage(_ExchangeModel):
    markets: list[ExchangeMarket] = []
    cursor: str | None = None


class MarketDetailResponse(_ExchangeModel):
    market: ExchangeMarket


# ---------------------------------------------------------------------------
# Portfolio
# ---------------------------------------------------------------------------


class Balance(_ExchangeModel):
    balance: int
    portfolio_value: int = 0

    @property
    def total_portfolio_value(self) -> int:
        """Cash plus marked value of open positions, both exchange-reported."""
        return self.balance + self.portfolio_value


class MarketPosition(_ExchangeModel):
    ticker: str
    position: int = 0
    market_exposure: int = 0
    total_traded: int = 0


class PositionsPage(_ExchangeModel):
    market_positions: list[MarketPosition] = []
    cursor: str | None = None


class Fill(_ExchangeModel):
    ticker: str
    side: Literal["yes", "no"]
    action: Literal["buy", "sell"]
    count: int
    yes_price: int = 0
    no_price: int = 0
    order_id: str = ""
    trade_id: str = ""
    created_time: datetime | None = None

    @property
    def price_cents(self) -> int:
        """Per-contract price of the side this fill traded."""
        return self.yes_price if self.side == "yes" else self.no_price


class FillsPage(_ExchangeModel):
    fills: list[Fill] = []
    cursor: str | None = None


class Settlement(_ExchangeModel):
    ticker: str
    market_result: str
    revenue: int = 0
    fee_cost: str = "0"
    settled_time: datetime | None = None

    @property
    def fee_cents(self) -> int:
        return dollars_to_cents(self.fee_cost)


class SettlementsPage(_ExchangeModel):
    settlements: list[Settlement] = []
    cursor: str | None = None


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class OrderRequest(BaseModel):
    ticker: str
    action: Literal["buy", "sell"]
    side: Literal["yes", "no"]
    count: int
    type: Literal["limit", "market"] = "limit"
    yes_price: int | None = None
    no_price: int | None = None
    client_order_id: str

    @model_validator(mode="after")
    def one_price_for_limit(self) -> "OrderRequest":
        if self.count < 1:
            raise ValueError("count must be >= 1")
        if self.type == "limit" and (self.yes_price is None) == (self.no_price is None):
            raise ValueError("limit orders need exactly one of yes_price / no_price")
        for price in (self.yes_price, self.no_price):
            if price is not None:
                validate_price(price)
        return self


class ExchangeOrder(_ExchangeModel):
    order_id: str
    client_order_id: str = ""
    status: str
    ticker: str = ""
    side: str = ""
    action: str = ""
    yes_price: int = 0
    no_price: int = 0
    fill_count: int | None = None

    def side_price(self, side: str) -> int:
        return self.yes_price if side.lower() == "yes" else self.no_price


class PlaceOrderResponse(_ExchangeModel):
    order: ExchangeOrder

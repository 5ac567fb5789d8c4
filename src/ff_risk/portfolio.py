"""Portfolio value sources for the guard and the allocator."""

from typing import Protocol

from src.ff_common.errors import BalanceUnavailableError, ExchangeError, ExchangeRateLimitedError
from src.ff_exchange.client import ExchangeClient
from src.ff_exchange.schemas import Balance


class PortfolioValueProvider(Protocol):
    async def get_balance(self) -> Balance: ...

    async def get_portfolio_value(self) -> int: ...


class ExchangePortfolioValueProvider:
    """Exchange-reported cash plus positions value, never a local sum."""

    def __init__(self, exchange: ExchangeClient) -> None:
        self._exchange = exchange

    async def get_balance(self) -> Balance:
        try:
            return await self._exchange.get_balance()
        except (ExchangeError, ExchangeRateLimitedError) as e:
            raise BalanceUnavailableError(e.message) from e

    async def get_portfolio_value(self) -> int:
        return (await self.get_balance()).total_portfolio_value

"""MarketCatalog — candidate selection over the exchange's open markets.

For every configured series the catalog lists open markets closing within
the horizon, derives the favourite side and price from the last traded YES
price, and keeps markets whose favourite sits inside the odds band, whose
open interest clears the floor and which are not blacklisted. Candidates are
ranked by open interest descending with ticker as a stable tie-break.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings
from src.ff_common.cents import CONTRACT_FACE_VALUE_CENTS, percent_to_bps
from src.ff_common.errors import ExchangeError, ExchangeRateLimitedError, MarketNotFoundError
from src.ff_exchange.client import ExchangeClient
from src.ff_exchange.schemas import ExchangeMarket
from src.ff_market.domain.models import Market
from src.ff_market.domain.repository import IlliquidMarketRepositoryProtocol
from src.ff_market.infrastructure.persistence import IlliquidMarketRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionCriteria:
    series: tuple[str, ...]
    min_odds: float = 0.90
    max_odds: float = 0.995
    min_open_interest: int = 1000
    max_close_hours: int = 408
    page_limit: int = 200

    @classmethod
    def from_settings(cls, settings: Settings) -> "SelectionCriteria":
        return cls(
            series=tuple(settings.MARKET_SERIES),
            min_odds=settings.MIN_ODDS,
            max_odds=settings.MAX_ODDS,
            min_open_interest=settings.MIN_OPEN_INTEREST,
            max_close_hours=settings.MAX_CLOSE_HOURS,
            page_limit=settings.MARKETS_PAGE_LIMIT,
        )

    def accepts(self, market: Market) -> bool:
        # Compare in basis points: price_cents * 100 against odds * 10_000
        favorite_bps = market.favorite_price_cents * 100
        if market.favorite_price_cents >= CONTRACT_FACE_VALUE_CENTS:
            return False
        if not percent_to_bps(self.min_odds) <= favorite_bps <= percent_to_bps(self.max_odds):
            return False
        return market.open_interest >= self.min_open_interest


def to_market(raw: ExchangeMarket) -> Market:
    return Market(
        ticker=raw.ticker,
        event_ticker=raw.event_ticker,
        title=raw.title,
        yes_price_cents=raw.yes_price_cents,
        open_interest=raw.open_interest,
        close_time=raw.close_time,
    )


def rank_candidates(markets: list[Market]) -> list[Market]:
    return sorted(markets, key=lambda m: (-m.open_interest, m.ticker))


class MarketCatalog:
    def __init__(
        self,
        exchange: ExchangeClient,
        illiquid_repo: IlliquidMarketRepositoryProtocol | None = None,
    ) -> None:
        self._exchange = exchange
        self._illiquid_repo: IlliquidMarketRepositoryProtocol = (
            illiquid_repo or IlliquidMarketRepository()
        )

    async def list_candidates(
        self, db: AsyncSession, criteria: SelectionCriteria
    ) -> list[Market]:
        blacklist = await self._illiquid_repo.list_tickers(db)
        seen: dict[str, Market] = {}
        for series in criteria.series:
            try:
                raw_markets = await self._exchange.list_open_markets(
                    series, criteria.max_close_hours, limit=criteria.page_limit
                )
            except (ExchangeError, ExchangeRateLimitedError) as e:
                logger.warning("Skipping series %s: %s", series, e.message)
                continue
            for raw in raw_markets:
                if raw.ticker in seen or raw.ticker in blacklist:
                    continue
                market = to_market(raw)
                if criteria.accepts(market):
                    seen[raw.ticker] = market

        candidates = rank_candidates(list(seen.values()))
        logger.info(
            "Selected %d candidates across %d series (%d blacklisted)",
            len(candidates), len(criteria.series), len(blacklist),
        )
        return candidates

    async def get_market(self, ticker: str) -> Market:
        try:
            raw = await self._exchange.get_market(ticker)
        except ExchangeError as e:
            if e.status_code == 404:
                raise MarketNotFoundError(ticker) from None
            raise
        return to_market(raw)

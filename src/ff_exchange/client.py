"""ExchangeClient — signed async transport to the exchange's trade API.

Every call signs ``timestamp + METHOD + /trade-api/v2/<endpoint>`` (query
string excluded), retries HTTP 429 with exponential backoff and validates the
JSON body into the endpoint's pydantic model. Non-2xx responses raise
``ExchangeError``; bodies that fail validation raise ``ExchangeResponseError``.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, ValidationError

from config.settings import Settings
from src.ff_common.datetime_utils import utc_now
from src.ff_common.errors import ExchangeError, ExchangeRateLimitedError, ExchangeResponseError
from src.ff_exchange.schemas import (
    Balance,
    ExchangeMarket,
    ExchangeOrder,
    Fill,
    FillsPage,
    MarketDetailResponse,
    MarketPosition,
    MarketsPage,
    OrderRequest,
    PlaceOrderResponse,
    PositionsPage,
    Settlement,
    SettlementsPage,
)
from src.ff_exchange.signing import RequestSigner

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_PAGE_DELAY_SECONDS = 0.1


class ExchangeClient:
    def __init__(
        self,
        base_url: str,
        signer: RequestSigner,
        http: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
        max_retries: int = 3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._path_prefix = urlsplit(self._base_url).path
        self._signer = signer
        self._http = http or httpx.AsyncClient(timeout=timeout)
        self._max_retries = max_retries
        self._sleep = sleep

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        model: type[ModelT],
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> ModelT:
        signed_path = f"{self._path_prefix}{endpoint}"
        for attempt in range(self._max_retries):
            headers = self._signer.headers(method, signed_path)
            headers["Content-Type"] = "application/json"
            response = await self._http.request(
                method,
                f"{self._base_url}{endpoint}",
                params={k: v for k, v in (params or {}).items() if v is not None},
                json=json,
                headers=headers,
            )
            if response.status_code == 429:
                if attempt == self._max_retries - 1:
                    break
                delay = (2 ** (attempt + 1)) * 2
                logger.warning("Rate limited on %s %s, waiting %ss", method, endpoint, delay)
                await self._sleep(delay)
                continue
            if not response.is_success:
                raise ExchangeError(response.status_code, response.text)
            try:
                return model.model_validate(response.json())
            except (ValidationError, ValueError) as e:
                raise ExchangeResponseError(endpoint, str(e)) from None
        raise ExchangeRateLimitedError(self._max_retries)

    async def _paginate(
        self,
        endpoint: str,
        model: type[ModelT],
        items_attr: str,
        params: dict[str, Any] | None = None,
        max_pages: int | None = None,
    ) -> list[Any]:
        items: list[Any] = []
        cursor: str | None = None
        page = 0
        while True:
            data = await self._request(
                "GET", endpoint, model, params={**(params or {}), "cursor": cursor}
            )
            batch = getattr(data, items_attr)
            items.extend(batch)
            cursor = data.cursor  # type: ignore[attr-defined]
            page += 1
            if not batch or not cursor or (max_pages is not None and page >= max_pages):
                return items
            await self._sleep(_PAGE_DELAY_SECONDS)

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def list_open_markets(
        self,
        series_ticker: str | None,
        max_close_hours: int,
        limit: int = 200,
        max_pages: int | None = None,
    ) -> list[ExchangeMarket]:
        max_close_ts = int(utc_now().timestamp()) + max_close_hours * 3600
        params = {
            "limit": limit,
            "status": "open",
            "max_close_ts": max_close_ts,
            "series_ticker": series_ticker,
        }
        return await self._paginate("/markets", MarketsPage, "markets", params, max_pages)

    async def get_market(self, ticker: str) -> ExchangeMarket:
        data = await self._request("GET", f"/markets/{ticker}", MarketDetailResponse)
        return data.market

    async def get_balance(self) -> Balance:
        return await self._request("GET", "/portfolio/balance", Balance)

    async def get_positions(self) -> list[MarketPosition]:
        return await self._paginate(
            "/portfolio/positions", PositionsPage, "market_positions", {"limit": 1000}
        )

    async def place_order(self, order: OrderRequest) -> ExchangeOrder:
        data = await self._request(
            "POST",
            "/portfolio/orders",
            PlaceOrderResponse,
            json=order.model_dump(exclude_none=True),
        )
        return data.order

    async def list_fills(self) -> list[Fill]:
        return await self._paginate("/portfolio/fills", FillsPage, "fills", {"limit": 1000})

    async def list_settlements(self) -> list[Settlement]:
        return await self._paginate(
            "/portfolio/settlements", SettlementsPage, "settlements", {"limit": 1000}
        )


def create_exchange_client(settings: Settings) -> ExchangeClient:
    """Build a client from settings; raises ConfigurationError on bad credentials."""
    signer = RequestSigner.from_pem(settings.EXCHANGE_API_KEY_ID, settings.EXCHANGE_PRIVATE_KEY)
    return ExchangeClient(
        base_url=settings.EXCHANGE_BASE_URL,
        signer=signer,
        timeout=settings.EXCHANGE_TIMEOUT_SECONDS,
        max_retries=settings.EXCHANGE_MAX_RETRIES,
    )

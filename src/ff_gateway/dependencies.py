"""Shared FastAPI dependencies for the job and batch routers.

The exchange client is built on first use and cached on ``app.state``; bad
credentials raise ConfigurationError inside the request that needed the
client, before that operation touches anything.
"""

from fastapi import Depends, Request

from config.settings import Settings
from src.ff_exchange.client import ExchangeClient, create_exchange_client
from src.ff_gateway.auth.dependencies import get_app_settings


def get_exchange_client(
    request: Request, settings: Settings = Depends(get_app_settings)
) -> ExchangeClient:
    client: ExchangeClient | None = getattr(request.app.state, "exchange_client", None)
    if client is None:
        client = create_exchange_client(settings)
        request.app.state.exchange_client = client
    return client

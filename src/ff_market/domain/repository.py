# src/ff_market/domain/repository.py
"""Repository Protocol for the illiquid-market blacklist."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_market.domain.models import IlliquidMarket


class IlliquidMarketRepositoryProtocol(Protocol):
    async def list_tickers(self, db: AsyncSession) -> set[str]: ...

    async def list_entries(self, db: AsyncSession) -> list[IlliquidMarket]: ...

    async def add(self, db: AsyncSession, ticker: str, reason: str | None) -> bool: ...

    async def remove(self, db: AsyncSession, ticker: str | None) -> int: ...

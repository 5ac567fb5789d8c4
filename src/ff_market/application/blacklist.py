# src/ff_market/application/blacklist.py
"""BlacklistService — manual upkeep of the illiquid-market blacklist.

Blacklisted tickers are skipped by candidate selection. Entries are added by
an operator after a market failed to fill and cleared (one ticker or all) to
let those markets back in.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_market.application.schemas import (
    BlacklistChangeResult,
    BlacklistEntry,
    BlacklistResponse,
)
from src.ff_market.domain.repository import IlliquidMarketRepositoryProtocol
from src.ff_market.infrastructure.persistence import IlliquidMarketRepository

logger = logging.getLogger(__name__)


class BlacklistService:
    def __init__(self, repo: IlliquidMarketRepositoryProtocol | None = None) -> None:
        self._repo: IlliquidMarketRepositoryProtocol = repo or IlliquidMarketRepository()

    async def list_entries(self, db: AsyncSession) -> BlacklistResponse:
        entries = await self._repo.list_entries(db)
        return BlacklistResponse(items=[BlacklistEntry.from_domain(e) for e in entries])

    async def add(
        self, db: AsyncSession, ticker: str, reason: str | None
    ) -> BlacklistChangeResult:
        try:
            added = await self._repo.add(db, ticker, reason)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if not added:
            return BlacklistChangeResult(message=f"{ticker} already blacklisted")
        logger.info("Blacklisted %s (%s)", ticker, reason or "no reason given")
        return BlacklistChangeResult(affected=1, message=f"Blacklisted {ticker}")

    async def clear(self, db: AsyncSession, ticker: str | None = None) -> BlacklistChangeResult:
        try:
            removed = await self._repo.remove(db, ticker)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Cleared %d blacklist entries (%s)", removed, ticker or "all")
        target = ticker or "all tickers"
        return BlacklistChangeResult(affected=removed, message=f"Cleared blacklist for {target}")

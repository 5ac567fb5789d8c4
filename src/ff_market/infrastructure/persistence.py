"""IlliquidMarketRepository — raw text() SQL over the illiquid_markets table."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_market.domain.models import IlliquidMarket

_LIST_TICKERS_SQL = text("""
    SELECT ticker FROM illiquid_markets
""")

_LIST_ENTRIES_SQL = text("""
    SELECT ticker, reason, created_at
    FROM illiquid_markets
    ORDER BY created_at DESC, ticker
""")

_ADD_SQL = text("""
    INSERT INTO illiquid_markets (ticker, reason)
    VALUES (:ticker, :reason)
    ON CONFLICT (ticker) DO NOTHING
""")

_REMOVE_ONE_SQL = text("""
    DELETE FROM illiquid_markets WHERE ticker = :ticker
""")

_REMOVE_ALL_SQL = text("""
    DELETE FROM illiquid_markets
""")


def _row_to_entry(row: Any) -> IlliquidMarket:
    return IlliquidMarket(ticker=row.ticker, reason=row.reason, created_at=row.created_at)


class IlliquidMarketRepository:
    """Callers own the transaction: nothing here commits."""

    async def list_tickers(self, db: AsyncSession) -> set[str]:
        result = await db.execute(_LIST_TICKERS_SQL)
        return {row.ticker for row in result.fetchall()}

    async def list_entries(self, db: AsyncSession) -> list[IlliquidMarket]:
        result = await db.execute(_LIST_ENTRIES_SQL)
        return [_row_to_entry(row) for row in result.fetchall()]

    async def add(self, db: AsyncSession, ticker: str, reason: str | None) -> bool:
        """Returns False when the ticker was already blacklisted."""
        result = await db.execute(_ADD_SQL, {"ticker": ticker, "reason": reason})
        return result.rowcount > 0

    async def remove(self, db: AsyncSession, ticker: str | None) -> int:
        """Delete one ticker, or every entry when ticker is None."""
        if ticker is None:
            result = await db.execute(_REMOVE_ALL_SQL)
        else:
            result = await db.execute(_REMOVE_ONE_SQL, {"ticker": ticker})
        return result.rowcount

"""Illiquid-market blacklist: repository SQL, service commits, HTTP surface."""
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from pydantic import ValidationError

from src.ff_common.database import get_db_session
from src.ff_market.api import router as blacklist_router
from src.ff_market.application.blacklist import BlacklistService
from src.ff_market.application.schemas import BlacklistAddRequest
from src.ff_market.domain.models import IlliquidMarket
from src.ff_market.infrastructure.persistence import IlliquidMarketRepository

AUTH = {"Authorization": "Bearer test-cron-secret"}


def _db_with_rowcount(rowcount: int) -> AsyncMock:
    db = AsyncMock()
    result_mock = MagicMock()
    result_mock.rowcount = rowcount
    db.execute.return_value = result_mock
    return db


class TestIlliquidMarketRepository:
    @pytest.mark.asyncio
    async def test_add_reports_duplicate(self) -> None:
        repo = IlliquidMarketRepository()
        assert await repo.add(_db_with_rowcount(1), "T-A", "no fill") is True
        assert await repo.add(_db_with_rowcount(0), "T-A", "no fill") is False

    @pytest.mark.asyncio
    async def test_remove_one_binds_ticker(self) -> None:
        db = _db_with_rowcount(1)
        assert await IlliquidMarketRepository().remove(db, "T-A") == 1
        assert db.execute.call_args.args[1] == {"ticker": "T-A"}

    @pytest.mark.asyncio
    async def test_remove_all(self) -> None:
        db = _db_with_rowcount(3)
        assert await IlliquidMarketRepository().remove(db, None) == 3
        assert len(db.execute.call_args.args) == 1

    @pytest.mark.asyncio
    async def test_list_tickers(self) -> None:
        db = AsyncMock()
        result_mock = MagicMock()
        result_mock.fetchall.return_value = [MagicMock(ticker="T-A"), MagicMock(ticker="T-B")]
        db.execute.return_value = result_mock
        assert await IlliquidMarketRepository().list_tickers(db) == {"T-A", "T-B"}


class TestBlacklistService:
    @pytest.mark.asyncio
    async def test_add_commits(self) -> None:
        repo = MagicMock()
        repo.add = AsyncMock(return_value=True)
        db = AsyncMock()

        result = await BlacklistService(repo).add(db, "T-A", "resting 24h")

        assert result.affected == 1
        repo.add.assert_awaited_once_with(db, "T-A", "resting 24h")
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_duplicate_add_is_not_an_error(self) -> None:
        repo = MagicMock()
        repo.add = AsyncMock(return_value=False)

        result = await BlacklistService(repo).add(AsyncMock(), "T-A", None)

        assert result.success is True
        assert result.affected == 0

    @pytest.mark.asyncio
    async def test_clear_failure_rolls_back(self) -> None:
        repo = MagicMock()
        repo.remove = AsyncMock(side_effect=RuntimeError("db down"))
        db = AsyncMock()

        with pytest.raises(RuntimeError):
            await BlacklistService(repo).clear(db)

        db.rollback.assert_awaited_once()

    def test_ticker_must_be_clean(self) -> None:
        with pytest.raises(ValidationError):
            BlacklistAddRequest(ticker="T A")


class TestBlacklistApi:
    @pytest.fixture
    def service(self, app: FastAPI, monkeypatch) -> MagicMock:
        async def fake_db():
            yield AsyncMock()

        app.dependency_overrides[get_db_session] = fake_db
        repo = MagicMock()
        repo.list_entries = AsyncMock(return_value=[
            IlliquidMarket("T-A", "no fill", datetime(2025, 12, 18, tzinfo=UTC))
        ])
        repo.add = AsyncMock(return_value=True)
        repo.remove = AsyncMock(return_value=2)
        monkeypatch.setattr(blacklist_router, "_service", BlacklistService(repo))
        return repo

    @pytest.mark.asyncio
    async def test_list(self, service, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/markets/blacklist", headers=AUTH)
        assert resp.status_code == 200
        assert resp.json()["data"]["items"][0]["ticker"] == "T-A"

    @pytest.mark.asyncio
    async def test_add(self, service, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/markets/blacklist", json={"ticker": "T-B", "reason": "x"}, headers=AUTH
        )
        assert resp.json()["data"]["affected"] == 1

    @pytest.mark.asyncio
    async def test_clear_all(self, service, client: AsyncClient) -> None:
        resp = await client.delete("/api/v1/markets/blacklist", headers=AUTH)
        assert resp.json()["data"]["affected"] == 2
        assert service.remove.call_args.args[1] is None

    @pytest.mark.asyncio
    async def test_requires_secret(self, service, client: AsyncClient) -> None:
        resp = await client.delete("/api/v1/markets/blacklist")
        assert resp.status_code == 401
        service.remove.assert_not_awaited()

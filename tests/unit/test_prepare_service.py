"""PrepareService: batch creation from candidates, no-op paths, reserve."""
from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.ff_allocation.application.service import PrepareService
from src.ff_common.datetime_utils import utc_today
from src.ff_exchange.schemas import Balance
from src.ff_market.domain.models import Market
from src.ff_order.domain.models import Batch


def _market(ticker: str, price: int, open_interest: int = 10_000) -> Market:
    return Market(ticker, ticker.rsplit("-", 1)[0], f"Title {ticker}",
                  yes_price_cents=price, open_interest=open_interest)


def _service(settings, candidates, balance=10_000, portfolio_value=0, existing=None):
    catalog = MagicMock()
    catalog.list_candidates = AsyncMock(return_value=candidates)
    portfolio = MagicMock()
    portfolio.get_balance = AsyncMock(
        return_value=Balance(balance=balance, portfolio_value=portfolio_value)
    )
    batch_repo = MagicMock()
    batch_repo.get_by_date = AsyncMock(return_value=existing)
    batch_repo.create = AsyncMock()
    order_repo = MagicMock()
    order_repo.save = AsyncMock()
    service = PrepareService(settings, catalog, portfolio,
                             batch_repo=batch_repo, order_repo=order_repo)
    return service, batch_repo, order_repo


class TestPrepare:
    @pytest.mark.asyncio
    async def test_creates_batch_and_pending_orders(self, settings) -> None:
        service, batch_repo, order_repo = _service(
            settings, [_market("S-A", 95), _market("S-B", 8)]
        )
        db = AsyncMock()

        result = await service.prepare(db)

        assert result.success is True
        assert result.no_op is False
        assert result.batch_date == utc_today() + timedelta(days=1)
        assert result.orders_created == 2
        batch = batch_repo.create.call_args.args[0]
        assert batch.id == result.batch_id
        assert batch.total_orders == 2
        orders = [c.args[0] for c in order_repo.save.call_args_list]
        assert {(o.ticker, o.side, o.price_cents, o.units) for o in orders} == {
            ("S-A", "YES", 95, 3),
            ("S-B", "NO", 92, 3),
        }
        assert all(o.placement_status == "pending" for o in orders)
        assert all(o.batch_id == batch.id for o in orders)
        assert batch.total_cost_cents == 3 * 95 + 3 * 92
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_for_today(self, settings) -> None:
        service, _, _ = _service(settings, [_market("S-A", 95)])

        result = await service.prepare(AsyncMock(), for_today=True)

        assert result.batch_date == utc_today()

    @pytest.mark.asyncio
    async def test_existing_batch_is_an_error(self, settings) -> None:
        existing = Batch(id="b-1", batch_date=date(2025, 12, 18))
        service, batch_repo, _ = _service(settings, [_market("S-A", 95)], existing=existing)

        result = await service.prepare(AsyncMock())

        assert result.success is False
        assert "already exists" in result.error
        batch_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_candidates_is_a_no_op(self, settings) -> None:
        service, batch_repo, _ = _service(settings, [])

        result = await service.prepare(AsyncMock())

        assert result.success is True
        assert result.no_op is True
        assert result.batch_id is None
        batch_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unaffordable_is_a_no_op(self, settings) -> None:
        service, batch_repo, _ = _service(settings, [_market("S-A", 95)], balance=50)

        result = await service.prepare(AsyncMock())

        assert result.no_op is True
        assert result.candidates == 1
        batch_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reserve_is_withheld(self, settings) -> None:
        settings.CAPITAL_RESERVE_PERCENT = 0.5
        settings.MAX_POSITION_PERCENT = 1.0
        service, _, order_repo = _service(settings, [_market("S-A", 90)], balance=1_000)

        await service.prepare(AsyncMock())

        order = order_repo.save.call_args.args[0]
        assert order.units == 5
        assert order.cost_cents == 450

    @pytest.mark.asyncio
    async def test_persistence_failure_rolls_back(self, settings) -> None:
        service, batch_repo, _ = _service(settings, [_market("S-A", 95)])
        batch_repo.create = AsyncMock(side_effect=RuntimeError("db down"))
        db = AsyncMock()

        with pytest.raises(RuntimeError):
            await service.prepare(db)

        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

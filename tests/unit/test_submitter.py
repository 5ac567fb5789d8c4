"""OrderSubmitter with mocked exchange, portfolio and repositories."""
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.ff_common.errors import ExchangeError
from src.ff_exchange.schemas import Balance, ExchangeOrder, MarketPosition
from src.ff_order.application.submitter import OrderSubmitter, build_order_request
from src.ff_order.domain.models import Batch, Order


def _make_order(**kwargs) -> Order:
    defaults = dict(
        id="o-1", batch_id="b-1", ticker="T1", side="YES", price_cents=92, units=3,
        cost_cents=276, potential_payout_cents=300,
    )
    defaults.update(kwargs)
    return Order(**defaults)


def _executed(order_id: str = "ex-1", price: int = 92, fill_count: int | None = 3,
              status: str = "executed") -> ExchangeOrder:
    return ExchangeOrder(order_id=order_id, status=status, yes_price=price,
                         no_price=100 - price, fill_count=fill_count)


class _Harness:
    def __init__(self, settings, orders, balance=100_000, portfolio_value=0,
                 batch: Batch | None = None, positions=None, place_order=None,
                 sleep=None) -> None:
        self.batch = batch or Batch(id="b-1", batch_date=date(2025, 12, 18))
        self.orders = orders
        self.db = AsyncMock()
        self.batch_repo = MagicMock()
        self.batch_repo.get_by_id = AsyncMock(return_value=self.batch)
        self.batch_repo.get_latest = AsyncMock(return_value=self.batch)
        self.batch_repo.update_totals = AsyncMock()
        self.order_repo = MagicMock()
        self.order_repo.list_by_batch = AsyncMock(return_value=orders)
        self.order_repo.update = AsyncMock()
        self.order_repo.claim_for_submission = AsyncMock(return_value=True)
        self.exchange = MagicMock()
        self.exchange.get_positions = AsyncMock(return_value=positions or [])
        self.exchange.place_order = AsyncMock(side_effect=place_order or [_executed()])
        self.portfolio = MagicMock()
        self.portfolio.get_balance = AsyncMock(
            return_value=Balance(balance=balance, portfolio_value=portfolio_value)
        )
        kwargs = {"sleep": sleep} if sleep is not None else {}
        self.submitter = OrderSubmitter(
            settings, self.exchange, self.portfolio,
            batch_repo=self.batch_repo, order_repo=self.order_repo, **kwargs,
        )

    async def run(self, batch_id: str | None = "b-1"):
        return await self.submitter.execute(self.db, batch_id)


class TestBuildOrderRequest:
    def test_no_side_uses_no_price(self) -> None:
        order = _make_order(side="NO", price_cents=94, client_order_id="ff_x")
        req = build_order_request(order)
        assert req.side == "no"
        assert req.no_price == 94
        assert req.yes_price is None
        assert req.action == "buy"
        assert req.count == 3


class TestExecuteOutcomes:
    @pytest.mark.asyncio
    async def test_executed_becomes_confirmed_with_exchange_figures(self, settings) -> None:
        order = _make_order()
        h = _Harness(settings, [order], place_order=[_executed(price=91, fill_count=2)])

        result = await h.run()

        assert result.success is True
        assert result.confirmed == 1
        assert order.placement_status == "confirmed"
        assert order.exchange_order_id == "ex-1"
        assert order.executed_price_cents == 91
        assert order.executed_cost_cents == 182
        assert order.cost_cents == 182
        assert order.units == 2
        assert order.client_order_id is not None

    @pytest.mark.asyncio
    async def test_resting_is_not_confirmed(self, settings) -> None:
        order = _make_order()
        h = _Harness(settings, [order], place_order=[_executed(status="resting")])

        result = await h.run()

        assert result.resting == 1
        assert order.placement_status == "resting"
        assert order.executed_cost_cents is None

    @pytest.mark.asyncio
    async def test_exchange_rejection_fails_and_clears_token(self, settings) -> None:
        order = _make_order()
        h = _Harness(settings, [order], place_order=[ExchangeError(400, "insufficient")])

        result = await h.run()

        assert result.failed == 1
        assert order.placement_status == "failed"
        assert "400" in order.failure_reason
        assert order.client_order_id is None

    @pytest.mark.asyncio
    async def test_transport_error_keeps_token_for_retry(self, settings) -> None:
        order = _make_order()
        h = _Harness(settings, [order], place_order=[httpx.ConnectError("reset")])

        await h.run()

        assert order.placement_status == "failed"
        token = order.client_order_id
        assert token is not None

        h.exchange.place_order = AsyncMock(return_value=_executed())
        await h.run()

        assert order.placement_status == "confirmed"
        sent = h.exchange.place_order.call_args.args[0]
        assert sent.client_order_id == token

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_batch(self, settings) -> None:
        orders = [_make_order(id="a", ticker="TA"), _make_order(id="b", ticker="TB")]
        h = _Harness(settings, orders, place_order=[ExchangeError(400, "x"), _executed()])

        result = await h.run()

        assert result.failed == 1
        assert result.confirmed == 1


class TestGuardAndCash:
    @pytest.mark.asyncio
    async def test_guard_rejection_leaves_order_pending(self, settings) -> None:
        order = _make_order(price_cents=95, units=4, cost_cents=380)
        # portfolio 10_000 -> cap 300 < 380
        h = _Harness(settings, [order], balance=10_000)

        result = await h.run()

        assert result.rejected == 1
        assert result.items[0].outcome == "rejected"
        assert order.placement_status == "pending"
        h.exchange.place_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_min_price_rejection(self, settings) -> None:
        order = _make_order(price_cents=89, units=1, cost_cents=89)
        h = _Harness(settings, [order])

        result = await h.run()

        assert result.rejected == 1
        assert order.placement_status == "pending"

    @pytest.mark.asyncio
    async def test_existing_position_exposure_counts_toward_cap(self, settings) -> None:
        order = _make_order()
        positions = [MarketPosition(ticker="T1", position=30, market_exposure=2_800)]
        h = _Harness(settings, [order], positions=positions)  # cap 3_000

        result = await h.run()

        assert result.rejected == 1

    @pytest.mark.asyncio
    async def test_insufficient_cash_skips(self, settings) -> None:
        orders = [_make_order(id="a", ticker="TA"), _make_order(id="b", ticker="TB")]
        h = _Harness(settings, orders, balance=300, portfolio_value=20_000)

        result = await h.run()

        assert result.confirmed == 1
        assert result.skipped == 1
        assert orders[1].placement_status == "pending"


class TestCycleControl:
    @pytest.mark.asyncio
    async def test_paused_batch_has_no_side_effects(self, settings) -> None:
        batch = Batch(id="b-1", batch_date=date(2025, 12, 18), is_paused=True)
        h = _Harness(settings, [_make_order()], batch=batch)

        result = await h.run()

        assert result.success is False
        assert "paused" in result.error
        h.order_repo.list_by_batch.assert_not_awaited()
        h.exchange.place_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_nothing_eligible(self, settings) -> None:
        h = _Harness(settings, [_make_order(placement_status="confirmed")])

        result = await h.run()

        assert result.success is False
        h.exchange.place_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_before_first_group_leaves_orders_pending(self, settings) -> None:
        order = _make_order()
        h = _Harness(settings, [order])
        h.submitter.cancel_event.set()

        result = await h.run()

        assert result.cancelled is True
        assert order.placement_status == "pending"
        h.exchange.place_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_groups_are_paced(self, settings) -> None:
        settings.SUBMIT_CONCURRENCY = 2
        settings.SUBMIT_GROUP_DELAY_SECONDS = 0.5
        sleeps: list[float] = []

        async def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)

        orders = [_make_order(id=f"o{i}", ticker=f"T{i}") for i in range(3)]
        h = _Harness(
            settings, orders,
            place_order=[_executed(order_id=f"ex{i}") for i in range(3)],
            sleep=fake_sleep,
        )

        result = await h.run()

        assert result.confirmed == 3
        assert sleeps == [0.5]

    @pytest.mark.asyncio
    async def test_totals_recomputed_and_executed_stamped(self, settings) -> None:
        h = _Harness(settings, [_make_order()], place_order=[_executed(price=91, fill_count=3)])

        await h.run()

        call = h.batch_repo.update_totals.call_args
        totals = call.args[1]
        assert totals.total_orders == 1
        assert totals.total_cost_cents == 273
        assert call.kwargs["mark_executed"] is True

    @pytest.mark.asyncio
    async def test_submitted_committed_before_exchange_call(self, settings) -> None:
        order = _make_order()
        h = _Harness(settings, [order])
        commits_at_send: list[int] = []

        async def place(request):
            commits_at_send.append(h.db.commit.await_count)
            assert order.placement_status == "submitted"
            return _executed()

        h.exchange.place_order = AsyncMock(side_effect=place)

        await h.run()

        assert commits_at_send == [1]


class TestClaim:
    @pytest.mark.asyncio
    async def test_claim_expects_the_loaded_status(self, settings) -> None:
        order = _make_order(placement_status="failed", client_order_id="ff-o-1-abc")
        h = _Harness(settings, [order])

        await h.run()

        claimed, expected, _ = h.order_repo.claim_for_submission.call_args.args
        assert claimed is order
        assert expected == "failed"
        assert h.exchange.place_order.call_args.args[0].client_order_id == "ff-o-1-abc"

    @pytest.mark.asyncio
    async def test_order_claimed_elsewhere_is_not_sent(self, settings) -> None:
        taken = _make_order(id="a", ticker="TA")
        free = _make_order(id="b", ticker="TB")
        h = _Harness(settings, [taken, free])
        h.order_repo.claim_for_submission = AsyncMock(
            side_effect=lambda order, expected, db: order.id != "a"
        )

        result = await h.run()

        h.exchange.place_order.assert_awaited_once()
        assert h.exchange.place_order.call_args.args[0].ticker == "TB"
        assert result.confirmed == 1
        assert result.skipped == 1
        skipped = next(i for i in result.items if i.order_id == "a")
        assert skipped.outcome == "skipped"

    @pytest.mark.asyncio
    async def test_nothing_sent_when_every_claim_is_lost(self, settings) -> None:
        h = _Harness(settings, [_make_order()])
        h.order_repo.claim_for_submission = AsyncMock(return_value=False)

        result = await h.run()

        h.exchange.place_order.assert_not_awaited()
        h.order_repo.update.assert_not_awaited()
        assert result.skipped == 1

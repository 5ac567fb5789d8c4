"""OrderSubmitter — drives a batch's pending orders through the exchange.

Per cycle:
  1. Load the batch; paused batches and batches with nothing submittable
     return an error result without side effects.
  2. Read cash, portfolio value and per-market exposure from the exchange.
  3. Walk the eligible orders in groups of ``SUBMIT_CONCURRENCY``. Each order
     passes the RiskGuard and the remaining-cash check, is claimed as
     ``submitted`` with a conditional update (committed), then sent. An order
     another execute run claimed first is skipped and never sent. Same-ticker sends are serialised by
     a per-ticker lock; distinct tickers go out concurrently.
  4. Responses are applied to orders sequentially and committed.
  5. Batch aggregates are recomputed from every order of the batch.

Setting ``cancel_event`` stops the cycle between groups; orders not yet sent
stay ``pending``. A crash between send and update leaves an order
``submitted``; reconciliation resolves it from fills.
"""
import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings
from src.ff_common.cents import CONTRACT_FACE_VALUE_CENTS
from src.ff_common.enums import Action, ExchangeOrderStatus, Side
from src.ff_common.enums import PlacementStatus as PS
from src.ff_common.errors import (
    AppError,
    ExchangeError,
    ExchangeRateLimitedError,
    ExchangeResponseError,
)
from src.ff_common.id_generator import client_order_id
from src.ff_exchange.client import ExchangeClient
from src.ff_exchange.schemas import ExchangeOrder, OrderRequest
from src.ff_order.application.schemas import ExecuteResult, SubmissionItem
from src.ff_order.domain.models import Batch, Order, compute_batch_totals
from src.ff_order.domain.repository import BatchRepositoryProtocol, OrderRepositoryProtocol
from src.ff_order.domain.state_machine import transition
from src.ff_order.infrastructure.persistence import BatchRepository, OrderRepository
from src.ff_risk.portfolio import PortfolioValueProvider
from src.ff_risk.rules.guard import RiskGuard

logger = logging.getLogger(__name__)

SendOutcome = ExchangeOrder | AppError | httpx.HTTPError


def build_order_request(order: Order) -> OrderRequest:
    side = Side(order.side)
    price_field = "yes_price" if side is Side.YES else "no_price"
    return OrderRequest(
        ticker=order.ticker,
        action=Action.BUY.value,
        side=side.wire,
        count=order.units,
        type="limit",
        client_order_id=order.client_order_id or "",
        **{price_field: order.price_cents},
    )


def _is_ambiguous(error: AppError | httpx.HTTPError) -> bool:
    """True when the exchange may have accepted the order despite the error."""
    if isinstance(error, httpx.HTTPError | ExchangeRateLimitedError | ExchangeResponseError):
        return True
    return isinstance(error, ExchangeError) and error.status_code >= 500


def _error_text(error: AppError | httpx.HTTPError) -> str:
    return error.message if isinstance(error, AppError) else f"{type(error).__name__}: {error}"


class OrderSubmitter:
    def __init__(
        self,
        settings: Settings,
        exchange: ExchangeClient,
        portfolio: PortfolioValueProvider,
        guard: RiskGuard | None = None,
        batch_repo: BatchRepositoryProtocol | None = None,
        order_repo: OrderRepositoryProtocol | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._exchange = exchange
        self._portfolio = portfolio
        self._guard = guard or RiskGuard.from_settings(settings)
        self._batch_repo: BatchRepositoryProtocol = batch_repo or BatchRepository()
        self._order_repo: OrderRepositoryProtocol = order_repo or OrderRepository()
        self._concurrency = max(settings.SUBMIT_CONCURRENCY, 1)
        self._group_delay = settings.SUBMIT_GROUP_DELAY_SECONDS
        self._sleep = sleep
        self._ticker_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.cancel_event = asyncio.Event()

    async def _load_batch(self, db: AsyncSession, batch_id: str | None) -> Batch | None:
        if batch_id is not None:
            return await self._batch_repo.get_by_id(batch_id, db)
        return await self._batch_repo.get_latest(db)

    async def execute(self, db: AsyncSession, batch_id: str | None = None) -> ExecuteResult:
        batch = await self._load_batch(db, batch_id)
        if batch is None:
            return ExecuteResult(success=False, error="No batch found", batch_id=batch_id)
        if batch.is_paused:
            return ExecuteResult(success=False, error="Batch is paused", batch_id=batch.id)

        orders = await self._order_repo.list_by_batch(batch.id, db)
        eligible = [o for o in orders if o.is_submittable]
        if not eligible:
            return ExecuteResult(
                success=False, error="No pending orders to execute", batch_id=batch.id
            )

        balance = await self._portfolio.get_balance()
        positions = await self._exchange.get_positions()
        exposure = {p.ticker: p.market_exposure for p in positions}
        result = ExecuteResult(batch_id=batch.id, portfolio_value_cents=balance.total_portfolio_value)
        remaining_cash = balance.balance
        logger.info(
            "Executing batch %s: %d eligible orders, cash %dc, portfolio %dc",
            batch.id, len(eligible), remaining_cash, balance.total_portfolio_value,
        )

        queue = list(eligible)
        first_group = True
        while queue:
            if self.cancel_event.is_set():
                logger.warning("Execution of batch %s cancelled; %d orders left pending",
                               batch.id, len(queue))
                result.cancelled = True
                break
            if not first_group and self._group_delay > 0:
                await self._sleep(self._group_delay)
            first_group = False

            group: list[Order] = []
            while queue and len(group) < self._concurrency:
                order = queue.pop(0)
                decision = self._guard.check(
                    Action.BUY,
                    order.price_cents,
                    order.units,
                    balance.total_portfolio_value,
                    exposure.get(order.ticker, 0),
                )
                if not decision.allowed:
                    self._record(result, order, "rejected", decision.reason)
                    continue
                if order.cost_cents > remaining_cash:
                    self._record(
                        result, order, "skipped",
                        f"Cost {order.cost_cents}c exceeds remaining cash {remaining_cash}c",
                    )
                    continue
                remaining_cash -= order.cost_cents
                group.append(order)
            if not group:
                continue

            claimed = await self._claim(db, group)
            claimed_ids = {o.id for o in claimed}
            for order in group:
                if order.id not in claimed_ids:
                    remaining_cash += order.cost_cents
                    self._record(result, order, "skipped", "Claimed by another execute run")
            group = claimed
            if not group:
                continue
            outcomes = await asyncio.gather(*(self._send(o) for o in group))
            try:
                for order, outcome in zip(group, outcomes):
                    label = self._apply(order, outcome)
                    await self._order_repo.update(order, db)
                    if label == "confirmed":
                        exposure[order.ticker] = (
                            exposure.get(order.ticker, 0) + order.effective_cost_cents
                        )
                    elif label == "failed":
                        remaining_cash += order.cost_cents
                    self._record(result, order, label, order.failure_reason)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        await self._refresh_totals(db, batch.id)
        result.message = (
            f"confirmed={result.confirmed} resting={result.resting} failed={result.failed} "
            f"rejected={result.rejected} skipped={result.skipped}"
        )
        logger.info("Batch %s cycle done: %s", batch.id, result.message)
        return result

    async def _claim(self, db: AsyncSession, group: list[Order]) -> list[Order]:
        claimed: list[Order] = []
        try:
            for order in group:
                expected = order.placement_status
                transition(order, PS.SUBMITTED)
                if not order.client_order_id:
                    order.client_order_id = client_order_id(order.id)
                order.failure_reason = None
                if await self._order_repo.claim_for_submission(order, expected, db):
                    claimed.append(order)
                else:
                    logger.warning("Order %s (%s) already claimed; not sending",
                                   order.id, order.ticker)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return claimed

    async def _send(self, order: Order) -> SendOutcome:
        async with self._ticker_locks[order.ticker]:
            try:
                return await self._exchange.place_order(build_order_request(order))
            except (AppError, httpx.HTTPError) as e:
                return e

    def _apply(self, order: Order, outcome: SendOutcome) -> str:
        if not isinstance(outcome, ExchangeOrder):
            transition(order, PS.FAILED)
            order.failure_reason = _error_text(outcome)
            if not _is_ambiguous(outcome):
                order.client_order_id = None
            logger.warning("Order %s (%s) failed: %s", order.id, order.ticker, order.failure_reason)
            return "failed"

        order.exchange_order_id = outcome.order_id
        if outcome.status == ExchangeOrderStatus.EXECUTED.value:
            transition(order, PS.CONFIRMED)
            price = outcome.side_price(order.side) or order.price_cents
            filled = outcome.fill_count or order.units
            order.units = filled
            order.executed_price_cents = price
            order.executed_cost_cents = price * filled
            order.cost_cents = order.executed_cost_cents
            order.potential_payout_cents = filled * CONTRACT_FACE_VALUE_CENTS
            return "confirmed"
        if outcome.status == ExchangeOrderStatus.RESTING.value:
            transition(order, PS.RESTING)
            return "resting"

        transition(order, PS.FAILED)
        order.failure_reason = f"Unexpected exchange order status: {outcome.status}"
        order.client_order_id = None
        logger.warning("Order %s (%s) failed: %s", order.id, order.ticker, order.failure_reason)
        return "failed"

    @staticmethod
    def _record(result: ExecuteResult, order: Order, outcome: str, reason: str | None) -> None:
        setattr(result, outcome, getattr(result, outcome) + 1)
        result.items.append(
            SubmissionItem(
                order_id=order.id,
                ticker=order.ticker,
                outcome=outcome,  # type: ignore[arg-type]
                units=order.units,
                price_cents=order.price_cents,
                reason=reason,
            )
        )

    async def _refresh_totals(self, db: AsyncSession, batch_id: str) -> None:
        orders = await self._order_repo.list_by_batch(batch_id, db)
        try:
            await self._batch_repo.update_totals(
                batch_id, compute_batch_totals(orders), mark_executed=True, db=db
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

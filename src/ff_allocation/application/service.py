"""PrepareService — builds the next day's batch of pending orders.

Reads balance and portfolio value from the exchange (never from the
database), selects candidates through the MarketCatalog, runs the allocator
and persists one Batch plus its pending Orders in a single transaction.
An empty candidate list or an allocation that affords nothing is a
successful no-op, not an error.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings
from src.ff_allocation.domain.allocator import Allocation, allocate
from src.ff_common.cents import CONTRACT_FACE_VALUE_CENTS, cap_cents, cents_to_display
from src.ff_common.datetime_utils import batch_date_for, utc_now
from src.ff_common.enums import PlacementStatus
from src.ff_common.id_generator import generate_id
from src.ff_market.application.service import MarketCatalog, SelectionCriteria
from src.ff_order.application.schemas import PrepareResult
from src.ff_order.domain.models import Batch, Order, compute_batch_totals
from src.ff_order.domain.repository import BatchRepositoryProtocol, OrderRepositoryProtocol
from src.ff_order.infrastructure.persistence import BatchRepository, OrderRepository
from src.ff_risk.portfolio import PortfolioValueProvider

logger = logging.getLogger(__name__)


def _allocation_to_order(allocation: Allocation, batch_id: str) -> Order:
    market = allocation.market
    return Order(
        id=generate_id(),
        batch_id=batch_id,
        ticker=market.ticker,
        event_ticker=market.event_ticker,
        title=market.title,
        side=market.favorite_side.value,
        price_cents=allocation.price_cents,
        units=allocation.units,
        cost_cents=allocation.cost_cents,
        potential_payout_cents=allocation.potential_payout_cents,
        open_interest=market.open_interest,
        market_close_time=market.close_time,
        placement_status=PlacementStatus.PENDING.value,
    )


class PrepareService:
    def __init__(
        self,
        settings: Settings,
        catalog: MarketCatalog,
        portfolio: PortfolioValueProvider,
        batch_repo: BatchRepositoryProtocol | None = None,
        order_repo: OrderRepositoryProtocol | None = None,
    ) -> None:
        self._settings = settings
        self._catalog = catalog
        self._portfolio = portfolio
        self._batch_repo: BatchRepositoryProtocol = batch_repo or BatchRepository()
        self._order_repo: OrderRepositoryProtocol = order_repo or OrderRepository()

    async def prepare(self, db: AsyncSession, for_today: bool = False) -> PrepareResult:
        batch_date = batch_date_for(for_today)
        if await self._batch_repo.get_by_date(batch_date, db) is not None:
            return PrepareResult(
                success=False,
                error=f"Batch already exists for {batch_date}",
                batch_date=batch_date,
            )

        balance = await self._portfolio.get_balance()
        reserve = (
            cap_cents(balance.balance, self._settings.CAPITAL_RESERVE_PERCENT)
            if self._settings.CAPITAL_RESERVE_PERCENT > 0
            else 0
        )
        investable = max(balance.balance - reserve, 0)
        portfolio_value = balance.total_portfolio_value
        logger.info(
            "Preparing batch for %s: cash %s, reserve %s, portfolio %s",
            batch_date, cents_to_display(balance.balance), cents_to_display(reserve),
            cents_to_display(portfolio_value),
        )

        candidates = await self._catalog.list_candidates(
            db, SelectionCriteria.from_settings(self._settings)
        )
        result = PrepareResult(
            batch_date=batch_date,
            candidates=len(candidates),
            balance_cents=balance.balance,
            portfolio_value_cents=portfolio_value,
        )
        if not candidates:
            result.no_op = True
            result.message = "No eligible markets found"
            return result

        allocations = allocate(
            investable,
            candidates,
            self._settings.MAX_POSITION_PERCENT,
            portfolio_value=portfolio_value,
        )
        if not allocations:
            result.no_op = True
            result.message = (
                f"Balance {cents_to_display(investable)} cannot afford any of "
                f"{len(candidates)} candidates"
            )
            return result

        now = utc_now()
        batch = Batch(
            id=generate_id(),
            batch_date=batch_date,
            unit_size_cents=CONTRACT_FACE_VALUE_CENTS,
            prepared_at=now,
        )
        orders = [_allocation_to_order(a, batch.id) for a in allocations]
        totals = compute_batch_totals(orders)
        batch.total_orders = totals.total_orders
        batch.total_cost_cents = totals.total_cost_cents
        batch.total_potential_payout_cents = totals.total_potential_payout_cents

        try:
            await self._batch_repo.create(batch, db)
            for order in orders:
                await self._order_repo.save(order, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Prepared batch %s for %s: %d orders, cost %s",
            batch.id, batch_date, batch.total_orders, cents_to_display(batch.total_cost_cents),
        )
        result.batch_id = batch.id
        result.orders_created = batch.total_orders
        result.total_cost_cents = batch.total_cost_cents
        result.total_potential_payout_cents = batch.total_potential_payout_cents
        result.message = f"Prepared {batch.total_orders} orders for {batch_date}"
        return result

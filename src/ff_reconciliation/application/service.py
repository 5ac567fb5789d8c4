"""ReconcileService — persists what the ReconciliationEngine decides.

Fetches the complete fill and settlement history (all cursor pages), loads
every local order, runs the engine, then in one transaction:
  - overwrites corrected orders,
  - inserts recovered orders into the batch for their game date (parsed from
    the ticker's ``-YYMONDD`` segment, else the first fill's date), creating
    that batch when missing,
  - recomputes aggregates of every touched batch.
``dry_run`` returns the same plan without writing.
"""
import logging
import re
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings
from src.ff_common.cents import CONTRACT_FACE_VALUE_CENTS
from src.ff_common.datetime_utils import utc_now, utc_today
from src.ff_common.errors import AppError
from src.ff_common.id_generator import generate_id
from src.ff_exchange.client import ExchangeClient
from src.ff_order.domain.models import Batch, compute_batch_totals
from src.ff_order.domain.repository import BatchRepositoryProtocol, OrderRepositoryProtocol
from src.ff_order.infrastructure.persistence import BatchRepository, OrderRepository
from src.ff_reconciliation.application.schemas import (
    CorrectedItem,
    ReconcileResult,
    RecoveredItem,
)
from src.ff_reconciliation.domain.cost_basis import policy_for
from src.ff_reconciliation.domain.engine import Recovery, Tolerance, reconcile

logger = logging.getLogger(__name__)

_TICKER_DATE_RE = re.compile(r"-(\d{2})([A-Z]{3})(\d{2})")
_MONTHS = {
    m: i
    for i, m in enumerate(
        ["JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"],
        start=1,
    )
}


def game_date_from_ticker(ticker: str) -> date | None:
    """KXNBAGAME-25DEC18LALBOS-LAL -> 2025-12-18."""
    match = _TICKER_DATE_RE.search(ticker)
    if match is None:
        return None
    yy, mon, dd = match.groups()
    month = _MONTHS.get(mon)
    if month is None:
        return None
    try:
        return date(2000 + int(yy), month, int(dd))
    except ValueError:
        return None


def recovery_batch_date(recovery: Recovery) -> date:
    parsed = game_date_from_ticker(recovery.position.ticker)
    if parsed is not None:
        return parsed
    if recovery.position.first_fill_time is not None:
        return recovery.position.first_fill_time.date()
    return utc_today()


class ReconcileService:
    def __init__(
        self,
        settings: Settings,
        exchange: ExchangeClient,
        batch_repo: BatchRepositoryProtocol | None = None,
        order_repo: OrderRepositoryProtocol | None = None,
    ) -> None:
        self._exchange = exchange
        self._policy = policy_for(settings.COST_BASIS_METHOD)
        self._tolerance = Tolerance(
            cents=settings.COST_TOLERANCE_CENTS, fraction=settings.COST_TOLERANCE_PERCENT
        )
        self._batch_repo: BatchRepositoryProtocol = batch_repo or BatchRepository()
        self._order_repo: OrderRepositoryProtocol = order_repo or OrderRepository()

    async def reconcile(self, db: AsyncSession, dry_run: bool = False) -> ReconcileResult:
        fills = await self._exchange.list_fills()
        settlements = await self._exchange.list_settlements()
        orders = await self._order_repo.list_all(db)
        logger.info(
            "Reconciling %d fills, %d settlements against %d local orders (%s cost basis)",
            len(fills), len(settlements), len(orders), self._policy.name,
        )

        outcome = reconcile(fills, settlements, orders, self._policy, self._tolerance)
        result = ReconcileResult(
            dry_run=dry_run,
            cost_basis=self._policy.name,
            fills=len(fills),
            settlements=len(settlements),
            positions=len(outcome.positions),
            recovered_count=len(outcome.recovered),
            corrected_count=len(outcome.corrected),
            recovered=[
                RecoveredItem(
                    ticker=r.order.ticker,
                    side=r.order.side,
                    units=r.order.units,
                    cost_cents=r.order.cost_cents,
                    result_status=r.order.result_status,
                    batch_date=recovery_batch_date(r),
                )
                for r in outcome.recovered
            ],
            corrected=[
                CorrectedItem(
                    order_id=c.order.id,
                    ticker=c.order.ticker,
                    reasons=c.reasons,
                    before=c.before,
                    after=c.after,
                )
                for c in outcome.corrected
            ],
        )
        if dry_run or not (outcome.recovered or outcome.corrected):
            result.message = (
                f"recovered={result.recovered_count} corrected={result.corrected_count}"
                + (" (dry run)" if dry_run else "")
            )
            return result

        touched: set[str] = set()
        try:
            for correction in outcome.corrected:
                await self._order_repo.update(correction.order, db)
                touched.add(correction.order.batch_id)

            batches_by_date: dict[date, Batch] = {}
            for recovery in outcome.recovered:
                await self._enrich(recovery)
                batch = await self._batch_for(db, recovery_batch_date(recovery), batches_by_date)
                recovery.order.id = generate_id()
                recovery.order.batch_id = batch.id
                await self._order_repo.save(recovery.order, db)
                touched.add(batch.id)

            for batch_id in touched:
                batch_orders = await self._order_repo.list_by_batch(batch_id, db)
                await self._batch_repo.update_totals(
                    batch_id, compute_batch_totals(batch_orders), mark_executed=False, db=db
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        result.batches_touched = len(touched)
        result.message = (
            f"recovered={result.recovered_count} corrected={result.corrected_count} "
            f"batches={result.batches_touched}"
        )
        logger.info("Reconciliation done: %s", result.message)
        return result

    async def _batch_for(
        self, db: AsyncSession, batch_date: date, cache: dict[date, Batch]
    ) -> Batch:
        if batch_date in cache:
            return cache[batch_date]
        batch = await self._batch_repo.get_by_date(batch_date, db)
        if batch is None:
            batch = Batch(
                id=generate_id(),
                batch_date=batch_date,
                unit_size_cents=CONTRACT_FACE_VALUE_CENTS,
                prepared_at=utc_now(),
            )
            await self._batch_repo.create(batch, db)
            logger.info("Created batch %s for recovered orders on %s", batch.id, batch_date)
        cache[batch_date] = batch
        return batch

    async def _enrich(self, recovery: Recovery) -> None:
        """Title, open interest and close time from market detail; best effort."""
        try:
            market = await self._exchange.get_market(recovery.order.ticker)
        except AppError as e:
            logger.warning("No market detail for %s: %s", recovery.order.ticker, e.message)
            return
        recovery.order.title = market.title or recovery.order.title
        recovery.order.event_ticker = market.event_ticker or recovery.order.event_ticker
        recovery.order.open_interest = market.open_interest
        recovery.order.market_close_time = market.close_time

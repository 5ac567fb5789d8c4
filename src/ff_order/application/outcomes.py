"""OutcomeResolver — sets won/lost on confirmed orders whose market settled.

Only ``confirmed`` orders still awaiting settlement are looked at; resting,
pending and failed orders never receive an outcome here. One bad lookup is
recorded and skipped, the rest of the run continues.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_common.enums import ResultStatus
from src.ff_common.errors import AppError
from src.ff_exchange.client import ExchangeClient
from src.ff_order.application.schemas import OutcomeItem, OutcomeResult
from src.ff_order.domain.repository import OrderRepositoryProtocol
from src.ff_order.domain.state_machine import apply_outcome
from src.ff_order.infrastructure.persistence import OrderRepository

logger = logging.getLogger(__name__)


class OutcomeResolver:
    def __init__(
        self,
        exchange: ExchangeClient,
        order_repo: OrderRepositoryProtocol | None = None,
    ) -> None:
        self._exchange = exchange
        self._order_repo: OrderRepositoryProtocol = order_repo or OrderRepository()

    async def update_status(self, db: AsyncSession) -> OutcomeResult:
        orders = await self._order_repo.list_awaiting_outcome(db)
        result = OutcomeResult(checked=len(orders))
        results_by_ticker: dict[str, str | None] = {}

        try:
            for order in orders:
                if order.ticker not in results_by_ticker:
                    try:
                        market = await self._exchange.get_market(order.ticker)
                    except AppError as e:
                        logger.warning("Market lookup failed for %s: %s", order.ticker, e.message)
                        result.errors.append(f"{order.ticker}: {e.message}")
                        results_by_ticker[order.ticker] = None
                        continue
                    results_by_ticker[order.ticker] = market.settled_result

                market_result = results_by_ticker[order.ticker]
                if market_result is None:
                    result.still_open += 1
                    continue

                apply_outcome(order, won=order.side.lower() == market_result)
                await self._order_repo.update(order, db)
                if order.result_status == ResultStatus.WON.value:
                    result.won += 1
                else:
                    result.lost += 1
                result.items.append(
                    OutcomeItem(
                        order_id=order.id, ticker=order.ticker, result_status=order.result_status
                    )
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        result.message = f"won={result.won} lost={result.lost} open={result.still_open}"
        logger.info("Outcome update: %s", result.message)
        return result

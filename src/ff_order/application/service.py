# src/ff_order/application/service.py
"""BatchAdminService — read-only batch listing and the pause toggle."""
from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_common.errors import BatchNotFoundError
from src.ff_order.application.schemas import BatchListResponse, BatchResponse, PauseResult
from src.ff_order.domain.repository import BatchRepositoryProtocol, OrderRepositoryProtocol
from src.ff_order.infrastructure.persistence import BatchRepository, OrderRepository


class BatchAdminService:
    def __init__(
        self,
        batch_repo: BatchRepositoryProtocol | None = None,
        order_repo: OrderRepositoryProtocol | None = None,
    ) -> None:
        self._batch_repo: BatchRepositoryProtocol = batch_repo or BatchRepository()
        self._order_repo: OrderRepositoryProtocol = order_repo or OrderRepository()

    async def list_batches(self, db: AsyncSession, limit: int) -> BatchListResponse:
        batches = await self._batch_repo.list_recent(limit, db)
        items = []
        for batch in batches:
            orders = await self._order_repo.list_by_batch(batch.id, db)
            items.append(BatchResponse.from_domain(batch, orders))
        return BatchListResponse(items=items)

    async def get_batch(self, db: AsyncSession, batch_id: str) -> BatchResponse:
        batch = await self._batch_repo.get_by_id(batch_id, db)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        orders = await self._order_repo.list_by_batch(batch.id, db)
        return BatchResponse.from_domain(batch, orders)

    async def toggle_pause(self, db: AsyncSession, batch_id: str) -> PauseResult:
        batch = await self._batch_repo.get_by_id(batch_id, db)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        is_paused = not batch.is_paused
        try:
            await self._batch_repo.set_paused(batch.id, is_paused, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return PauseResult(
            batch_id=batch.id,
            is_paused=is_paused,
            message="Batch paused" if is_paused else "Batch resumed",
        )

# src/ff_order/domain/repository.py
"""Repository Protocols — interface contract for the persistence layer."""
from datetime import date
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_order.domain.models import Batch, BatchTotals, Order


class BatchRepositoryProtocol(Protocol):
    async def create(self, batch: Batch, db: AsyncSession) -> None: ...

    async def get_by_id(self, batch_id: str, db: AsyncSession) -> Batch | None: ...

    async def get_by_date(self, batch_date: date, db: AsyncSession) -> Batch | None: ...

    async def get_latest(self, db: AsyncSession) -> Batch | None: ...

    async def list_recent(self, limit: int, db: AsyncSession) -> list[Batch]: ...

    async def set_paused(self, batch_id: str, is_paused: bool, db: AsyncSession) -> None: ...

    async def update_totals(
        self, batch_id: str, totals: BatchTotals, mark_executed: bool, db: AsyncSession
    ) -> None: ...


class OrderRepositoryProtocol(Protocol):
    async def save(self, order: Order, db: AsyncSession) -> None: ...

    async def update(self, order: Order, db: AsyncSession) -> None: ...

    async def claim_for_submission(
        self, order: Order, expected_status: str, db: AsyncSession
    ) -> bool: ...

    async def list_by_batch(self, batch_id: str, db: AsyncSession) -> list[Order]: ...

    async def list_all(self, db: AsyncSession) -> list[Order]: ...

    async def list_awaiting_outcome(self, db: AsyncSession) -> list[Order]: ...

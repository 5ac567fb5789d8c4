from datetime import date
from typing import Any

from pydantic import BaseModel

from src.ff_common.response import OperationResult


class RecoveredItem(BaseModel):
    ticker: str
    side: str
    units: int
    cost_cents: int
    result_status: str
    batch_date: date | None = None


class CorrectedItem(BaseModel):
    order_id: str
    ticker: str
    reasons: list[str]
    before: dict[str, Any]
    after: dict[str, Any]


class ReconcileResult(OperationResult):
    dry_run: bool = False
    cost_basis: str = "average"
    fills: int = 0
    settlements: int = 0
    positions: int = 0
    recovered_count: int = 0
    corrected_count: int = 0
    batches_touched: int = 0
    recovered: list[RecoveredItem] = []
    corrected: list[CorrectedItem] = []

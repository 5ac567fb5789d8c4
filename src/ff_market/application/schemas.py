# src/ff_market/application/schemas.py
from datetime import datetime

from pydantic import BaseModel, field_validator

from src.ff_common.response import OperationResult
from src.ff_market.domain.models import IlliquidMarket


class BlacklistAddRequest(BaseModel):
    ticker: str
    reason: str | None = None

    @field_validator("ticker")
    @classmethod
    def no_whitespace(cls, v: str) -> str:
        if not v or v != v.strip() or " " in v:
            raise ValueError("ticker must not be empty or contain whitespace")
        return v


class BlacklistEntry(BaseModel):
    ticker: str
    reason: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, entry: IlliquidMarket) -> "BlacklistEntry":
        return cls(ticker=entry.ticker, reason=entry.reason, created_at=entry.created_at)


class BlacklistResponse(BaseModel):
    items: list[BlacklistEntry]


class BlacklistChangeResult(OperationResult):
    affected: int = 0

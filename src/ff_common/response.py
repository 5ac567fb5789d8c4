"""Unified API response envelope.

Every endpoint returns:
{
    "code": 0,           // 0=success, non-0=error code
    "message": "success",
    "data": { ... },     // operation result; null on error
    "timestamp": "...",
    "request_id": "..."
}

Job endpoints always put their structured result (success flag, error reason,
per-item outcomes) in ``data``; a job that completed with a reportable
failure (paused batch, nothing to do) still answers code 0 so schedulers do
not retry it.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None, message: str = "success") -> ApiResponse:
    return ApiResponse(code=0, message=message, data=data)


def error_response(code: int, message: str) -> ApiResponse:
    return ApiResponse(code=code, message=message, data=None)


class OperationResult(BaseModel):
    """Base for job results: success vs. error with a human-readable reason."""

    success: bool = True
    error: str | None = None
    message: str | None = None

# src/ff_order/api/router.py
"""Batch admin endpoints (cron bearer secret required).

GET  /batches                    — recent batches with orders and breakdowns
GET  /batches/{batch_id}         — one batch
POST /batches/{batch_id}/pause   — toggle the paused flag
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_common.database import get_db_session
from src.ff_common.response import ApiResponse, success_response
from src.ff_gateway.auth.dependencies import require_cron_secret
from src.ff_order.application.service import BatchAdminService

router = APIRouter(
    prefix="/batches", tags=["batches"], dependencies=[Depends(require_cron_secret)]
)

_service = BatchAdminService()


@router.get("")
async def list_batches(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(10, ge=1, le=100),
) -> ApiResponse:
    result = await _service.list_batches(db, limit)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{batch_id}")
async def get_batch(
    batch_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_batch(db, batch_id)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{batch_id}/pause")
async def toggle_pause(
    batch_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.toggle_pause(db, batch_id)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp

"""Illiquid-market blacklist endpoints (cron bearer secret required).

GET    /markets/blacklist            — current entries
POST   /markets/blacklist            — add a ticker
DELETE /markets/blacklist[?ticker=]  — clear one ticker, or all without ?ticker
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.ff_common.database import get_db_session
from src.ff_common.response import ApiResponse, success_response
from src.ff_gateway.auth.dependencies import require_cron_secret
from src.ff_market.application.blacklist import BlacklistService
from src.ff_market.application.schemas import BlacklistAddRequest

router = APIRouter(
    prefix="/markets/blacklist", tags=["markets"], dependencies=[Depends(require_cron_secret)]
)

_service = BlacklistService()


@router.get("")
async def list_blacklist(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.list_entries(db)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("")
async def add_to_blacklist(
    body: BlacklistAddRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.add(db, body.ticker, body.reason)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.delete("")
async def clear_blacklist(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    ticker: str | None = Query(None, description="Clear only this ticker"),
) -> ApiResponse:
    result = await _service.clear(db, ticker)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp

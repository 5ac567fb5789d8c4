"""Scheduled job endpoints, all guarded by the cron bearer secret.

POST /jobs/prepare           — select candidates, create tomorrow's batch
POST /jobs/execute           — submit a batch's pending/failed orders
POST /jobs/execute/cancel    — stop the running execute cycle between groups
POST /jobs/update-status     — set won/lost on settled confirmed orders
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings
from src.ff_allocation.application.service import PrepareService
from src.ff_common.database import get_db_session
from src.ff_common.response import ApiResponse, OperationResult, success_response
from src.ff_exchange.client import ExchangeClient
from src.ff_gateway.auth.dependencies import get_app_settings, require_cron_secret
from src.ff_gateway.dependencies import get_exchange_client
from src.ff_market.application.service import MarketCatalog
from src.ff_order.application.outcomes import OutcomeResolver
from src.ff_order.application.submitter import OrderSubmitter
from src.ff_risk.portfolio import ExchangePortfolioValueProvider

router = APIRouter(
    prefix="/jobs", tags=["jobs"], dependencies=[Depends(require_cron_secret)]
)


@router.post("/prepare")
async def prepare(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
    exchange: Annotated[ExchangeClient, Depends(get_exchange_client)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    for_today: bool = Query(False, description="Prepare today's batch instead of tomorrow's"),
) -> ApiResponse:
    service = PrepareService(
        settings, MarketCatalog(exchange), ExchangePortfolioValueProvider(exchange)
    )
    result = await service.prepare(db, for_today=for_today)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/execute")
async def execute(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
    exchange: Annotated[ExchangeClient, Depends(get_exchange_client)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    batch_id: str | None = Query(None, description="Defaults to the most recent batch"),
) -> ApiResponse:
    submitter = OrderSubmitter(settings, exchange, ExchangePortfolioValueProvider(exchange))
    request.app.state.active_submitter = submitter
    try:
        result = await submitter.execute(db, batch_id)
    finally:
        request.app.state.active_submitter = None
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/execute/cancel")
async def cancel_execute(request: Request) -> ApiResponse:
    submitter: OrderSubmitter | None = getattr(request.app.state, "active_submitter", None)
    if submitter is None:
        result = OperationResult(success=False, error="No execution in progress")
    else:
        submitter.cancel_event.set()
        result = OperationResult(message="Cancellation requested")
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/update-status")
async def update_status(
    request: Request,
    exchange: Annotated[ExchangeClient, Depends(get_exchange_client)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await OutcomeResolver(exchange).update_status(db)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp

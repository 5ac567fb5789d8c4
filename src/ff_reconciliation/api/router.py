"""POST /jobs/reconcile — rebuild local orders from exchange fills and settlements."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings
from src.ff_common.database import get_db_session
from src.ff_common.response import ApiResponse, success_response
from src.ff_exchange.client import ExchangeClient
from src.ff_gateway.auth.dependencies import get_app_settings, require_cron_secret
from src.ff_gateway.dependencies import get_exchange_client
from src.ff_reconciliation.application.service import ReconcileService

router = APIRouter(
    prefix="/jobs", tags=["jobs"], dependencies=[Depends(require_cron_secret)]
)


@router.post("/reconcile")
async def reconcile(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
    exchange: Annotated[ExchangeClient, Depends(get_exchange_client)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    dry_run: bool = Query(False, description="Report the plan without writing"),
) -> ApiResponse:
    result = await ReconcileService(settings, exchange).reconcile(db, dry_run=dry_run)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp

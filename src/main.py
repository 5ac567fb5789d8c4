"""FastAPI application entry point.

Run with: uvicorn src.main:app --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import Settings, get_settings
from src.ff_common.database import create_engine_from_settings, create_session_factory
from src.ff_common.errors import AppError
from src.ff_common.response import error_response
from src.ff_gateway.middleware.request_log import RequestLogMiddleware
from src.ff_market.api.router import router as blacklist_router
from src.ff_order.api.jobs_router import router as jobs_router
from src.ff_order.api.router import router as batches_router
from src.ff_reconciliation.api.router import router as reconcile_router

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: build engine from the injected settings, verify DB. Shutdown: dispose."""
    settings: Settings = app.state.settings
    engine = create_engine_from_settings(settings)
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    yield
    exchange_client = getattr(app.state, "exchange_client", None)
    if exchange_client is not None:
        await exchange_client.aclose()
    await engine.dispose()


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title=settings.APP_NAME,
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.exchange_client = None
    app.state.active_submitter = None

    app.add_middleware(RequestLogMiddleware)
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]

    app.include_router(jobs_router, prefix="/api/v1")
    app.include_router(reconcile_router, prefix="/api/v1")
    app.include_router(batches_router, prefix="/api/v1")
    app.include_router(blacklist_router, prefix="/api/v1")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": VERSION, "db_profile": settings.DB_PROFILE}

    return app


app = create_app()

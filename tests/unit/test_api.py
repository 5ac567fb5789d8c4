"""HTTP surface: auth, envelopes and job wiring with services swapped out."""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from src.ff_common.database import get_db_session
from src.ff_common.errors import BatchNotFoundError
from src.ff_gateway.dependencies import get_exchange_client
from src.ff_order.api import jobs_router
from src.ff_order.api import router as batches_router
from src.ff_order.application.schemas import ExecuteResult, PrepareResult, SubmissionItem
from src.ff_reconciliation.api import router as reconcile_router
from src.ff_reconciliation.application.schemas import ReconcileResult

AUTH = {"Authorization": "Bearer test-cron-secret"}


@pytest.fixture
def wired_app(app: FastAPI) -> FastAPI:
    async def fake_db():
        yield AsyncMock()

    app.dependency_overrides[get_db_session] = fake_db
    app.dependency_overrides[get_exchange_client] = lambda: MagicMock()
    return app


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert resp.json()["db_profile"] == "live"


class TestRequestId:
    @pytest.mark.asyncio
    async def test_generated_id_is_echoed(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.headers["X-Request-ID"].startswith("req_")

    @pytest.mark.asyncio
    async def test_caller_id_reused_in_envelope(
        self, wired_app, client: AsyncClient, monkeypatch
    ) -> None:
        service = MagicMock()
        service.get_batch = AsyncMock(side_effect=BatchNotFoundError("nope"))
        monkeypatch.setattr(batches_router, "_service", service)

        resp = await client.get(
            "/api/v1/batches/nope", headers={**AUTH, "X-Request-ID": "cron-run-42"}
        )

        assert resp.headers["X-Request-ID"] == "cron-run-42"
        assert resp.json()["request_id"] == "cron-run-42"

    @pytest.mark.asyncio
    async def test_malformed_caller_id_replaced(self, client: AsyncClient) -> None:
        resp = await client.get("/health", headers={"X-Request-ID": "bad id\twith spaces"})
        assert resp.headers["X-Request-ID"].startswith("req_")


class TestCronAuth:
    @pytest.mark.asyncio
    async def test_missing_token_rejected(self, wired_app, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/jobs/prepare")
        assert resp.status_code == 401
        body = resp.json()
        assert body["code"] == 1002
        assert body["data"] is None

    @pytest.mark.asyncio
    async def test_wrong_token_rejected(self, wired_app, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/jobs/execute", headers={"Authorization": "Bearer nope"}
        )
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_unset_secret_rejects_everyone(self, wired_app, client: AsyncClient) -> None:
        wired_app.state.settings.CRON_SECRET = ""
        resp = await client.get("/api/v1/batches", headers=AUTH)
        assert resp.status_code == 401


class TestJobs:
    @pytest.mark.asyncio
    async def test_prepare_returns_structured_result(
        self, wired_app, client: AsyncClient, monkeypatch
    ) -> None:
        calls: list[bool] = []

        class FakePrepare:
            def __init__(self, *args, **kwargs) -> None:
                pass

            async def prepare(self, db, for_today=False):
                calls.append(for_today)
                return PrepareResult(no_op=True, message="No eligible markets found")

        monkeypatch.setattr(jobs_router, "PrepareService", FakePrepare)

        resp = await client.post("/api/v1/jobs/prepare?for_today=true", headers=AUTH)

        assert resp.status_code == 200
        body = resp.json()
        assert body["code"] == 0
        assert body["data"]["no_op"] is True
        assert body["data"]["success"] is True
        assert calls == [True]

    @pytest.mark.asyncio
    async def test_execute_reports_items_and_clears_active(
        self, wired_app, client: AsyncClient, monkeypatch
    ) -> None:
        seen: dict = {}

        class FakeSubmitter:
            def __init__(self, *args, **kwargs) -> None:
                pass

            async def execute(self, db, batch_id=None):
                seen["batch_id"] = batch_id
                seen["active"] = wired_app.state.active_submitter is self
                return ExecuteResult(
                    batch_id=batch_id, rejected=1,
                    items=[SubmissionItem(order_id="o-1", ticker="T", outcome="rejected",
                                          units=4, price_cents=95, reason="cap")],
                )

        monkeypatch.setattr(jobs_router, "OrderSubmitter", FakeSubmitter)

        resp = await client.post("/api/v1/jobs/execute?batch_id=b-1", headers=AUTH)

        data = resp.json()["data"]
        assert data["rejected"] == 1
        assert data["items"][0]["outcome"] == "rejected"
        assert seen == {"batch_id": "b-1", "active": True}
        assert wired_app.state.active_submitter is None

    @pytest.mark.asyncio
    async def test_cancel_without_running_execute(self, wired_app, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/jobs/execute/cancel", headers=AUTH)
        assert resp.json()["data"]["success"] is False

    @pytest.mark.asyncio
    async def test_cancel_sets_event(self, wired_app, client: AsyncClient) -> None:
        submitter = MagicMock()
        wired_app.state.active_submitter = submitter

        resp = await client.post("/api/v1/jobs/execute/cancel", headers=AUTH)

        assert resp.json()["data"]["success"] is True
        submitter.cancel_event.set.assert_called_once()

    @pytest.mark.asyncio
    async def test_reconcile_dry_run_flag(
        self, wired_app, client: AsyncClient, monkeypatch
    ) -> None:
        class FakeReconcile:
            def __init__(self, *args, **kwargs) -> None:
                pass

            async def reconcile(self, db, dry_run=False):
                return ReconcileResult(dry_run=dry_run, recovered_count=2)

        monkeypatch.setattr(reconcile_router, "ReconcileService", FakeReconcile)

        resp = await client.post("/api/v1/jobs/reconcile?dry_run=true", headers=AUTH)

        data = resp.json()["data"]
        assert data["dry_run"] is True
        assert data["recovered_count"] == 2


class TestBatches:
    @pytest.mark.asyncio
    async def test_missing_batch_uses_error_envelope(
        self, wired_app, client: AsyncClient, monkeypatch
    ) -> None:
        service = MagicMock()
        service.get_batch = AsyncMock(side_effect=BatchNotFoundError("nope"))
        monkeypatch.setattr(batches_router, "_service", service)

        resp = await client.get("/api/v1/batches/nope", headers=AUTH)

        assert resp.status_code == 404
        body = resp.json()
        assert body["code"] == 4001
        assert "nope" in body["message"]
        assert body["request_id"].startswith("req_")

    @pytest.mark.asyncio
    async def test_limit_validated(self, wired_app, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/batches?limit=0", headers=AUTH)
        assert resp.status_code == 422

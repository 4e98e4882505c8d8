"""
tests/test_api.py

HTTP-level tests for the warehouse API routers, served by FastAPI's
TestClient over an in-memory SQLite warehouse.

The application is assembled from the routers directly so no environment
validation, database connectivity check or scheduler start-up runs.

Coverage
--------
- X-API-Key authentication (missing -> 401, unknown -> 403)
- Role permissions on upload, run read-back and data-quality endpoints
- CSV upload response body; unreadable files and unknown channels map to 400
- Pipeline run list / detail / 404
- Data-quality run and metric read-back
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers import data_quality_router, ingestion_router, pipeline_runs_router
from app.config import AuthSettings, DataQualitySettings, get_auth_settings, get_data_quality_settings
from app.services.pipeline_service import (
    get_batch_pipeline,
    get_data_quality_checker,
    get_pipeline_config,
)
from db.session import get_db
from monitoring.data_quality import DataQualityChecker
from pipelines.base import PipelineConfig
from pipelines.batch import BatchPipeline

OPERATOR_KEY = "op-key-0001"
ANALYST_KEY = "an-key-0001"
ADMIN_KEY = "ad-key-0001"

SALES_CSV = (
    "transaction_id,transaction_date,customer_name,product,total_items,total_cost,city\n"
    "1001,2025-03-15 10:00,Ada Lovelace,Earl Grey,2,10.00,Leeds\n"
    "1002,2025-03-15 11:00,Bob Moore,Coffee,-1,5.00,York\n"
).encode("utf-8")


@pytest.fixture()
def client(session_factory) -> Iterator[TestClient]:
    app = FastAPI()
    app.include_router(ingestion_router)
    app.include_router(pipeline_runs_router)
    app.include_router(data_quality_router)

    def _db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_auth_settings] = lambda: AuthSettings(
        api_keys={OPERATOR_KEY: "operator", ANALYST_KEY: "analyst", ADMIN_KEY: "admin"}
    )
    app.dependency_overrides[get_batch_pipeline] = lambda: BatchPipeline(session_factory)
    app.dependency_overrides[get_pipeline_config] = lambda: PipelineConfig(
        retry_delay_seconds=0.0,
        log_rejections=False,
    )
    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_data_quality_checker] = lambda: DataQualityChecker(
        session_factory,
        clock=lambda: datetime(2025, 3, 20, 12, tzinfo=timezone.utc),
    )
    app.dependency_overrides[get_data_quality_settings] = lambda: DataQualitySettings(window_days=7)

    with TestClient(app) as test_client:
        yield test_client


def _upload(client: TestClient, key: str | None, content: bytes = SALES_CSV, **params):
    headers = {"X-API-Key": key} if key else {}
    return client.post(
        "/upload-csv",
        files={"file": ("sales.csv", content, "text/csv")},
        headers=headers,
        params=params,
    )


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class TestAuthentication:
    def test_missing_key(self, client) -> None:
        response = _upload(client, None)

        assert response.status_code == 401

    def test_unknown_key(self, client) -> None:
        response = _upload(client, "not-a-key")

        assert response.status_code == 403
        assert response.json()["detail"] == "Unknown API key."


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


class TestUpload:
    def test_operator_upload(self, client) -> None:
        response = _upload(client, OPERATOR_KEY, channel="online")

        assert response.status_code == 200
        body = response.json()
        assert body["processed"] == 2
        assert body["succeeded"] == 1
        assert body["failed"] == 1
        assert body["metadata"]["channel"] == "ONLINE"
        assert body["rejections"] == [
            {
                "row_number": 3,
                "reason": "Negative or invalid quantity: -1",
                "transaction_id": "1002",
            }
        ]

    def test_analyst_cannot_upload(self, client) -> None:
        response = _upload(client, ANALYST_KEY)

        assert response.status_code == 403
        assert "lacks the 'write' permission" in response.json()["detail"]

    def test_non_csv_rejected(self, client) -> None:
        response = client.post(
            "/upload-csv",
            files={"file": ("sales.json", b"{}", "application/json")},
            headers={"X-API-Key": OPERATOR_KEY},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Only CSV files are allowed."

    def test_unreadable_file(self, client) -> None:
        response = _upload(client, OPERATOR_KEY, content=b"\xff\xfe\xfa")

        assert response.status_code == 400
        assert response.json()["detail"] == "CSV must be UTF-8 encoded."

    def test_unknown_channel_rejected(self, client) -> None:
        response = _upload(client, OPERATOR_KEY, channel="foo")

        assert response.status_code == 400
        assert response.json()["detail"] == "Unknown channel: foo. Expected one of STORE, WAREHOUSE, ONLINE."

        listing = client.get("/pipeline-runs", headers={"X-API-Key": ADMIN_KEY})
        assert listing.json()["runs"] == []


# ---------------------------------------------------------------------------
# Pipeline runs
# ---------------------------------------------------------------------------


class TestPipelineRuns:
    def test_list_and_detail(self, client) -> None:
        run_id = _upload(client, OPERATOR_KEY).json()["run_id"]

        listing = client.get("/pipeline-runs", headers={"X-API-Key": ANALYST_KEY})
        detail = client.get(f"/pipeline-runs/{run_id}", headers={"X-API-Key": ANALYST_KEY})

        assert listing.status_code == 200
        assert [run["run_id"] for run in listing.json()["runs"]] == [run_id]
        assert detail.status_code == 200
        assert detail.json()["status"] == "SUCCESS"
        assert detail.json()["rows_succeeded"] == 1
        assert detail.json()["metadata"]["filename"] == "sales.csv"

    def test_status_filter(self, client) -> None:
        _upload(client, OPERATOR_KEY)

        response = client.get("/pipeline-runs", params={"status": "failed"}, headers={"X-API-Key": ADMIN_KEY})

        assert response.json()["runs"] == []

    def test_missing_run(self, client) -> None:
        response = client.get("/pipeline-runs/999", headers={"X-API-Key": ADMIN_KEY})

        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Data quality
# ---------------------------------------------------------------------------


class TestDataQuality:
    def test_operator_cannot_run_checks(self, client) -> None:
        response = client.post("/data-quality/run", headers={"X-API-Key": OPERATOR_KEY})

        assert response.status_code == 403

    def test_run_then_read_metrics(self, client) -> None:
        _upload(client, OPERATOR_KEY)

        run = client.post("/data-quality/run", headers={"X-API-Key": ANALYST_KEY})
        metrics = client.get("/data-quality/metrics", params={"days": 7}, headers={"X-API-Key": OPERATOR_KEY})

        assert run.status_code == 200
        assert run.json()["overall_status"] == "PASS"
        assert run.json()["window_days"] == 7
        assert len(run.json()["checks"]) == 4
        assert metrics.status_code == 200
        assert len(metrics.json()["metrics"]) == 4

"""
app/api/routers/data_quality.py

Data-quality metric read-back and on-demand check runs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import require_permission
from app.config import DataQualitySettings, get_data_quality_settings
from app.schemas.data_quality import (
    DataQualityCheckResponse,
    DataQualityMetricListResponse,
    DataQualityMetricResponse,
    DataQualityReportResponse,
)
from app.services.pipeline_service import get_data_quality_checker
from monitoring.data_quality import DataQualityChecker
from pipelines.base import Identity

router = APIRouter(prefix="/data-quality", tags=["data-quality"])


@router.get("/metrics", response_model=DataQualityMetricListResponse)
def get_metrics(
    days: int = Query(default=7, ge=1, le=365),
    checker: DataQualityChecker = Depends(get_data_quality_checker),
    _identity: Identity = Depends(require_permission("read")),
) -> DataQualityMetricListResponse:
    """
    Return metrics recorded over the trailing ``days``, most recent first.
    """

    metrics = checker.get_metrics(days)
    return DataQualityMetricListResponse(
        days=days,
        metrics=[DataQualityMetricResponse.model_validate(metric) for metric in metrics],
    )


@router.post("/run", response_model=DataQualityReportResponse)
def run_checks(
    window_days: int | None = Query(default=None, ge=1, le=365),
    checker: DataQualityChecker = Depends(get_data_quality_checker),
    settings: DataQualitySettings = Depends(get_data_quality_settings),
    _identity: Identity = Depends(require_permission("analytics")),
) -> DataQualityReportResponse:
    report = checker.run_checks(window_days=window_days or settings.window_days)
    return DataQualityReportResponse(
        check_date=report.check_date,
        window_days=report.window_days,
        overall_status=report.overall_status,
        checks=[
            DataQualityCheckResponse(
                check_type=check.check_type,
                metric_name=check.metric_name,
                score=check.score,
                threshold=check.threshold,
                status=check.status,
                details=check.details,
            )
            for check in report.checks
        ],
    )

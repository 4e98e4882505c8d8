"""
Schemas for data-quality endpoints.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field


class DataQualityMetricResponse(BaseModel):
    model_config = {"from_attributes": True}

    metric_id: int
    check_date: date
    check_type: str
    table_name: str
    metric_name: str
    metric_value: float
    threshold: float
    status: str
    details: dict[str, Any] | None = None
    created_at: datetime | None = None


class DataQualityMetricListResponse(BaseModel):
    days: int = Field(..., ge=1)
    metrics: list[DataQualityMetricResponse] = Field(default_factory=list)


class DataQualityCheckResponse(BaseModel):
    check_type: str
    metric_name: str
    score: float
    threshold: float
    status: str
    details: dict[str, Any] = Field(default_factory=dict)


class DataQualityReportResponse(BaseModel):
    check_date: date
    window_days: int = Field(..., ge=1)
    overall_status: str
    checks: list[DataQualityCheckResponse] = Field(default_factory=list)

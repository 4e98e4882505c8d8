"""
app/schemas package marker.
"""

from app.schemas.data_quality import (
    DataQualityCheckResponse,
    DataQualityMetricListResponse,
    DataQualityMetricResponse,
    DataQualityReportResponse,
)
from app.schemas.ingestion import IngestionRunResponse, RejectedRowResponse
from app.schemas.pipeline_runs import PipelineRunListResponse, PipelineRunResponse

__all__ = [
    "DataQualityCheckResponse",
    "DataQualityMetricListResponse",
    "DataQualityMetricResponse",
    "DataQualityReportResponse",
    "IngestionRunResponse",
    "PipelineRunListResponse",
    "PipelineRunResponse",
    "RejectedRowResponse",
]

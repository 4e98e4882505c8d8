"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.data_quality_metric import DataQualityMetric, DataQualityStatus
from db.models.dimensions import DimCustomer, DimProduct, DimStore, DimTime
from db.models.fact_sales import FactSales, RejectedSale
from db.models.pipeline_run import PipelineRun, PipelineRunStatus, PipelineRunType

__all__ = [
    "DataQualityMetric",
    "DataQualityStatus",
    "DimCustomer",
    "DimProduct",
    "DimStore",
    "DimTime",
    "FactSales",
    "PipelineRun",
    "PipelineRunStatus",
    "PipelineRunType",
    "RejectedSale",
]

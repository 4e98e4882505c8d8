"""
app/services/pipeline_service.py

Cached wiring of the batch pipeline and data-quality checker to the shared
session factory and environment settings.
"""

from __future__ import annotations

from functools import lru_cache

from app.config import get_data_quality_settings, get_pipeline_settings
from db.session import SessionLocal
from monitoring.data_quality import DataQualityChecker, DataQualityReport
from pipelines.base import PipelineConfig
from pipelines.batch import BatchPipeline
from pipelines.tracker import PipelineRunTracker


@lru_cache(maxsize=1)
def get_run_tracker() -> PipelineRunTracker:
    return PipelineRunTracker(SessionLocal)


@lru_cache(maxsize=1)
def get_batch_pipeline() -> BatchPipeline:
    """
    Return the shared batch pipeline bound to the application session factory.
    """

    return BatchPipeline(SessionLocal, tracker=get_run_tracker())


def get_pipeline_config() -> PipelineConfig:
    return get_pipeline_settings().to_pipeline_config()


@lru_cache(maxsize=1)
def get_data_quality_checker() -> DataQualityChecker:
    return DataQualityChecker(SessionLocal)


def run_data_quality_checks(window_days: int | None = None) -> DataQualityReport:
    """
    Run every data-quality check over the configured (or given) window.
    """

    days = window_days if window_days is not None else get_data_quality_settings().window_days
    return get_data_quality_checker().run_checks(window_days=days)

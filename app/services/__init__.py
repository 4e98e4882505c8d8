"""
app/services package marker.
"""

from app.services.pipeline_service import (
    get_batch_pipeline,
    get_data_quality_checker,
    get_pipeline_config,
    get_run_tracker,
    run_data_quality_checks,
)

__all__ = [
    "get_batch_pipeline",
    "get_data_quality_checker",
    "get_pipeline_config",
    "get_run_tracker",
    "run_data_quality_checks",
]

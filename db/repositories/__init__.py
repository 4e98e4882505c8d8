"""
Repository layer exports.
"""

from db.repositories.data_quality_repository import DataQualityRepository
from db.repositories.errors import StoreError, TableNotProvisionedError
from db.repositories.pipeline_run_repository import PipelineRunRepository

__all__ = [
    "DataQualityRepository",
    "PipelineRunRepository",
    "StoreError",
    "TableNotProvisionedError",
]

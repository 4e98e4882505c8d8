"""
app/api/routers package marker.
"""

from app.api.routers.data_quality import router as data_quality_router
from app.api.routers.ingestion import router as ingestion_router
from app.api.routers.pipeline_runs import router as pipeline_runs_router

__all__ = [
    "data_quality_router",
    "ingestion_router",
    "pipeline_runs_router",
]

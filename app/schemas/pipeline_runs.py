"""
Schemas for pipeline run audit endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, Field


class PipelineRunResponse(BaseModel):
    model_config = {"from_attributes": True}

    run_id: int
    pipeline_name: str
    run_type: str
    status: str
    started_at: datetime
    completed_at: datetime | None = None
    rows_processed: int = Field(..., ge=0)
    rows_succeeded: int = Field(..., ge=0)
    rows_failed: int = Field(..., ge=0)
    error_message: str | None = None
    metadata: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("run_metadata", "metadata"),
    )


class PipelineRunListResponse(BaseModel):
    runs: list[PipelineRunResponse] = Field(default_factory=list)

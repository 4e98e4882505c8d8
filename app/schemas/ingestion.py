"""
app/schemas/ingestion.py

Response schemas for the CSV upload endpoint.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RejectedRowResponse(BaseModel):
    """
    API response model for one rejected source row.
    """

    row_number: int | None = Field(default=None, ge=1)
    reason: str
    transaction_id: str | None = None


class IngestionRunResponse(BaseModel):
    """
    API response model for one batch pipeline run.
    """

    run_id: int | None = None
    processed: int = Field(..., ge=0)
    succeeded: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)
    rejections: list[RejectedRowResponse] = Field(default_factory=list)

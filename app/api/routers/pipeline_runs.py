"""
app/api/routers/pipeline_runs.py

Read-back endpoints for pipeline run audit records.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import require_permission
from app.schemas.pipeline_runs import PipelineRunListResponse, PipelineRunResponse
from db.repositories import PipelineRunRepository, TableNotProvisionedError
from db.session import get_db
from pipelines.base import Identity

router = APIRouter(prefix="/pipeline-runs", tags=["pipeline-runs"])


@router.get("", response_model=PipelineRunListResponse)
def list_pipeline_runs(
    limit: int = Query(default=50, ge=1, le=500),
    status_filter: str | None = Query(default=None, alias="status"),
    pipeline_name: str | None = Query(default=None),
    db: Session = Depends(get_db),
    _identity: Identity = Depends(require_permission("read")),
) -> PipelineRunListResponse:
    try:
        runs = PipelineRunRepository(db).list_runs(
            limit=limit,
            pipeline_name=pipeline_name,
            status=status_filter,
        )
    except TableNotProvisionedError:
        runs = []
    return PipelineRunListResponse(runs=[PipelineRunResponse.model_validate(run) for run in runs])


@router.get("/{run_id}", response_model=PipelineRunResponse)
def get_pipeline_run(
    run_id: int,
    db: Session = Depends(get_db),
    _identity: Identity = Depends(require_permission("read")),
) -> PipelineRunResponse:
    try:
        run = PipelineRunRepository(db).get_run(run_id)
    except TableNotProvisionedError:
        run = None
    if run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Pipeline run {run_id} not found.",
        )
    return PipelineRunResponse.model_validate(run)

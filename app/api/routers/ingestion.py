"""
app/api/routers/ingestion.py

CSV upload endpoint feeding the batch sales pipeline.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status

from app.api.dependencies import get_csv_upload, get_identity
from app.schemas.ingestion import IngestionRunResponse, RejectedRowResponse
from app.services.pipeline_service import get_batch_pipeline, get_pipeline_config
from pipelines.base import (
    Identity,
    IngestionFileError,
    IngestionSource,
    PermissionDeniedError,
    PipelineConfig,
    PipelineError,
)
from pipelines.batch import BatchPipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ingestion"])


@router.post("/upload-csv", response_model=IngestionRunResponse)
def upload_csv(
    file: UploadFile = Depends(get_csv_upload),
    channel: str | None = Query(default=None, description="STORE, WAREHOUSE or ONLINE; inferred when omitted"),
    identity: Identity = Depends(get_identity),
    pipeline: BatchPipeline = Depends(get_batch_pipeline),
    config: PipelineConfig = Depends(get_pipeline_config),
) -> IngestionRunResponse:
    """
    Load one CSV file of sales transactions into the warehouse.
    """

    try:
        content = file.file.read()
        result = pipeline.execute(
            IngestionSource(
                content=content,
                filename=file.filename or "upload.csv",
                identity=identity,
                channel=channel,
            ),
            config=config,
        )
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except IngestionFileError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PipelineError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("CSV upload failed filename=%r", file.filename)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Pipeline run failed: {exc}",
        ) from exc
    finally:
        file.file.close()

    return IngestionRunResponse(
        run_id=result.run_id,
        processed=result.processed,
        succeeded=result.succeeded,
        failed=result.failed,
        metadata=result.metadata,
        rejections=[
            RejectedRowResponse(
                row_number=record.row_number,
                reason=record.reason,
                transaction_id=(
                    None
                    if record.fields.get("transaction_id") is None
                    else str(record.fields.get("transaction_id"))
                ),
            )
            for record in result.rejections
        ],
    )

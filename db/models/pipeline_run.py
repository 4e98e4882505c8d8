"""
db/models/pipeline_run.py

Pipeline run model for file-processing audit and lifecycle tracking.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, BigIntPK, JSONDocument


class PipelineRunType:
    BATCH = "BATCH"


class PipelineRunStatus:
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class PipelineRun(Base):
    __tablename__ = "pipeline_runs"

    run_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    pipeline_name: Mapped[str] = mapped_column(String(100), nullable=False)
    run_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=PipelineRunType.BATCH,
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=PipelineRunStatus.RUNNING,
        comment="RUNNING, SUCCESS, FAILED",
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    rows_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rows_succeeded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rows_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    run_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSONDocument,
        nullable=True,
        comment="Filename, channel, batch and rejection counts",
    )

    __table_args__ = (
        Index("ix_pipeline_runs_pipeline_name", "pipeline_name"),
        Index("ix_pipeline_runs_status", "status"),
        Index("ix_pipeline_runs_started_at", "started_at"),
    )

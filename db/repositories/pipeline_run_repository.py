"""
Repository for pipeline run lifecycle persistence and status lookup.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlalchemy import Select, inspect, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from db.models.pipeline_run import PipelineRun, PipelineRunStatus, PipelineRunType
from db.repositories.errors import TableNotProvisionedError

T = TypeVar("T")


class PipelineRunRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_run(
        self,
        *,
        pipeline_name: str,
        run_type: str = PipelineRunType.BATCH,
        metadata: dict[str, Any] | None = None,
    ) -> PipelineRun:
        def _create() -> PipelineRun:
            run = PipelineRun(
                pipeline_name=pipeline_name,
                run_type=run_type,
                status=PipelineRunStatus.RUNNING,
                started_at=datetime.now(timezone.utc),
                run_metadata=metadata,
            )
            self._session.add(run)
            self._session.flush()
            return run

        return self._translate_errors(_create)

    def get_run(self, run_id: int) -> PipelineRun | None:
        return self._translate_errors(lambda: self._session.get(PipelineRun, run_id))

    def list_runs(
        self,
        *,
        limit: int = 100,
        pipeline_name: str | None = None,
        status: str | None = None,
    ) -> list[PipelineRun]:
        stmt: Select[tuple[PipelineRun]] = select(PipelineRun)

        if pipeline_name:
            stmt = stmt.where(PipelineRun.pipeline_name == pipeline_name)
        if status:
            stmt = stmt.where(PipelineRun.status == status.strip().upper())

        stmt = stmt.order_by(PipelineRun.started_at.desc(), PipelineRun.run_id.desc()).limit(max(1, limit))
        return self._translate_errors(lambda: list(self._session.scalars(stmt).all()))

    def mark_completed(
        self,
        *,
        run_id: int,
        processed: int,
        succeeded: int,
        failed: int,
        metadata: dict[str, Any] | None = None,
    ) -> PipelineRun | None:
        run = self.get_run(run_id)
        if run is None:
            return None
        run.status = PipelineRunStatus.SUCCESS
        run.completed_at = datetime.now(timezone.utc)
        run.rows_processed = processed
        run.rows_succeeded = succeeded
        run.rows_failed = failed
        run.run_metadata = metadata or {}
        run.error_message = None
        return run

    def mark_failed(
        self,
        *,
        run_id: int,
        error_message: str,
        processed: int | None = None,
        succeeded: int | None = None,
        failed: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> PipelineRun | None:
        run = self.get_run(run_id)
        if run is None:
            return None
        run.status = PipelineRunStatus.FAILED
        run.completed_at = datetime.now(timezone.utc)
        run.error_message = error_message
        if processed is not None:
            run.rows_processed = processed
        if succeeded is not None:
            run.rows_succeeded = succeeded
        if failed is not None:
            run.rows_failed = failed
        if metadata is not None:
            run.run_metadata = metadata
        return run

    def provision_table(self) -> None:
        """
        Create the pipeline_runs table (and its indexes) when absent.
        """

        PipelineRun.__table__.create(bind=self._session.connection(), checkfirst=True)

    def _translate_errors(self, operation: Callable[[], T]) -> T:
        """
        Run one store operation, surfacing a missing table as TableNotProvisionedError.

        The table's existence is checked against the live schema once the
        failed transaction has been rolled back; any other failure propagates.
        """

        try:
            return operation()
        except DBAPIError as exc:
            self._session.rollback()
            table_name = PipelineRun.__tablename__
            if not inspect(self._session.connection()).has_table(table_name):
                raise TableNotProvisionedError(table_name) from exc
            raise

"""
pipelines/tracker.py

Pipeline run bookkeeping and transient-failure retry.

Telemetry writes use their own short-lived sessions so a run record is
committed independently of the batch transactions it describes.
A failed completion or failure write is logged and never replaces the
outcome of the run itself.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, Mapping, TypeVar

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from db.models.pipeline_run import PipelineRunType
from db.repositories.errors import StoreError, TableNotProvisionedError
from db.repositories.pipeline_run_repository import PipelineRunRepository
from pipelines.base import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Connection drops, pool exhaustion and lost insert races against a unique
# index are worth another attempt; anything else is raised at once.
TRANSIENT_STORE_ERRORS: tuple[type[BaseException], ...] = (
    OperationalError,
    InterfaceError,
    PoolTimeoutError,
    IntegrityError,
)


class PipelineRunTracker:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session_factory = session_factory
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def start_run(
        self,
        pipeline_name: str,
        run_type: str = PipelineRunType.BATCH,
        metadata: Mapping[str, Any] | None = None,
    ) -> int:
        """
        Record a RUNNING run and return its id.

        A missing pipeline_runs table is created on the spot and the insert
        retried once.
        """

        try:
            run_id = self._create_run(pipeline_name, run_type, metadata)
        except TableNotProvisionedError:
            logger.warning("pipeline_runs table missing; provisioning it now")
            self._provision()
            run_id = self._create_run(pipeline_name, run_type, metadata)

        logger.info(
            "Pipeline run started run_id=%s pipeline=%s type=%s",
            run_id,
            pipeline_name,
            run_type,
        )
        return run_id

    def complete_run(
        self,
        run_id: int,
        stats: Mapping[str, int],
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        try:
            with self._session_factory() as session:
                run = PipelineRunRepository(session).mark_completed(
                    run_id=run_id,
                    processed=int(stats.get("processed", 0)),
                    succeeded=int(stats.get("succeeded", 0)),
                    failed=int(stats.get("failed", 0)),
                    metadata=dict(metadata) if metadata is not None else None,
                )
                session.commit()
        except TableNotProvisionedError:
            logger.warning("pipeline_runs table missing; skipping completion run_id=%s", run_id)
            return
        except (SQLAlchemyError, StoreError):
            logger.exception("Could not record pipeline run completion run_id=%s", run_id)
            return

        if run is None:
            logger.warning("Pipeline run not found on completion run_id=%s", run_id)
            return
        logger.info(
            "Pipeline run completed run_id=%s processed=%s succeeded=%s failed=%s",
            run_id,
            stats.get("processed", 0),
            stats.get("succeeded", 0),
            stats.get("failed", 0),
        )

    def fail_run(
        self,
        run_id: int,
        error: BaseException | str,
        stats: Mapping[str, int] | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        error_message = str(error)
        stats = stats or {}
        try:
            with self._session_factory() as session:
                run = PipelineRunRepository(session).mark_failed(
                    run_id=run_id,
                    error_message=error_message,
                    processed=stats.get("processed"),
                    succeeded=stats.get("succeeded"),
                    failed=stats.get("failed"),
                    metadata=dict(metadata) if metadata is not None else None,
                )
                session.commit()
        except TableNotProvisionedError:
            logger.warning("pipeline_runs table missing; skipping failure record run_id=%s", run_id)
            return
        except (SQLAlchemyError, StoreError):
            logger.exception("Could not record pipeline run failure run_id=%s error=%s", run_id, error_message)
            return

        if run is None:
            logger.warning("Pipeline run not found on failure run_id=%s", run_id)
            return
        logger.error("Pipeline run failed run_id=%s error=%s", run_id, error_message)

    # ------------------------------------------------------------------
    # Retry
    # ------------------------------------------------------------------

    def with_retry(
        self,
        fn: Callable[[], T],
        context: str,
        *,
        max_attempts: int = 3,
        base_delay_seconds: float = 1.0,
        retry_on: tuple[type[BaseException], ...] = TRANSIENT_STORE_ERRORS,
    ) -> T:
        """
        Call ``fn`` up to ``max_attempts`` times with exponential backoff.

        The delay before attempt ``n + 1`` is ``base_delay_seconds * 2 ** (n - 1)``.
        Errors outside ``retry_on`` propagate immediately.

        Raises:
            RetryExhaustedError: If every attempt failed with a retryable error.
        """

        attempts = max(1, max_attempts)
        last_error: BaseException | None = None

        for attempt in range(1, attempts + 1):
            try:
                result = fn()
            except retry_on as exc:
                last_error = exc
                if attempt == attempts:
                    break
                delay = base_delay_seconds * (2 ** (attempt - 1))
                logger.warning(
                    "%s failed on attempt %d/%d; retrying in %.2fs: %s",
                    context,
                    attempt,
                    attempts,
                    delay,
                    exc,
                )
                self._sleep(delay)
                continue

            if attempt > 1:
                logger.info("%s succeeded on attempt %d/%d", context, attempt, attempts)
            return result

        assert last_error is not None
        raise RetryExhaustedError(context, attempts, last_error) from last_error

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _create_run(
        self,
        pipeline_name: str,
        run_type: str,
        metadata: Mapping[str, Any] | None,
    ) -> int:
        with self._session_factory() as session:
            run = PipelineRunRepository(session).create_run(
                pipeline_name=pipeline_name,
                run_type=run_type,
                metadata=dict(metadata) if metadata is not None else None,
            )
            session.commit()
            return run.run_id

    def _provision(self) -> None:
        with self._session_factory() as session:
            PipelineRunRepository(session).provision_table()
            session.commit()

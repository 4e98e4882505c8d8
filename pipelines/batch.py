"""
pipelines/batch.py

Batch CSV ingestion into the sales star schema.

One call processes one file:

    1. check the caller holds the write permission and that an explicit
       channel is one of STORE, WAREHOUSE or ONLINE
    2. record a RUNNING pipeline run
    3. normalize, validate and transform each row; refused rows become
       RejectionRecords
    4. load valid rows (plus pending rejections) in fixed-size batches, each
       batch in its own transaction wrapped in transient-error retry
    5. mark the run SUCCESS with final counts, or FAILED on any fatal error

Batches committed before a fatal error stay committed.
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from etl.loader import LoadResult, StarSchemaLoader
from etl.normalizer import RowNormalizer
from etl.scd import DimensionManager
from etl.transformer import RowTransformer
from etl.types import RejectionRecord, TransformedRow
from etl.validator import RowValidator, is_blank
from pipelines.base import (
    WRITE_PERMISSION,
    Identity,
    IngestionFileError,
    IngestionSource,
    PipelineConfig,
    RunResult,
)
from pipelines.tracker import PipelineRunTracker

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "STORE"
VALID_CHANNELS: tuple[str, ...] = ("STORE", "WAREHOUSE", "ONLINE")
AUTO_DETECTED_CHANNEL = "auto-detected"

# Checked in this order against the lower-cased filename.
_FILENAME_CHANNEL_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("store", "STORE"),
    ("warehouse", "WAREHOUSE"),
    ("online", "ONLINE"),
)


def _clean_channel(value: Any) -> str | None:
    if is_blank(value):
        return None
    return str(value).strip().upper()


def channel_from_filename(filename: str | None) -> str:
    lowered = (filename or "").lower()
    for keyword, channel in _FILENAME_CHANNEL_KEYWORDS:
        if keyword in lowered:
            return channel
    return DEFAULT_CHANNEL


def resolve_channel(
    *,
    explicit: str | None,
    row_channel: Any,
    detected: str | None,
    filename: str | None,
) -> str:
    """
    Pick the channel tag for one row.

    Precedence: explicit argument, the row's own channel column, the channel
    of the file's first data row, a keyword in the filename, then STORE.
    """

    return (
        _clean_channel(explicit)
        or _clean_channel(row_channel)
        or _clean_channel(detected)
        or channel_from_filename(filename)
    )


@dataclass
class _RunProgress:
    processed: int = 0
    succeeded: int = 0
    batches: int = 0
    rejected_validation: int = 0
    rejected_transform: int = 0
    duplicates: int = 0
    reported: list[RejectionRecord] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return self.processed - self.succeeded

    def stats(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
        }


class BatchPipeline:
    """
    Loads whole CSV files through the normalize / validate / transform / load chain.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        tracker: PipelineRunTracker | None = None,
        normalizer: RowNormalizer | None = None,
        transformer: RowTransformer | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._tracker = tracker or PipelineRunTracker(session_factory)
        self._normalizer = normalizer or RowNormalizer()
        self._transformer = transformer or RowTransformer()

    def execute(self, source: IngestionSource, *, config: PipelineConfig) -> RunResult:
        return self.process_file(
            source.content,
            source.filename,
            source.channel,
            identity=source.identity,
            config=config,
        )

    def process_file(
        self,
        content: bytes,
        filename: str,
        channel: str | None = None,
        *,
        identity: Identity,
        config: PipelineConfig,
    ) -> RunResult:
        identity.require(WRITE_PERMISSION)
        explicit_channel = _clean_channel(channel)
        if explicit_channel is not None and explicit_channel not in VALID_CHANNELS:
            raise IngestionFileError(
                f"Unknown channel: {channel}. Expected one of {', '.join(VALID_CHANNELS)}."
            )

        metadata: dict[str, Any] = {
            "filename": filename,
            "channel": explicit_channel or AUTO_DETECTED_CHANNEL,
        }
        run_id = self._tracker.start_run(
            config.pipeline_name,
            config.run_type,
            metadata=metadata,
        )
        progress = _RunProgress()

        try:
            self._process(
                content=content,
                filename=filename,
                channel=channel,
                run_id=run_id,
                config=config,
                progress=progress,
            )
        except Exception as exc:
            self._tracker.fail_run(
                run_id,
                exc,
                stats=progress.stats(),
                metadata=self._run_metadata(metadata, progress),
            )
            raise

        final_metadata = self._run_metadata(metadata, progress)
        self._tracker.complete_run(run_id, progress.stats(), metadata=final_metadata)

        return RunResult(
            run_id=run_id,
            processed=progress.processed,
            succeeded=progress.succeeded,
            failed=progress.failed,
            metadata=final_metadata,
            rejections=tuple(progress.reported),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _process(
        self,
        *,
        content: bytes,
        filename: str,
        channel: str | None,
        run_id: int,
        config: PipelineConfig,
        progress: _RunProgress,
    ) -> None:
        validator = RowValidator()
        valid_rows: list[TransformedRow] = []
        pending_rejections: list[RejectionRecord] = []
        detected: str | None = None

        for row_number, raw_row in self._read_rows(content):
            progress.processed += 1
            row = self._normalizer.normalize(raw_row)
            if progress.processed == 1:
                detected = _clean_channel(row.get("channel"))

            row["channel"] = resolve_channel(
                explicit=channel,
                row_channel=row.get("channel"),
                detected=detected,
                filename=filename,
            )

            reason = validator.validate(row)
            if reason is not None:
                progress.rejected_validation += 1
                self._reject(
                    RejectionRecord(fields=row, reason=reason, row_number=row_number),
                    pending_rejections,
                    progress,
                    config,
                )
                continue

            outcome = self._transformer.transform(row, row_number=row_number)
            if isinstance(outcome, RejectionRecord):
                progress.rejected_transform += 1
                self._reject(outcome, pending_rejections, progress, config)
                continue

            valid_rows.append(outcome)
            if len(valid_rows) >= config.batch_size:
                self._flush(valid_rows, pending_rejections, run_id, config, progress)
                valid_rows = []
                pending_rejections = []

        if valid_rows or pending_rejections:
            self._flush(valid_rows, pending_rejections, run_id, config, progress)

    def _read_rows(self, content: bytes) -> Iterator[tuple[int, dict[str, Any]]]:
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise IngestionFileError("CSV must be UTF-8 encoded.") from exc

        reader = csv.DictReader(io.StringIO(text, newline=""))
        try:
            if not reader.fieldnames:
                raise IngestionFileError("CSV header row is missing.")
            for row_number, raw_row in enumerate(reader, start=2):
                yield row_number, raw_row
        except csv.Error as exc:
            raise IngestionFileError(f"Invalid CSV format: {exc}") from exc

    def _reject(
        self,
        record: RejectionRecord,
        pending: list[RejectionRecord],
        progress: _RunProgress,
        config: PipelineConfig,
    ) -> None:
        pending.append(record)
        if len(progress.reported) < config.max_reported_rejections:
            progress.reported.append(record)
        if config.log_rejections:
            logger.warning(
                "Row rejected row=%s transaction_id=%r reason=%s",
                record.row_number,
                record.fields.get("transaction_id"),
                record.reason,
            )

    def _flush(
        self,
        rows: list[TransformedRow],
        rejections: list[RejectionRecord],
        run_id: int,
        config: PipelineConfig,
        progress: _RunProgress,
    ) -> None:
        batch_number = progress.batches + 1

        def _load() -> LoadResult:
            with self._session_factory() as session, session.begin():
                loader = StarSchemaLoader(session, DimensionManager(session))
                return loader.load_batch(rows, rejections, run_id=run_id)

        result = self._tracker.with_retry(
            _load,
            f"Batch {batch_number} load (run {run_id})",
            max_attempts=config.max_retries,
            base_delay_seconds=config.retry_delay_seconds,
        )

        progress.batches = batch_number
        progress.succeeded += result.inserted
        progress.duplicates += len(result.duplicates)
        for record in result.duplicates:
            if len(progress.reported) < config.max_reported_rejections:
                progress.reported.append(record)

        logger.info(
            "Batch loaded run_id=%s batch=%d inserted=%d rejected=%d",
            run_id,
            batch_number,
            result.inserted,
            result.rejected,
        )

    @staticmethod
    def _run_metadata(base: dict[str, Any], progress: _RunProgress) -> dict[str, Any]:
        return {
            **base,
            "batches": progress.batches,
            "duplicates": progress.duplicates,
            "rejected_validation": progress.rejected_validation,
            "rejected_transform": progress.rejected_transform,
        }


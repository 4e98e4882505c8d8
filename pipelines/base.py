"""
pipelines/base.py

Shared contracts for ingestion pipelines: per-run configuration, the input
source, the caller's identity, the run result and the pipeline error types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from etl.types import RejectionRecord

WRITE_PERMISSION = "write"

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "admin": frozenset({"read", "write", "delete", "analytics"}),
    "analyst": frozenset({"read", "analytics"}),
    "operator": frozenset({"read", "write"}),
}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class PipelineError(Exception):
    """Base error for pipeline runs."""


class PermissionDeniedError(PipelineError):
    def __init__(self, subject: str, permission: str) -> None:
        self.subject = subject
        self.permission = permission
        super().__init__(f"Identity '{subject}' lacks the '{permission}' permission.")


class IngestionFileError(PipelineError):
    """Raised when the uploaded file cannot be read as CSV."""


class RetryExhaustedError(PipelineError):
    """
    Raised when every attempt of a retried operation failed transiently.

    Attributes:
        context: Name of the operation being retried.
        attempts: Total number of attempts made.
        last_error: Exception raised by the final attempt.
    """

    def __init__(self, context: str, attempts: int, last_error: BaseException) -> None:
        self.context = context
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{context} failed after {attempts} attempts: {last_error}")


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Identity:
    """
    Authenticated caller with the permission set granted by its role.
    """

    subject: str
    role: str | None = None
    permissions: frozenset[str] = frozenset()

    @classmethod
    def for_role(cls, subject: str, role: str) -> "Identity":
        return cls(subject=subject, role=role, permissions=ROLE_PERMISSIONS.get(role, frozenset()))

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def require(self, permission: str) -> None:
        if not self.has_permission(permission):
            raise PermissionDeniedError(self.subject, permission)


@dataclass(frozen=True)
class PipelineConfig:
    pipeline_name: str = "batch_sales_pipeline"
    run_type: str = "BATCH"
    batch_size: int = 1000
    max_retries: int = 3
    retry_delay_seconds: float = 1.0
    max_reported_rejections: int = 500
    log_rejections: bool = True

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1.")
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1.")
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds cannot be negative.")
        if self.max_reported_rejections < 0:
            raise ValueError("max_reported_rejections cannot be negative.")


@dataclass(frozen=True)
class IngestionSource:
    """
    One file handed to a pipeline.
    """

    content: bytes
    filename: str
    identity: Identity
    channel: str | None = None


@dataclass(frozen=True)
class RunResult:
    run_id: int | None
    processed: int
    succeeded: int
    failed: int
    metadata: dict[str, Any] = field(default_factory=dict)
    rejections: tuple[RejectionRecord, ...] = ()

    @property
    def stats(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
        }


class Pipeline(Protocol):
    def execute(self, source: IngestionSource, *, config: PipelineConfig) -> RunResult:
        ...

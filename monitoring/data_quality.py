"""
monitoring/data_quality.py

Post-load data-quality scoring over a trailing window of fact rows.

Four checks run against fact_sales rows whose transaction_date falls inside
the window:

    completeness  rows carrying a transaction id and all three entity keys
    validity      rows with positive quantity, non-negative net amount and
                  a transaction date not in the future
    consistency   rows whose dimension keys all resolve to a stored row
    accuracy      share of rows that are not duplicate transaction ids

Each score is ``100 * good / total`` (100 for an empty window) and is
persisted to data_quality_metrics together with the raw counts.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from sqlalchemy import and_, distinct, func, or_, select
from sqlalchemy.orm import Session

from db.base import utcnow
from db.models.data_quality_metric import DataQualityMetric, DataQualityStatus
from db.models.dimensions import DimCustomer, DimProduct, DimStore, DimTime
from db.models.fact_sales import FactSales
from db.repositories.data_quality_repository import DataQualityRepository
from db.session import SessionLocal

logger = logging.getLogger(__name__)

FACT_TABLE = FactSales.__tablename__

DEFAULT_THRESHOLDS: dict[str, float] = {
    "completeness": 95.0,
    "validity": 98.0,
    "consistency": 99.0,
    "accuracy": 99.9,
}

_METRIC_NAMES: dict[str, str] = {
    "completeness": "complete_row_pct",
    "validity": "valid_row_pct",
    "consistency": "referential_integrity_pct",
    "accuracy": "unique_transaction_pct",
}


@dataclass(frozen=True)
class CheckResult:
    check_type: str
    table_name: str
    metric_name: str
    score: float
    threshold: float
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> str:
        return DataQualityStatus.PASS if self.score >= self.threshold else DataQualityStatus.FAIL

    @property
    def passed(self) -> bool:
        return self.status == DataQualityStatus.PASS


@dataclass(frozen=True)
class DataQualityReport:
    check_date: date
    window_days: int
    checks: tuple[CheckResult, ...]

    @property
    def passed(self) -> bool:
        return all(check.passed for check in self.checks)

    @property
    def overall_status(self) -> str:
        return DataQualityStatus.PASS if self.passed else DataQualityStatus.FAIL

    def check(self, check_type: str) -> CheckResult | None:
        for result in self.checks:
            if result.check_type == check_type:
                return result
        return None


def score(good: int, total: int) -> float:
    if total <= 0:
        return 100.0
    return round(100.0 * good / total, 4)


def _key_resolves(fk_column: Any, dim_pk: Any) -> Any:
    return or_(
        fk_column.is_(None),
        select(dim_pk).where(dim_pk == fk_column).correlate(FactSales).exists(),
    )


class DataQualityChecker:
    """
    Scores recent fact rows and records one metric row per check.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        clock: Callable[[], datetime] = utcnow,
        thresholds: Mapping[str, float] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._thresholds = {**DEFAULT_THRESHOLDS, **(thresholds or {})}

    def run_checks(self, window_days: int = 7) -> DataQualityReport:
        now = self._clock()
        today = now.date()
        window_start = datetime.combine(today - timedelta(days=window_days), time.min, tzinfo=timezone.utc)

        with self._session_factory() as session:
            counts = self._collect_counts(session, window_start=window_start, now=now)
            checks = self._build_checks(counts, window_start=window_start)
            DataQualityRepository(session).insert_metrics(
                [
                    {
                        "check_date": today,
                        "check_type": check.check_type,
                        "table_name": check.table_name,
                        "metric_name": check.metric_name,
                        "metric_value": check.score,
                        "threshold": check.threshold,
                        "status": check.status,
                        "details": check.details,
                    }
                    for check in checks
                ]
            )
            session.commit()

        report = DataQualityReport(check_date=today, window_days=window_days, checks=tuple(checks))
        for check in checks:
            log = logger.info if check.passed else logger.warning
            log(
                "Data quality check=%s score=%.2f threshold=%.2f status=%s",
                check.check_type,
                check.score,
                check.threshold,
                check.status,
            )
        logger.info(
            "Data quality run complete date=%s window_days=%d overall=%s",
            today.isoformat(),
            window_days,
            report.overall_status,
        )
        return report

    def get_metrics(self, days: int = 7) -> list[DataQualityMetric]:
        """
        Return metrics recorded on or after ``today - days``, most recent first.
        """

        since = self._clock().date() - timedelta(days=days)
        with self._session_factory() as session:
            return DataQualityRepository(session).list_since(since)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _collect_counts(self, session: Session, *, window_start: datetime, now: datetime) -> dict[str, int]:
        complete = and_(
            FactSales.transaction_id.is_not(None),
            FactSales.product_id.is_not(None),
            FactSales.store_id.is_not(None),
            FactSales.customer_id.is_not(None),
        )
        valid = and_(
            FactSales.quantity > 0,
            FactSales.net_amount >= 0,
            FactSales.transaction_date <= now,
        )
        consistent = and_(
            _key_resolves(FactSales.product_id, DimProduct.product_id),
            _key_resolves(FactSales.store_id, DimStore.store_id),
            _key_resolves(FactSales.customer_id, DimCustomer.customer_id),
            _key_resolves(FactSales.time_id, DimTime.time_id),
        )

        stmt = select(
            func.count().label("total"),
            func.count().filter(complete).label("complete"),
            func.count().filter(FactSales.product_id.is_(None)).label("missing_product_id"),
            func.count().filter(FactSales.store_id.is_(None)).label("missing_store_id"),
            func.count().filter(FactSales.customer_id.is_(None)).label("missing_customer_id"),
            func.count().filter(valid).label("valid"),
            func.count().filter(FactSales.quantity <= 0).label("non_positive_quantity"),
            func.count().filter(FactSales.net_amount < 0).label("negative_net_amount"),
            func.count().filter(FactSales.transaction_date > now).label("future_dated"),
            func.count().filter(consistent).label("consistent"),
            func.count(distinct(FactSales.transaction_id)).label("distinct_transactions"),
        ).where(FactSales.transaction_date >= window_start)

        row = session.execute(stmt).one()
        return {key: int(value or 0) for key, value in row._mapping.items()}

    def _build_checks(self, counts: dict[str, int], *, window_start: datetime) -> list[CheckResult]:
        total = counts["total"]
        window = {"total_rows": total, "window_start": window_start.date().isoformat()}
        duplicates = total - counts["distinct_transactions"]

        good_by_check = {
            "completeness": (
                counts["complete"],
                {
                    "complete_rows": counts["complete"],
                    "missing_product_id": counts["missing_product_id"],
                    "missing_store_id": counts["missing_store_id"],
                    "missing_customer_id": counts["missing_customer_id"],
                },
            ),
            "validity": (
                counts["valid"],
                {
                    "valid_rows": counts["valid"],
                    "non_positive_quantity": counts["non_positive_quantity"],
                    "negative_net_amount": counts["negative_net_amount"],
                    "future_dated": counts["future_dated"],
                },
            ),
            "consistency": (
                counts["consistent"],
                {
                    "consistent_rows": counts["consistent"],
                    "orphaned_rows": total - counts["consistent"],
                },
            ),
            "accuracy": (
                total - duplicates,
                {"duplicate_transactions": duplicates},
            ),
        }

        checks: list[CheckResult] = []
        for check_type, (good, details) in good_by_check.items():
            checks.append(
                CheckResult(
                    check_type=check_type,
                    table_name=FACT_TABLE,
                    metric_name=_METRIC_NAMES[check_type],
                    score=score(good, total),
                    threshold=self._thresholds[check_type],
                    details={**window, **details},
                )
            )
        return checks


def get_data_quality_metrics(
    days: int = 7,
    *,
    session_factory: Callable[[], Session] | None = None,
) -> list[DataQualityMetric]:
    return DataQualityChecker(session_factory or SessionLocal).get_metrics(days)

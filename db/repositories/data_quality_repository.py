"""
Repository for data-quality metric persistence and trailing-window reads.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Any

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from db.models.data_quality_metric import DataQualityMetric


class DataQualityRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def insert_metrics(self, payloads: Sequence[dict[str, Any]]) -> int:
        if not payloads:
            return 0
        self._session.execute(insert(DataQualityMetric), list(payloads))
        return len(payloads)

    def list_since(self, since: date) -> list[DataQualityMetric]:
        stmt = (
            select(DataQualityMetric)
            .where(DataQualityMetric.check_date >= since)
            .order_by(
                DataQualityMetric.check_date.desc(),
                DataQualityMetric.created_at.desc(),
                DataQualityMetric.check_type.asc(),
                DataQualityMetric.metric_id.desc(),
            )
        )
        return list(self._session.scalars(stmt).all())

"""
db/models/data_quality_metric.py

Persisted data-quality check results. Append-only: every check invocation
writes one row per check type.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import Date, DateTime, Float, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, BigIntPK, JSONDocument


class DataQualityStatus:
    PASS = "PASS"
    FAIL = "FAIL"


class DataQualityMetric(Base):
    __tablename__ = "data_quality_metrics"

    metric_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    check_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    check_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="completeness, validity, consistency, accuracy",
    )
    table_name: Mapped[str] = mapped_column(String(64), nullable=False)
    metric_name: Mapped[str] = mapped_column(String(64), nullable=False)
    metric_value: Mapped[float] = mapped_column(Float, nullable=False)
    threshold: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(8), nullable=False)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSONDocument, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_data_quality_metrics_check_date_type", "check_date", "check_type"),
        Index("ix_data_quality_metrics_status", "status"),
    )

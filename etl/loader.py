"""
etl/loader.py

Idempotent star-schema loading of one batch of transformed sales rows.

All writes happen inside the caller's transaction so a failed batch leaves
no partial facts behind.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from db.models.fact_sales import FactSales, RejectedSale
from etl.scd import DimensionManager
from etl.types import CANONICAL_FIELDS, RejectionRecord, TransformedRow

logger = logging.getLogger(__name__)

_REJECTION_TEXT_LIMITS = {
    "transaction_id": 64,
    "transaction_date": 64,
    "customer_name": 255,
    "product": 255,
    "total_items": 64,
    "total_cost": 64,
    "payment_method": 64,
    "city": 120,
    "discount_percentage": 64,
    "season": 32,
    "channel": 32,
}


@dataclass(frozen=True)
class LoadResult:
    inserted: int
    rejected: int
    duplicates: tuple[RejectionRecord, ...] = ()


def fact_amounts(row: TransformedRow) -> dict[str, float]:
    """
    Derive the fact-table money columns for one row, rounded to cents.
    """

    total_amount = round(row.total_cost, 2)
    unit_price = round(row.total_cost / row.total_items, 2) if row.total_items > 0 else 0.0
    discount_amount = round(row.total_cost * row.discount_percentage / 100, 2)
    return {
        "unit_price": unit_price,
        "total_amount": total_amount,
        "discount_amount": discount_amount,
        "net_amount": round(total_amount - discount_amount, 2),
    }


def _as_text(value: Any, limit: int) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text[:limit]


def rejection_payload(record: RejectionRecord, *, run_id: int | None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        field_name: _as_text(record.fields.get(field_name), _REJECTION_TEXT_LIMITS[field_name])
        for field_name in CANONICAL_FIELDS
    }
    extras = {
        str(key): (None if value is None else str(value))
        for key, value in record.fields.items()
        if key not in _REJECTION_TEXT_LIMITS
    }
    payload.update(
        rejection_reason=record.reason,
        row_number=record.row_number,
        extra_fields=extras or None,
        pipeline_run_id=run_id,
    )
    return payload


class StarSchemaLoader:
    """
    Writes rejections and new fact rows, skipping transaction ids already stored.
    """

    def __init__(self, session: Session, dimensions: DimensionManager | None = None) -> None:
        self._session = session
        self._dimensions = dimensions or DimensionManager(session)

    def load_batch(
        self,
        rows: Sequence[TransformedRow],
        rejections: Sequence[RejectionRecord] = (),
        *,
        run_id: int | None = None,
    ) -> LoadResult:
        """
        Load one batch.

        Steps, in order: store the given rejections; reject rows whose
        transaction id is already in fact_sales (or repeats within the
        batch); resolve dimension keys for the survivors; bulk-insert facts.
        Returns counts of facts inserted and rejections written.
        """

        self._insert_rejections(rejections, run_id=run_id)

        survivors, duplicates = self._split_duplicates(rows)
        if duplicates:
            self._insert_rejections(duplicates, run_id=run_id)
            logger.info(
                "Skipped already-loaded transactions count=%d run_id=%s",
                len(duplicates),
                run_id,
            )

        payloads: list[dict[str, Any]] = []
        for row in survivors:
            keys = self._dimensions.resolve_row(row)
            payloads.append(
                {
                    "transaction_id": row.transaction_id,
                    "transaction_date": row.transaction_datetime,
                    "product_id": keys.product_id,
                    "store_id": keys.store_id,
                    "customer_id": keys.customer_id,
                    "time_id": keys.time_id,
                    "quantity": row.total_items,
                    "payment_method": row.payment_method,
                    "channel": row.channel,
                    "pipeline_run_id": run_id,
                    **fact_amounts(row),
                }
            )

        if payloads:
            self._session.execute(insert(FactSales), payloads)

        return LoadResult(
            inserted=len(payloads),
            rejected=len(rejections) + len(duplicates),
            duplicates=tuple(duplicates),
        )

    def _split_duplicates(
        self,
        rows: Sequence[TransformedRow],
    ) -> tuple[list[TransformedRow], list[RejectionRecord]]:
        if not rows:
            return [], []

        ids = {row.transaction_id for row in rows}
        stored = set(
            self._session.scalars(
                select(FactSales.transaction_id).where(FactSales.transaction_id.in_(ids))
            )
        )

        survivors: list[TransformedRow] = []
        duplicates: list[RejectionRecord] = []
        seen: set[int] = set()
        for row in rows:
            if row.transaction_id in stored or row.transaction_id in seen:
                duplicates.append(
                    RejectionRecord(
                        fields=row.to_fields(),
                        reason=f"duplicate transaction_id in store: {row.transaction_id}",
                        row_number=row.row_number,
                    )
                )
                continue
            seen.add(row.transaction_id)
            survivors.append(row)
        return survivors, duplicates

    def _insert_rejections(
        self,
        rejections: Sequence[RejectionRecord],
        *,
        run_id: int | None,
    ) -> None:
        if not rejections:
            return
        self._session.execute(
            insert(RejectedSale),
            [rejection_payload(record, run_id=run_id) for record in rejections],
        )

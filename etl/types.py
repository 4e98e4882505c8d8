"""
etl/types.py

Row shapes passed between the ingestion stages.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

CANONICAL_FIELDS: tuple[str, ...] = (
    "transaction_id",
    "transaction_date",
    "customer_name",
    "product",
    "total_items",
    "total_cost",
    "payment_method",
    "city",
    "discount_percentage",
    "season",
    "channel",
)

CanonicalRow = dict[str, Any]


@dataclass(frozen=True)
class RejectionRecord:
    """
    A source row that will not be loaded, with the reason it was refused.
    """

    fields: dict[str, Any]
    reason: str
    row_number: int | None = None


@dataclass(frozen=True)
class TransformedRow:
    """
    Validated and normalized row, ready for dimension resolution.
    """

    transaction_id: int
    transaction_date: str
    transaction_datetime: datetime
    customer_name: str
    product: str
    city: str
    total_items: int
    total_cost: float
    discount_percentage: float = 0.0
    payment_method: str | None = None
    season: str | None = None
    channel: str | None = None
    row_number: int | None = None

    def to_fields(self) -> dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "transaction_date": self.transaction_date,
            "customer_name": self.customer_name,
            "product": self.product,
            "total_items": self.total_items,
            "total_cost": self.total_cost,
            "payment_method": self.payment_method,
            "city": self.city,
            "discount_percentage": self.discount_percentage,
            "season": self.season,
            "channel": self.channel,
        }

"""
etl/normalizer.py

Header aliasing from arbitrary CSV column spellings onto the canonical field set.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Sequence

from etl.types import CanonicalRow

DEFAULT_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "transaction_id": ("transaction_id", "transaction id", "transactionid", "id"),
    "transaction_date": ("transaction_date", "transaction date", "transactiondate", "date"),
    "customer_name": ("customer_name", "customer name", "customername", "customer"),
    "product": ("product", "item", "product_name", "product name"),
    "total_items": ("total_items", "total items", "totalitems", "quantity", "qty", "items"),
    "total_cost": ("total_cost", "total cost", "totalcost", "amount", "price", "cost"),
    "payment_method": ("payment_method", "payment method", "paymentmethod", "payment"),
    "city": ("city", "location", "store_city", "store city"),
    "discount_percentage": (
        "discount_percentage",
        "discount percentage",
        "discountpercentage",
        "discount",
        "discount%",
    ),
    "season": ("season",),
    "channel": (
        "channel",
        "store_type",
        "inventory_type",
        "source",
        "location_type",
        "sales_channel",
        "channel_type",
    ),
}

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_header(header: Any) -> str:
    """
    Normalize a column name for alias matching: trimmed, lower-cased, inner
    whitespace runs collapsed to a single underscore.
    """

    if header is None:
        return ""
    return _WHITESPACE_RE.sub("_", str(header).strip().lower())


class RowNormalizer:
    """
    Re-keys raw CSV rows onto canonical field names.
    """

    def __init__(self, aliases: Mapping[str, Sequence[str]] | None = None) -> None:
        self._lookup: dict[str, str] = {}
        for canonical, spellings in (aliases or DEFAULT_COLUMN_ALIASES).items():
            for spelling in spellings:
                self._lookup.setdefault(normalize_header(spelling), canonical)

    def canonical_field(self, header: Any) -> str | None:
        return self._lookup.get(normalize_header(header))

    def normalize(self, raw_row: Mapping[Any, Any]) -> CanonicalRow:
        """
        Map one raw row to canonical keys.

        The first raw column (in file order) that aliases a canonical field
        wins; every column not consumed by a mapping passes through verbatim.
        """

        normalized: CanonicalRow = {}
        consumed: set[Any] = set()

        for raw_key, value in raw_row.items():
            canonical = self.canonical_field(raw_key)
            if canonical is None or canonical in normalized:
                continue
            normalized[canonical] = value
            consumed.add(raw_key)

        for raw_key, value in raw_row.items():
            if raw_key in consumed or raw_key in normalized:
                continue
            normalized[raw_key] = value

        return normalized


_default_normalizer = RowNormalizer()


def normalize_row(raw_row: Mapping[Any, Any]) -> CanonicalRow:
    return _default_normalizer.normalize(raw_row)

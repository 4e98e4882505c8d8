"""
etl/validator.py

Row-level business-rule validation for canonical sales rows.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

REQUIRED_FIELDS: tuple[str, ...] = (
    "transaction_id",
    "transaction_date",
    "customer_name",
    "product",
    "city",
    "total_items",
    "total_cost",
)

# Currency symbols, thousands separators and other decoration are dropped
# before numeric parsing; only digits, signs and dots survive.
_NON_NUMERIC_RE = re.compile(r"[^0-9.\-+]")
_INT_PREFIX_RE = re.compile(r"^[+-]?\d+")
_FLOAT_PREFIX_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)")


def is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def parse_quantity(value: Any) -> int | None:
    """
    Parse a quantity into an integer, ignoring non-numeric decoration.

    Parsing takes the leading integer of the cleaned text, so ``"12.7"`` is 12.
    Returns None when no integer can be read.
    """

    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _INT_PREFIX_RE.match(_NON_NUMERIC_RE.sub("", str(value)))
    if match is None:
        return None
    try:
        return int(match.group(0))
    except ValueError:
        # Beyond the interpreter digit limit.
        return None


def parse_amount(value: Any) -> float | None:
    """
    Parse a monetary or percentage amount into a float, ignoring decoration
    such as ``$``, ``%`` and thousands separators.
    """

    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _FLOAT_PREFIX_RE.match(_NON_NUMERIC_RE.sub("", str(value)))
    if match is None:
        return None
    return float(match.group(0))


def validate_row(row: Mapping[str, Any], seen_transaction_ids: set[str]) -> str | None:
    """
    Check one canonical row; return a rejection reason or None when valid.

    Checks short-circuit on the first failure, in order: required fields,
    quantity, sales amount, duplicate transaction id within the file. A
    valid row's id is added to ``seen_transaction_ids``.
    """

    for field_name in REQUIRED_FIELDS:
        if is_blank(row.get(field_name)):
            return f"Missing {field_name}"

    raw_items = row["total_items"]
    total_items = parse_quantity(raw_items)
    if total_items is None or total_items < 0:
        return f"Negative or invalid quantity: {raw_items}"

    raw_cost = row["total_cost"]
    total_cost = parse_amount(raw_cost)
    if total_cost is None or total_cost < 0:
        return f"Negative or invalid sales amount: {raw_cost}"

    transaction_id = str(row["transaction_id"]).strip()
    if transaction_id in seen_transaction_ids:
        return f"Duplicate transaction_id: {transaction_id}"
    seen_transaction_ids.add(transaction_id)

    return None


class RowValidator:
    """
    Validates the rows of one file, remembering transaction ids already seen.
    """

    def __init__(self) -> None:
        self._seen_transaction_ids: set[str] = set()

    @property
    def seen_transaction_ids(self) -> frozenset[str]:
        return frozenset(self._seen_transaction_ids)

    def validate(self, row: Mapping[str, Any]) -> str | None:
        return validate_row(row, self._seen_transaction_ids)

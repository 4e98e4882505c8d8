"""
etl/transformer.py

Normalizes validated rows: integer transaction ids, canonical UTC timestamps,
trimmed text and coerced numerics.

Supported transaction_date inputs, tried in this order:

    ISO 8601                     2025-12-25T05:44:00Z, 2025-12-25 05:44:00
    DD/MM/YY[YY] HH:mm[:ss]      25/12/25 5:44, 25/12/2025 05:44:10
    DD-MM-YY[YY] HH:mm[:ss]      25-12-2025 05:44
    YYYY-MM-DD HH:mm[:ss]        2025-12-25 5:44
    YYYY/MM/DD[ HH:mm[:ss]]      2025/12/25, 2025/12/25 05:44
    MM/DD/YYYY HH:mm[:ss]        12/25/2025 05:44

A candidate only wins when its day, month and time components form a real
calendar instant; a shape match with impossible components (for example
30/02) falls through to the next candidate.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Mapping

from etl.types import RejectionRecord, TransformedRow
from etl.validator import is_blank, parse_amount, parse_quantity

CANONICAL_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
MIN_YEAR = 1900
MAX_YEAR = 2100

# Bounds of the fact_sales columns: BIGINT transaction_id, INTEGER quantity
# and NUMERIC(12, 2) money.
MIN_TRANSACTION_ID = -(2**63)
MAX_TRANSACTION_ID = 2**63 - 1
MAX_TOTAL_ITEMS = 2**31 - 1
MAX_AMOUNT = 10**10

SUPPORTED_DATE_FORMATS: tuple[str, ...] = (
    "ISO 8601",
    "DD/MM/YY HH:mm",
    "DD/MM/YYYY HH:mm[:ss]",
    "DD-MM-YYYY HH:mm[:ss]",
    "YYYY-MM-DD HH:mm[:ss]",
    "YYYY/MM/DD[ HH:mm[:ss]]",
    "MM/DD/YYYY HH:mm[:ss]",
)

_TIME = r"\s+(?P<hour>\d{1,2}):(?P<minute>\d{1,2})(?::(?P<second>\d{1,2}))?"

_DATE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?P<day>\d{1,2})/(?P<month>\d{1,2})/(?P<year>\d{2}|\d{4})" + _TIME),
    re.compile(r"(?P<day>\d{1,2})-(?P<month>\d{1,2})-(?P<year>\d{2}|\d{4})" + _TIME),
    re.compile(r"(?P<year>\d{4})-(?P<month>\d{1,2})-(?P<day>\d{1,2})" + _TIME),
    re.compile(r"(?P<year>\d{4})/(?P<month>\d{1,2})/(?P<day>\d{1,2})(?:" + _TIME + r")?"),
    re.compile(r"(?P<month>\d{1,2})/(?P<day>\d{1,2})/(?P<year>\d{4})" + _TIME),
)

_INTEGER_RE = re.compile(r"^[+-]?\d+$")


class TransformError(ValueError):
    """
    Raised when a validated row cannot be normalized.
    """


def _expand_year(raw_year: str) -> int:
    year = int(raw_year)
    if len(raw_year) == 2:
        return 2000 + year
    return year


def _parse_iso(raw: str) -> datetime | None:
    normalized = raw[:-1] + "+00:00" if raw.endswith(("Z", "z")) else raw
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_components(match: re.Match[str]) -> datetime | None:
    parts = match.groupdict()
    try:
        return datetime(
            _expand_year(parts["year"]),
            int(parts["month"]),
            int(parts["day"]),
            int(parts.get("hour") or 0),
            int(parts.get("minute") or 0),
            int(parts.get("second") or 0),
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None


def parse_transaction_date(value: Any) -> datetime:
    """
    Parse a transaction date in any supported format into an aware UTC datetime.

    Raises TransformError naming the input and the supported formats when no
    candidate format yields a real date, or when the year is outside
    1900-2100.
    """

    raw = "" if value is None else str(value).strip()

    parsed = _parse_iso(raw) if raw else None
    if parsed is None:
        for pattern in _DATE_PATTERNS:
            match = pattern.fullmatch(raw)
            if match is None:
                continue
            parsed = _parse_components(match)
            if parsed is not None:
                break

    if parsed is None:
        raise TransformError(
            f"Invalid date format: {raw}. "
            f"Supported formats: {', '.join(SUPPORTED_DATE_FORMATS)}"
        )

    if parsed.year < MIN_YEAR or parsed.year > MAX_YEAR:
        raise TransformError(f"Invalid date year: {parsed.year} (from: {raw})")

    return parsed


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(CANONICAL_TIMESTAMP_FORMAT)


def normalize_transaction_date(value: Any) -> str:
    return format_timestamp(parse_transaction_date(value))


def _clean_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _clean_optional_text(value: Any) -> str | None:
    if is_blank(value):
        return None
    return str(value).strip()


def _parse_transaction_id(value: Any) -> int:
    raw = _clean_text(value)
    if not _INTEGER_RE.match(raw):
        raise TransformError("Invalid transaction_id format")
    # Longer digit strings cannot fit and int() refuses very long ones.
    if len(raw.lstrip("+-").lstrip("0")) > 19:
        raise TransformError(f"transaction_id out of range: {raw}")
    transaction_id = int(raw)
    if not MIN_TRANSACTION_ID <= transaction_id <= MAX_TRANSACTION_ID:
        raise TransformError(f"transaction_id out of range: {raw}")
    return transaction_id


def _check_amounts(total_cost: float, discount_percentage: float) -> None:
    if round(total_cost, 2) >= MAX_AMOUNT:
        raise TransformError(f"total_cost out of range: {total_cost}")
    discount_amount = round(total_cost * discount_percentage / 100, 2)
    net_amount = round(total_cost, 2) - discount_amount
    if abs(discount_amount) >= MAX_AMOUNT or abs(net_amount) >= MAX_AMOUNT:
        raise TransformError(f"discount_percentage out of range: {discount_percentage}")


class RowTransformer:
    """
    Converts validated canonical rows into TransformedRow instances.
    """

    def transform(
        self,
        row: Mapping[str, Any],
        *,
        row_number: int | None = None,
    ) -> TransformedRow | RejectionRecord:
        try:
            return self._transform(row, row_number=row_number)
        except TransformError as exc:
            return RejectionRecord(fields=dict(row), reason=str(exc), row_number=row_number)

    def _transform(self, row: Mapping[str, Any], *, row_number: int | None) -> TransformedRow:
        transaction_id = _parse_transaction_id(row.get("transaction_id"))
        transaction_datetime = parse_transaction_date(row.get("transaction_date"))

        total_items = parse_quantity(row.get("total_items"))
        if total_items is None or total_items < 0:
            raise TransformError("Invalid total_items")
        if total_items > MAX_TOTAL_ITEMS:
            raise TransformError(f"total_items out of range: {total_items}")

        total_cost = parse_amount(row.get("total_cost"))
        if total_cost is None or total_cost < 0:
            raise TransformError("Invalid total_cost")

        discount_percentage = parse_amount(row.get("discount_percentage"))
        if discount_percentage is None:
            discount_percentage = 0.0
        _check_amounts(total_cost, discount_percentage)

        channel = _clean_optional_text(row.get("channel"))

        return TransformedRow(
            transaction_id=transaction_id,
            transaction_date=format_timestamp(transaction_datetime),
            transaction_datetime=transaction_datetime,
            customer_name=_clean_text(row.get("customer_name")),
            product=_clean_text(row.get("product")),
            city=_clean_text(row.get("city")),
            total_items=total_items,
            total_cost=total_cost,
            discount_percentage=discount_percentage,
            payment_method=_clean_optional_text(row.get("payment_method")),
            season=_clean_optional_text(row.get("season")),
            channel=channel.upper() if channel else None,
            row_number=row_number,
        )


_default_transformer = RowTransformer()


def transform_row(
    row: Mapping[str, Any],
    *,
    row_number: int | None = None,
) -> TransformedRow | RejectionRecord:
    return _default_transformer.transform(row, row_number=row_number)

"""
tests/test_row_normalizer.py

Pytest unit tests for header aliasing onto canonical sales fields.

Coverage
--------
- Alias spellings (case, spacing, synonyms) map to canonical names
- First aliasing column in file order wins; the loser passes through
- Unknown columns pass through verbatim
- Normalizing an already-normalized row is a no-op
- Custom alias tables
"""

from __future__ import annotations

import pytest

from etl.normalizer import RowNormalizer, normalize_header, normalize_row


# ---------------------------------------------------------------------------
# Header normalization
# ---------------------------------------------------------------------------


class TestNormalizeHeader:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Transaction_ID", "transaction_id"),
            ("  Total   Cost ", "total_cost"),
            ("Customer Name", "customer_name"),
            (None, ""),
        ],
    )
    def test_normalize_header(self, raw, expected) -> None:
        assert normalize_header(raw) == expected


# ---------------------------------------------------------------------------
# Row normalization
# ---------------------------------------------------------------------------


class TestRowNormalizer:
    def test_aliases_map_to_canonical_fields(self) -> None:
        row = normalize_row(
            {
                "ID": "1001",
                "Date": "2025-12-25 05:44",
                "Customer": "Ada",
                "Item": "Tea",
                "Qty": "2",
                "Amount": "10.50",
                "Payment": "Cash",
                "Location": "Leeds",
                "Discount%": "5",
                "Season": "Winter",
                "Store_Type": "online",
            }
        )

        assert row == {
            "transaction_id": "1001",
            "transaction_date": "2025-12-25 05:44",
            "customer_name": "Ada",
            "product": "Tea",
            "total_items": "2",
            "total_cost": "10.50",
            "payment_method": "Cash",
            "city": "Leeds",
            "discount_percentage": "5",
            "season": "Winter",
            "channel": "online",
        }

    def test_first_aliasing_column_wins(self) -> None:
        row = normalize_row({"Amount": "10", "Total Cost": "20"})

        assert row["total_cost"] == "10"
        assert row["Total Cost"] == "20"

    def test_unknown_columns_pass_through(self) -> None:
        row = normalize_row({"transaction_id": "1", "Loyalty Tier": "gold"})

        assert row == {"transaction_id": "1", "Loyalty Tier": "gold"}

    def test_is_idempotent(self) -> None:
        raw = {"Amount": "10", "Total Cost": "20", "Customer": "Ada", "Notes": "x"}
        once = normalize_row(raw)

        assert normalize_row(once) == once

    def test_canonical_field_lookup(self) -> None:
        normalizer = RowNormalizer()

        assert normalizer.canonical_field("Sales Channel") == "channel"
        assert normalizer.canonical_field("unmapped") is None

    def test_custom_alias_table(self) -> None:
        normalizer = RowNormalizer({"total_cost": ("revenue",)})

        assert normalizer.normalize({"Revenue": "5", "Amount": "6"}) == {
            "total_cost": "5",
            "Amount": "6",
        }

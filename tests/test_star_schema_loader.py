"""
tests/test_star_schema_loader.py

Pytest tests for idempotent fact loading into the star schema.

Coverage
--------
- Fact money columns derived from cost, items and discount
- Fact rows point at resolved dimension versions
- Reloading the same transaction ids inserts nothing and records duplicates
- Repeats inside one batch are caught before insert
- Rejections are stored with raw text and extra columns
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from db.models.fact_sales import FactSales, RejectedSale
from etl.loader import StarSchemaLoader, fact_amounts, rejection_payload
from etl.types import RejectionRecord, TransformedRow


def _row(transaction_id: int = 1001, **overrides) -> TransformedRow:
    values = {
        "transaction_id": transaction_id,
        "transaction_date": "2025-03-15 10:00:00",
        "transaction_datetime": datetime(2025, 3, 15, 10, tzinfo=timezone.utc),
        "customer_name": "Ada Lovelace",
        "product": "Earl Grey",
        "city": "Leeds",
        "total_items": 4,
        "total_cost": 100.0,
        "discount_percentage": 10.0,
        "payment_method": "Card",
        "channel": "STORE",
        "row_number": 2,
    }
    values.update(overrides)
    return TransformedRow(**values)


def _count(session, model) -> int:
    return session.scalar(select(func.count()).select_from(model))


@pytest.fixture()
def loader(session) -> StarSchemaLoader:
    return StarSchemaLoader(session)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestFactAmounts:
    def test_amounts(self) -> None:
        assert fact_amounts(_row()) == {
            "unit_price": 25.0,
            "total_amount": 100.0,
            "discount_amount": 10.0,
            "net_amount": 90.0,
        }

    def test_zero_items(self) -> None:
        amounts = fact_amounts(_row(total_items=0, total_cost=12.5, discount_percentage=0.0))

        assert amounts["unit_price"] == 0.0
        assert amounts["total_amount"] == 12.5
        assert amounts["net_amount"] == amounts["total_amount"]


class TestRejectionPayload:
    def test_canonical_and_extra_fields(self) -> None:
        record = RejectionRecord(
            fields={"transaction_id": 7, "total_items": "-1", "Loyalty Tier": "gold"},
            reason="Negative or invalid quantity: -1",
            row_number=3,
        )

        payload = rejection_payload(record, run_id=11)

        assert payload["transaction_id"] == "7"
        assert payload["total_items"] == "-1"
        assert payload["city"] is None
        assert payload["extra_fields"] == {"Loyalty Tier": "gold"}
        assert payload["rejection_reason"] == "Negative or invalid quantity: -1"
        assert payload["row_number"] == 3
        assert payload["pipeline_run_id"] == 11

    def test_long_values_are_truncated(self) -> None:
        record = RejectionRecord(fields={"season": "x" * 100}, reason="bad")

        assert len(rejection_payload(record, run_id=None)["season"]) == 32

    def test_no_extras_stored_as_none(self) -> None:
        record = RejectionRecord(fields={"transaction_id": "1"}, reason="bad")

        assert rejection_payload(record, run_id=None)["extra_fields"] is None


# ---------------------------------------------------------------------------
# Batch loading
# ---------------------------------------------------------------------------


class TestLoadBatch:
    def test_inserts_facts_with_dimension_keys(self, loader, session) -> None:
        result = loader.load_batch([_row(1001), _row(1002, product="Green Tea")], run_id=5)

        assert result.inserted == 2
        assert result.rejected == 0
        fact = session.scalars(select(FactSales).where(FactSales.transaction_id == 1001)).one()
        assert fact.unit_price == 25.0
        assert fact.net_amount == 90.0
        assert fact.discount_amount == 10.0
        assert fact.quantity == 4
        assert fact.channel == "STORE"
        assert fact.pipeline_run_id == 5
        assert None not in (fact.product_id, fact.store_id, fact.customer_id, fact.time_id)

    def test_reload_is_idempotent(self, loader, session) -> None:
        loader.load_batch([_row(1001), _row(1002)])

        result = loader.load_batch([_row(1001), _row(1002)], run_id=9)

        assert result.inserted == 0
        assert result.rejected == 2
        assert [record.reason for record in result.duplicates] == [
            "duplicate transaction_id in store: 1001",
            "duplicate transaction_id in store: 1002",
        ]
        assert _count(session, FactSales) == 2
        assert _count(session, RejectedSale) == 2

    def test_repeat_within_batch_is_rejected(self, loader, session) -> None:
        result = loader.load_batch([_row(1001), _row(1001, total_cost=50.0)])

        assert result.inserted == 1
        assert len(result.duplicates) == 1
        assert session.scalar(select(FactSales.total_amount)) == 100.0

    def test_rejections_are_stored(self, loader, session) -> None:
        rejection = RejectionRecord(
            fields={"transaction_id": "abc", "city": "Leeds", "Notes": "late"},
            reason="Invalid transaction_id format",
            row_number=4,
        )

        result = loader.load_batch([], [rejection], run_id=3)

        assert result.inserted == 0
        assert result.rejected == 1
        stored = session.scalars(select(RejectedSale)).one()
        assert stored.transaction_id == "abc"
        assert stored.city == "Leeds"
        assert stored.extra_fields == {"Notes": "late"}
        assert stored.rejection_reason == "Invalid transaction_id format"
        assert stored.row_number == 4
        assert stored.pipeline_run_id == 3

    def test_empty_batch_is_a_noop(self, loader, session) -> None:
        result = loader.load_batch([])

        assert (result.inserted, result.rejected, result.duplicates) == (0, 0, ())
        assert _count(session, FactSales) == 0

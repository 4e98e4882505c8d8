"""
tests/test_dimension_manager.py

Pytest tests for SCD Type 2 dimension management against an in-memory
SQLite warehouse.

Coverage
--------
- Natural-key derivation helpers
- First sighting creates a current version
- Unchanged attributes reuse the current version
- Changed attributes close the current version and open a contiguous one
- Point-in-time resolution across versions
- Time dimension get-or-create (date and aware datetime input)
- Inserts that lose a unique-index race resolve against the winning row
- Row resolution to dimension keys
- Time dimension seeding is idempotent
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from db.models.dimensions import DimCustomer, DimProduct, DimStore, DimTime
from etl.scd import (
    DimensionManager,
    customer_code,
    product_sku,
    seed_time_dimension,
    store_code,
)
from etl.types import TransformedRow


class _StepClock:
    """Returns a fixed sequence of instants, one per call."""

    def __init__(self, start: datetime, step: timedelta) -> None:
        self._next = start
        self._step = step

    def __call__(self) -> datetime:
        current = self._next
        self._next = current + self._step
        return current


@pytest.fixture()
def clock() -> _StepClock:
    return _StepClock(datetime(2025, 1, 1, tzinfo=timezone.utc), timedelta(days=31))


@pytest.fixture()
def manager(session, clock) -> DimensionManager:
    return DimensionManager(session, clock=clock)


def _count(session, model) -> int:
    return session.scalar(select(func.count()).select_from(model))


# ---------------------------------------------------------------------------
# Natural keys
# ---------------------------------------------------------------------------


class TestNaturalKeys:
    def test_product_sku(self) -> None:
        assert product_sku("  Earl  Grey ") == "earl_grey"
        assert product_sku("") is None

    def test_store_code(self) -> None:
        assert store_code("ONLINE", "New York") == "ONLINE_NEW_YORK"
        assert store_code("STORE", "  ") is None

    def test_customer_code(self) -> None:
        assert customer_code("Ada Lovelace") == "ada_lovelace"
        assert customer_code(None) is None


# ---------------------------------------------------------------------------
# SCD2 upsert
# ---------------------------------------------------------------------------


class TestUpsert:
    def test_first_sighting_creates_current_version(self, manager, session) -> None:
        product = manager.upsert(
            DimProduct, "product_sku", "tea", {"product_name": "Tea", "unit_price": 2.5}
        )

        assert product.product_id is not None
        assert product.is_current is True
        assert product.valid_to is None
        assert product.valid_from == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert _count(session, DimProduct) == 1

    def test_unchanged_attributes_reuse_current_version(self, manager, session) -> None:
        first = manager.upsert(
            DimProduct, "product_sku", "tea", {"product_name": "Tea", "unit_price": 2.5}
        )
        again = manager.upsert(
            DimProduct, "product_sku", "tea", {"product_name": "Tea", "unit_price": 2.499}
        )

        assert again.product_id == first.product_id
        assert _count(session, DimProduct) == 1

    def test_change_opens_contiguous_version(self, manager, session) -> None:
        first = manager.upsert(
            DimProduct, "product_sku", "tea", {"product_name": "Tea", "unit_price": 2.5}
        )
        second = manager.upsert(
            DimProduct, "product_sku", "tea", {"product_name": "Tea", "unit_price": 3.0}
        )

        assert second.product_id != first.product_id
        assert first.is_current is False
        assert first.valid_to == second.valid_from
        assert second.is_current is True
        assert second.valid_to is None
        assert _count(session, DimProduct) == 2
        current = session.scalars(
            select(DimProduct).where(DimProduct.product_sku == "tea", DimProduct.is_current.is_(True))
        ).all()
        assert [row.product_id for row in current] == [second.product_id]

    def test_resolve_at_picks_covering_version(self, manager) -> None:
        first = manager.upsert(DimStore, "store_code", "STORE_LEEDS", {"store_name": "A", "city": "Leeds"})
        second = manager.upsert(DimStore, "store_code", "STORE_LEEDS", {"store_name": "B", "city": "Leeds"})

        mid_january = datetime(2025, 1, 15, tzinfo=timezone.utc)
        march = datetime(2025, 3, 1, tzinfo=timezone.utc)
        before = datetime(2024, 12, 31, tzinfo=timezone.utc)

        assert manager.resolve_at(DimStore, "store_code", "STORE_LEEDS", mid_january).store_id == first.store_id
        assert manager.resolve_at(DimStore, "store_code", "STORE_LEEDS", march).store_id == second.store_id
        assert manager.resolve_at(DimStore, "store_code", "STORE_LEEDS", before) is None

    def test_resolve_current(self, manager) -> None:
        created = manager.upsert(
            DimCustomer, "customer_code", "ada", {"customer_name": "Ada", "city": "Leeds"}
        )

        assert manager.resolve_current(DimCustomer, "customer_code", "ada").customer_id == created.customer_id
        assert manager.resolve_current(DimCustomer, "customer_code", "nobody") is None

    def test_unknown_natural_key_column(self, manager) -> None:
        with pytest.raises(ValueError, match="no column 'sku'"):
            manager.upsert(DimProduct, "sku", "tea", {})


# ---------------------------------------------------------------------------
# Time dimension
# ---------------------------------------------------------------------------


class TestTimeDimension:
    def test_get_or_create_is_stable(self, manager, session) -> None:
        created = manager.get_or_create_time_dimension(date(2025, 3, 15))
        again = manager.get_or_create_time_dimension(date(2025, 3, 15))

        assert again.time_id == created.time_id
        assert created.fiscal_year == 2024
        assert _count(session, DimTime) == 1

    def test_aware_datetime_uses_utc_date(self, manager) -> None:
        created = manager.get_or_create_time_dimension(date(2025, 3, 15))
        plus_two = timezone(timedelta(hours=2))

        resolved = manager.get_or_create_time_dimension(datetime(2025, 3, 16, 1, 0, tzinfo=plus_two))

        assert resolved.time_id == created.time_id

    def test_seed_is_idempotent(self, session) -> None:
        start, end = date(2025, 1, 1), date(2025, 1, 31)

        assert seed_time_dimension(session, start, end) == 31
        assert seed_time_dimension(session, start, end) == 0
        assert _count(session, DimTime) == 31

    def test_seed_skips_existing_dates(self, manager, session) -> None:
        manager.get_or_create_time_dimension(date(2025, 1, 10))

        assert seed_time_dimension(session, date(2025, 1, 1), date(2025, 1, 31)) == 30


# ---------------------------------------------------------------------------
# Lost insert races
# ---------------------------------------------------------------------------


class _StaleFirstRead(DimensionManager):
    """Misses the current row on its first lookup, as a transaction racing the winner would."""

    def __init__(self, session, **kwargs) -> None:
        super().__init__(session, **kwargs)
        self.lookups = 0

    def _current_for_update(self, model, key_column, value):
        self.lookups += 1
        if self.lookups == 1:
            return None
        return super()._current_for_update(model, key_column, value)

    def get_time_dimension(self, day):
        self.lookups += 1
        if self.lookups == 1:
            return None
        return super().get_time_dimension(day)


class TestLostInsertRace:
    def test_upsert_returns_winner_after_unique_clash(self, manager, session, clock) -> None:
        winner = manager.upsert(
            DimProduct, "product_sku", "tea", {"product_name": "Tea", "unit_price": 2.5}
        )
        racer = _StaleFirstRead(session, clock=clock)

        resolved = racer.upsert(
            DimProduct, "product_sku", "tea", {"product_name": "Tea", "unit_price": 2.5}
        )

        assert racer.lookups == 2
        assert resolved.product_id == winner.product_id
        assert _count(session, DimProduct) == 1
        assert manager.resolve_current(DimProduct, "product_sku", "tea").product_id == winner.product_id

    def test_upsert_versions_against_winner_after_unique_clash(self, manager, session, clock) -> None:
        winner = manager.upsert(
            DimProduct, "product_sku", "tea", {"product_name": "Tea", "unit_price": 2.5}
        )
        racer = _StaleFirstRead(session, clock=clock)

        resolved = racer.upsert(
            DimProduct, "product_sku", "tea", {"product_name": "Tea", "unit_price": 3.0}
        )

        current_rows = session.scalars(
            select(DimProduct).where(DimProduct.product_sku == "tea", DimProduct.is_current.is_(True))
        ).all()
        assert [row.product_id for row in current_rows] == [resolved.product_id]
        assert resolved.product_id != winner.product_id
        assert winner.is_current is False
        assert winner.valid_to == resolved.valid_from
        assert _count(session, DimProduct) == 2

    def test_time_dimension_returns_winner_after_unique_clash(self, manager, session) -> None:
        winner = manager.get_or_create_time_dimension(date(2025, 3, 15))
        racer = _StaleFirstRead(session)

        resolved = racer.get_or_create_time_dimension(date(2025, 3, 15))

        assert racer.lookups == 2
        assert resolved.time_id == winner.time_id
        assert _count(session, DimTime) == 1


# ---------------------------------------------------------------------------
# Row resolution
# ---------------------------------------------------------------------------


class TestResolveRow:
    def test_resolves_all_dimensions(self, manager, session) -> None:
        row = TransformedRow(
            transaction_id=1,
            transaction_date="2025-03-15 10:00:00",
            transaction_datetime=datetime(2025, 3, 15, 10, tzinfo=timezone.utc),
            customer_name="Ada Lovelace",
            product="Earl Grey",
            city="Leeds",
            total_items=4,
            total_cost=10.0,
            channel="ONLINE",
        )

        keys = manager.resolve_row(row)

        product = session.get(DimProduct, keys.product_id)
        store = session.get(DimStore, keys.store_id)
        customer = session.get(DimCustomer, keys.customer_id)
        time_row = session.get(DimTime, keys.time_id)
        assert product.product_sku == "earl_grey"
        assert product.unit_price == 2.5
        assert store.store_code == "ONLINE_LEEDS"
        assert store.store_type == "ONLINE"
        assert customer.customer_code == "ada_lovelace"
        assert customer.customer_segment == "New"
        assert time_row.date == date(2025, 3, 15)

    def test_zero_items_gives_zero_unit_price(self, manager, session) -> None:
        row = TransformedRow(
            transaction_id=2,
            transaction_date="2025-03-15 10:00:00",
            transaction_datetime=datetime(2025, 3, 15, 10, tzinfo=timezone.utc),
            customer_name="Ada",
            product="Gift Card",
            city="Leeds",
            total_items=0,
            total_cost=25.0,
            channel="STORE",
        )

        keys = manager.resolve_row(row)

        assert session.get(DimProduct, keys.product_id).unit_price == 0.0

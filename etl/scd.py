"""
etl/scd.py

Slowly Changing Dimension (Type 2) management for the sales star schema.

Product, store and customer dimensions keep one row per version of an
entity. ``upsert`` appends a new version only when a tracked attribute
changes; otherwise the current row is reused untouched. The time dimension
uses the same get-or-create shape keyed by calendar date.

Every write runs inside a SAVEPOINT of the caller's transaction. The current
row is read ``FOR UPDATE`` so concurrent version changes of one key queue on
the row lock, and a first-sighting insert that loses a race against the
partial unique "current" index is rolled back to the savepoint and resolved
against the winner's row.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Mapping, TypeVar

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.base import Base, utcnow
from db.models.dimensions import DimCustomer, DimProduct, DimStore, DimTime
from etl.calendar import DEFAULT_RANGE_END, DEFAULT_RANGE_START, iter_dates, time_attributes
from etl.types import TransformedRow

logger = logging.getLogger(__name__)

D = TypeVar("D", bound=Base)

DEFAULT_CUSTOMER_SEGMENT = "New"

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class DimensionKeys:
    """
    Surrogate ids of the dimension versions a fact row points at.
    """

    product_id: int | None
    store_id: int | None
    customer_id: int | None
    time_id: int | None


def product_sku(product_name: str | None) -> str | None:
    if not product_name or not product_name.strip():
        return None
    return _WHITESPACE_RE.sub("_", product_name.strip().lower())


def store_code(channel: str | None, city: str | None) -> str | None:
    if not city or not city.strip():
        return None
    return _WHITESPACE_RE.sub("_", f"{channel}_{city.strip()}".upper())


def customer_code(customer_name: str | None) -> str | None:
    if not customer_name or not customer_name.strip():
        return None
    return _WHITESPACE_RE.sub("_", customer_name.strip().lower())


class DimensionManager:
    """
    Resolves and versions dimension rows inside the caller's transaction.

    The caller owns commit/rollback; this class only flushes.
    """

    def __init__(
        self,
        session: Session,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._clock = clock

    # ------------------------------------------------------------------
    # SCD2 dimensions
    # ------------------------------------------------------------------

    def resolve_current(self, model: type[D], natural_key: str, value: Any) -> D | None:
        """
        Return the current version for ``value`` or None. Never writes.
        """

        key_column = self._key_column(model, natural_key)
        stmt = select(model).where(key_column == value, model.is_current.is_(True)).limit(1)
        return self._session.scalars(stmt).first()

    def resolve_at(self, model: type[D], natural_key: str, value: Any, at: datetime) -> D | None:
        """
        Return the version of ``value`` whose validity interval covers ``at``.
        """

        key_column = self._key_column(model, natural_key)
        stmt = (
            select(model)
            .where(
                key_column == value,
                model.valid_from <= at,
                (model.valid_to.is_(None)) | (model.valid_to > at),
            )
            .order_by(model.valid_from.desc())
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def upsert(
        self,
        model: type[D],
        natural_key: str,
        value: Any,
        attributes: Mapping[str, Any],
    ) -> D:
        """
        Return the current version of ``value``, creating or versioning it as needed.

        1. No current row: insert one with ``valid_from = now``.
        2. Current row with identical tracked attributes: return it as-is.
        3. Any attribute differs: close the current row (``valid_to = now``)
           and insert a new current row with ``valid_from = now``.
        """

        key_column = self._key_column(model, natural_key)
        tracked = {name: attr for name, attr in attributes.items() if name != natural_key}

        try:
            return self._upsert_once(model, key_column, natural_key, value, tracked)
        except IntegrityError:
            # Another transaction inserted the first current version; its row
            # is visible now, so the second pass compares against it.
            logger.info(
                "Concurrent current version detected table=%s key=%r; re-reading",
                model.__tablename__,
                value,
            )
            return self._upsert_once(model, key_column, natural_key, value, tracked)

    def _upsert_once(
        self,
        model: type[D],
        key_column: Any,
        natural_key: str,
        value: Any,
        tracked: Mapping[str, Any],
    ) -> D:
        savepoint = self._session.begin_nested()
        try:
            current = self._current_for_update(model, key_column, value)

            if current is not None and not self._has_changed(current, tracked):
                savepoint.commit()
                return current

            now = self._clock()
            if current is not None:
                current.is_current = False
                current.valid_to = now
                self._session.flush()

            version = model(**{natural_key: value}, **tracked)
            version.is_current = True
            version.valid_from = now
            version.valid_to = None
            self._session.add(version)
            self._session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            raise

        if current is None:
            logger.debug("Created dimension row table=%s key=%r", model.__tablename__, value)
        else:
            logger.debug("Versioned dimension row table=%s key=%r", model.__tablename__, value)
        return version

    def _current_for_update(self, model: type[D], key_column: Any, value: Any) -> D | None:
        stmt = (
            select(model)
            .where(key_column == value, model.is_current.is_(True))
            .limit(1)
            .with_for_update()
        )
        return self._session.scalars(stmt).first()

    # ------------------------------------------------------------------
    # Time dimension
    # ------------------------------------------------------------------

    def get_time_dimension(self, day: date) -> DimTime | None:
        return self._session.scalars(select(DimTime).where(DimTime.date == day).limit(1)).first()

    def get_or_create_time_dimension(self, day: date | datetime) -> DimTime:
        """
        Look up the dim_time row for a calendar date, creating it when the
        precomputed range does not cover it.
        """

        if isinstance(day, datetime):
            day = day.astimezone(timezone.utc).date() if day.tzinfo else day.date()

        existing = self.get_time_dimension(day)
        if existing is not None:
            return existing

        savepoint = self._session.begin_nested()
        try:
            row = DimTime(**time_attributes(day))
            self._session.add(row)
            self._session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            winner = self.get_time_dimension(day)
            if winner is None:
                raise
            return winner

        logger.debug("Created time dimension row date=%s", day.isoformat())
        return row

    # ------------------------------------------------------------------
    # Fact-row resolution
    # ------------------------------------------------------------------

    def resolve_row(self, row: TransformedRow) -> DimensionKeys:
        """
        Upsert the product, store, customer and time dimensions for one row.

        A dimension whose natural key cannot be derived resolves to None.
        """

        product = None
        sku = product_sku(row.product)
        if sku is not None:
            unit_price = round(row.total_cost / row.total_items, 2) if row.total_items > 0 else 0.0
            product = self.upsert(
                DimProduct,
                "product_sku",
                sku,
                {"product_name": row.product, "unit_price": unit_price},
            )

        store = None
        code = store_code(row.channel, row.city)
        if code is not None:
            store = self.upsert(
                DimStore,
                "store_code",
                code,
                {
                    "store_name": f"{row.channel} - {row.city}",
                    "city": row.city,
                    "store_type": row.channel,
                },
            )

        customer = None
        code = customer_code(row.customer_name)
        if code is not None:
            customer = self.upsert(
                DimCustomer,
                "customer_code",
                code,
                {
                    "customer_name": row.customer_name,
                    "city": row.city,
                    "customer_segment": DEFAULT_CUSTOMER_SEGMENT,
                },
            )

        time_row = self.get_or_create_time_dimension(row.transaction_datetime)

        return DimensionKeys(
            product_id=product.product_id if product is not None else None,
            store_id=store.store_id if store is not None else None,
            customer_id=customer.customer_id if customer is not None else None,
            time_id=time_row.time_id if time_row is not None else None,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _key_column(model: type[Base], natural_key: str) -> Any:
        if natural_key not in model.__table__.columns:
            raise ValueError(f"{model.__tablename__} has no column {natural_key!r}.")
        return getattr(model, natural_key)

    @staticmethod
    def _has_changed(current: Base, attributes: Mapping[str, Any]) -> bool:
        for name, new_value in attributes.items():
            stored = getattr(current, name)
            if isinstance(stored, float) or isinstance(new_value, float):
                if stored is None or new_value is None:
                    if stored is not new_value:
                        return True
                    continue
                if round(float(stored), 2) != round(float(new_value), 2):
                    return True
                continue
            if stored != new_value:
                return True
        return False


def seed_time_dimension(
    session: Session,
    start: date = DEFAULT_RANGE_START,
    end: date = DEFAULT_RANGE_END,
) -> int:
    """
    Insert dim_time rows for every date in ``[start, end]`` not already present.

    Returns the number of rows inserted; re-running over a seeded range is a no-op.
    """

    existing = set(
        session.scalars(select(DimTime.date).where(DimTime.date >= start, DimTime.date <= end))
    )
    payloads = [time_attributes(day) for day in iter_dates(start, end) if day not in existing]
    if payloads:
        session.execute(insert(DimTime), payloads)
    logger.info(
        "Seeded time dimension start=%s end=%s inserted=%d",
        start.isoformat(),
        end.isoformat(),
        len(payloads),
    )
    return len(payloads)

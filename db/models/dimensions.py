"""
db/models/dimensions.py

Star-schema dimension tables.

Product, store and customer dimensions are SCD Type 2: one row per version,
recognised across versions by a natural key. The partial unique index on
``(<natural key>) WHERE is_current`` guarantees a single current version per
key even when two loads race on the same entity.

The time dimension is a plain lookup table keyed by calendar date.
"""

from __future__ import annotations

import datetime as dt

from sqlalchemy import Boolean, Date, Index, Integer, Numeric, SmallInteger, String, text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, BigIntPK, CreatedAtMixin, SCD2Mixin

MONEY = Numeric(12, 2, asdecimal=False)


def _current_version_index(table_name: str, key_column: str) -> Index:
    return Index(
        f"uq_{table_name}_{key_column}_current",
        key_column,
        unique=True,
        postgresql_where=text("is_current"),
        sqlite_where=text("is_current = 1"),
    )


class DimProduct(Base, SCD2Mixin, CreatedAtMixin):
    __tablename__ = "dim_products"

    product_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    product_sku: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Normalized product name; natural key",
    )
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(120), nullable=True)
    subcategory: Mapped[str | None] = mapped_column(String(120), nullable=True)
    brand: Mapped[str | None] = mapped_column(String(120), nullable=True)
    unit_price: Mapped[float | None] = mapped_column(MONEY, nullable=True)
    cost_price: Mapped[float | None] = mapped_column(MONEY, nullable=True)

    __table_args__ = (
        Index("ix_dim_products_product_sku", "product_sku"),
        _current_version_index("dim_products", "product_sku"),
    )


class DimStore(Base, SCD2Mixin, CreatedAtMixin):
    __tablename__ = "dim_stores"

    store_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    store_code: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="CHANNEL_CITY code; natural key",
    )
    store_name: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    state: Mapped[str | None] = mapped_column(String(120), nullable=True)
    region: Mapped[str | None] = mapped_column(String(120), nullable=True)
    store_type: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        comment="STORE, WAREHOUSE, ONLINE",
    )

    __table_args__ = (
        Index("ix_dim_stores_store_code", "store_code"),
        _current_version_index("dim_stores", "store_code"),
    )


class DimCustomer(Base, SCD2Mixin, CreatedAtMixin):
    __tablename__ = "dim_customers"

    customer_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    customer_code: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Normalized customer name; natural key",
    )
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    state: Mapped[str | None] = mapped_column(String(120), nullable=True)
    region: Mapped[str | None] = mapped_column(String(120), nullable=True)
    customer_segment: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_dim_customers_customer_code", "customer_code"),
        _current_version_index("dim_customers", "customer_code"),
    )


class DimTime(Base):
    __tablename__ = "dim_time"

    time_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, unique=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    quarter: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    month: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    month_name: Mapped[str] = mapped_column(String(16), nullable=False)
    week: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    day: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    day_name: Mapped[str] = mapped_column(String(16), nullable=False)
    is_weekend: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    season: Mapped[str] = mapped_column(String(16), nullable=False)
    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    fiscal_quarter: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    __table_args__ = (
        Index("ix_dim_time_year_month", "year", "month"),
    )

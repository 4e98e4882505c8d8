"""
db/models/fact_sales.py

Central sales fact table and the rejection store for rows that never reach it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, BigIntPK, CreatedAtMixin, JSONDocument

MONEY = Numeric(12, 2, asdecimal=False)


class FactSales(Base, CreatedAtMixin):
    __tablename__ = "fact_sales"

    sale_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    transaction_id: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        unique=True,
        comment="Source transaction number; duplicate loads are rejected on this key",
    )
    transaction_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    product_id: Mapped[int | None] = mapped_column(
        ForeignKey("dim_products.product_id"),
        nullable=True,
    )
    store_id: Mapped[int | None] = mapped_column(
        ForeignKey("dim_stores.store_id"),
        nullable=True,
    )
    customer_id: Mapped[int | None] = mapped_column(
        ForeignKey("dim_customers.customer_id"),
        nullable=True,
    )
    time_id: Mapped[int | None] = mapped_column(
        ForeignKey("dim_time.time_id"),
        nullable=True,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[float] = mapped_column(MONEY, nullable=False)
    total_amount: Mapped[float] = mapped_column(MONEY, nullable=False)
    discount_amount: Mapped[float] = mapped_column(MONEY, nullable=False, default=0)
    net_amount: Mapped[float] = mapped_column(MONEY, nullable=False)
    payment_method: Mapped[str | None] = mapped_column(String(64), nullable=True)
    channel: Mapped[str | None] = mapped_column(String(32), nullable=True)
    pipeline_run_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    __table_args__ = (
        Index("ix_fact_sales_transaction_date", "transaction_date"),
        Index("ix_fact_sales_product_id", "product_id"),
        Index("ix_fact_sales_store_id", "store_id"),
        Index("ix_fact_sales_customer_id", "customer_id"),
        Index("ix_fact_sales_time_id", "time_id"),
        Index("ix_fact_sales_channel", "channel"),
    )


class RejectedSale(Base, CreatedAtMixin):
    """
    One rejected source row, stored as received.

    Values are kept as raw text so that rows rejected for malformed dates or
    numbers remain inspectable.
    """

    __tablename__ = "rejected_sales"

    rejection_id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    transaction_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    transaction_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    product: Mapped[str | None] = mapped_column(String(255), nullable=True)
    total_items: Mapped[str | None] = mapped_column(String(64), nullable=True)
    total_cost: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(64), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    discount_percentage: Mapped[str | None] = mapped_column(String(64), nullable=True)
    season: Mapped[str | None] = mapped_column(String(32), nullable=True)
    channel: Mapped[str | None] = mapped_column(String(32), nullable=True)
    rejection_reason: Mapped[str] = mapped_column(Text, nullable=False)
    row_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    extra_fields: Mapped[dict[str, Any] | None] = mapped_column(
        JSONDocument,
        nullable=True,
        comment="Source columns with no canonical mapping",
    )
    pipeline_run_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    __table_args__ = (
        Index("ix_rejected_sales_pipeline_run_id", "pipeline_run_id"),
        Index("ix_rejected_sales_transaction_id", "transaction_id"),
    )

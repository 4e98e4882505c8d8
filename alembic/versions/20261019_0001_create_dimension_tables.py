"""create dimension tables and seed dim_time

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

from etl.calendar import DEFAULT_RANGE_END, DEFAULT_RANGE_START, iter_dates, time_attributes

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _scd2_columns() -> list[sa.Column]:
    return [
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("valid_to", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "dim_products",
        sa.Column("product_id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("product_sku", sa.String(length=255), nullable=False, comment="Normalized product name; natural key"),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("subcategory", sa.String(length=120), nullable=True),
        sa.Column("brand", sa.String(length=120), nullable=True),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("cost_price", sa.Numeric(12, 2), nullable=True),
        *_scd2_columns(),
        sa.PrimaryKeyConstraint("product_id"),
    )
    op.create_index("ix_dim_products_product_sku", "dim_products", ["product_sku"], unique=False)
    op.create_index(
        "uq_dim_products_product_sku_current",
        "dim_products",
        ["product_sku"],
        unique=True,
        postgresql_where=sa.text("is_current"),
    )

    op.create_table(
        "dim_stores",
        sa.Column("store_id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("store_code", sa.String(length=255), nullable=False, comment="CHANNEL_CITY code; natural key"),
        sa.Column("store_name", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("state", sa.String(length=120), nullable=True),
        sa.Column("region", sa.String(length=120), nullable=True),
        sa.Column("store_type", sa.String(length=32), nullable=True, comment="STORE, WAREHOUSE, ONLINE"),
        *_scd2_columns(),
        sa.PrimaryKeyConstraint("store_id"),
    )
    op.create_index("ix_dim_stores_store_code", "dim_stores", ["store_code"], unique=False)
    op.create_index(
        "uq_dim_stores_store_code_current",
        "dim_stores",
        ["store_code"],
        unique=True,
        postgresql_where=sa.text("is_current"),
    )

    op.create_table(
        "dim_customers",
        sa.Column("customer_id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column(
            "customer_code",
            sa.String(length=255),
            nullable=False,
            comment="Normalized customer name; natural key",
        ),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("state", sa.String(length=120), nullable=True),
        sa.Column("region", sa.String(length=120), nullable=True),
        sa.Column("customer_segment", sa.String(length=64), nullable=True),
        *_scd2_columns(),
        sa.PrimaryKeyConstraint("customer_id"),
    )
    op.create_index("ix_dim_customers_customer_code", "dim_customers", ["customer_code"], unique=False)
    op.create_index(
        "uq_dim_customers_customer_code_current",
        "dim_customers",
        ["customer_code"],
        unique=True,
        postgresql_where=sa.text("is_current"),
    )

    dim_time = op.create_table(
        "dim_time",
        sa.Column("time_id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("quarter", sa.SmallInteger(), nullable=False),
        sa.Column("month", sa.SmallInteger(), nullable=False),
        sa.Column("month_name", sa.String(length=16), nullable=False),
        sa.Column("week", sa.SmallInteger(), nullable=False),
        sa.Column("day", sa.SmallInteger(), nullable=False),
        sa.Column("day_name", sa.String(length=16), nullable=False),
        sa.Column("is_weekend", sa.Boolean(), nullable=False),
        sa.Column("is_holiday", sa.Boolean(), nullable=False),
        sa.Column("season", sa.String(length=16), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("fiscal_quarter", sa.SmallInteger(), nullable=False),
        sa.PrimaryKeyConstraint("time_id"),
        sa.UniqueConstraint("date", name="uq_dim_time_date"),
    )
    op.create_index("ix_dim_time_year_month", "dim_time", ["year", "month"], unique=False)

    # Precomputed calendar; dates outside the range are created on demand by loads.
    op.bulk_insert(
        dim_time,
        [time_attributes(day) for day in iter_dates(DEFAULT_RANGE_START, DEFAULT_RANGE_END)],
    )


def downgrade() -> None:
    op.drop_index("ix_dim_time_year_month", table_name="dim_time")
    op.drop_table("dim_time")
    op.drop_index("uq_dim_customers_customer_code_current", table_name="dim_customers")
    op.drop_index("ix_dim_customers_customer_code", table_name="dim_customers")
    op.drop_table("dim_customers")
    op.drop_index("uq_dim_stores_store_code_current", table_name="dim_stores")
    op.drop_index("ix_dim_stores_store_code", table_name="dim_stores")
    op.drop_table("dim_stores")
    op.drop_index("uq_dim_products_product_sku_current", table_name="dim_products")
    op.drop_index("ix_dim_products_product_sku", table_name="dim_products")
    op.drop_table("dim_products")

"""create fact_sales and rejected_sales tables

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 09:15:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "fact_sales",
        sa.Column("sale_id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column(
            "transaction_id",
            sa.BigInteger(),
            nullable=False,
            comment="Source transaction number; duplicate loads are rejected on this key",
        ),
        sa.Column("transaction_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("product_id", sa.BigInteger(), nullable=True),
        sa.Column("store_id", sa.BigInteger(), nullable=True),
        sa.Column("customer_id", sa.BigInteger(), nullable=True),
        sa.Column("time_id", sa.BigInteger(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("net_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_method", sa.String(length=64), nullable=True),
        sa.Column("channel", sa.String(length=32), nullable=True),
        sa.Column("pipeline_run_id", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["product_id"], ["dim_products.product_id"]),
        sa.ForeignKeyConstraint(["store_id"], ["dim_stores.store_id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["dim_customers.customer_id"]),
        sa.ForeignKeyConstraint(["time_id"], ["dim_time.time_id"]),
        sa.PrimaryKeyConstraint("sale_id"),
        sa.UniqueConstraint("transaction_id", name="uq_fact_sales_transaction_id"),
    )
    op.create_index("ix_fact_sales_transaction_date", "fact_sales", ["transaction_date"], unique=False)
    op.create_index("ix_fact_sales_product_id", "fact_sales", ["product_id"], unique=False)
    op.create_index("ix_fact_sales_store_id", "fact_sales", ["store_id"], unique=False)
    op.create_index("ix_fact_sales_customer_id", "fact_sales", ["customer_id"], unique=False)
    op.create_index("ix_fact_sales_time_id", "fact_sales", ["time_id"], unique=False)
    op.create_index("ix_fact_sales_channel", "fact_sales", ["channel"], unique=False)

    op.create_table(
        "rejected_sales",
        sa.Column("rejection_id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("transaction_id", sa.String(length=64), nullable=True),
        sa.Column("transaction_date", sa.String(length=64), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("product", sa.String(length=255), nullable=True),
        sa.Column("total_items", sa.String(length=64), nullable=True),
        sa.Column("total_cost", sa.String(length=64), nullable=True),
        sa.Column("payment_method", sa.String(length=64), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("discount_percentage", sa.String(length=64), nullable=True),
        sa.Column("season", sa.String(length=32), nullable=True),
        sa.Column("channel", sa.String(length=32), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=False),
        sa.Column("row_number", sa.Integer(), nullable=True),
        sa.Column(
            "extra_fields",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Source columns with no canonical mapping",
        ),
        sa.Column("pipeline_run_id", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("rejection_id"),
    )
    op.create_index("ix_rejected_sales_pipeline_run_id", "rejected_sales", ["pipeline_run_id"], unique=False)
    op.create_index("ix_rejected_sales_transaction_id", "rejected_sales", ["transaction_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_rejected_sales_transaction_id", table_name="rejected_sales")
    op.drop_index("ix_rejected_sales_pipeline_run_id", table_name="rejected_sales")
    op.drop_table("rejected_sales")
    op.drop_index("ix_fact_sales_channel", table_name="fact_sales")
    op.drop_index("ix_fact_sales_time_id", table_name="fact_sales")
    op.drop_index("ix_fact_sales_customer_id", table_name="fact_sales")
    op.drop_index("ix_fact_sales_store_id", table_name="fact_sales")
    op.drop_index("ix_fact_sales_product_id", table_name="fact_sales")
    op.drop_index("ix_fact_sales_transaction_date", table_name="fact_sales")
    op.drop_table("fact_sales")

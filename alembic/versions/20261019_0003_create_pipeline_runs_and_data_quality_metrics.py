"""create pipeline_runs and data_quality_metrics tables

Revision ID: 20261019_0003
Revises: 20261019_0002
Create Date: 2026-10-19 09:30:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0003"
down_revision = "20261019_0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "pipeline_runs",
        sa.Column("run_id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("pipeline_name", sa.String(length=100), nullable=False),
        sa.Column("run_type", sa.String(length=50), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, comment="RUNNING, SUCCESS, FAILED"),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rows_processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rows_succeeded", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rows_failed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Filename, channel, batch and rejection counts",
        ),
        sa.PrimaryKeyConstraint("run_id"),
    )
    op.create_index("ix_pipeline_runs_pipeline_name", "pipeline_runs", ["pipeline_name"], unique=False)
    op.create_index("ix_pipeline_runs_status", "pipeline_runs", ["status"], unique=False)
    op.create_index("ix_pipeline_runs_started_at", "pipeline_runs", ["started_at"], unique=False)

    op.create_table(
        "data_quality_metrics",
        sa.Column("metric_id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("check_date", sa.Date(), nullable=False),
        sa.Column(
            "check_type",
            sa.String(length=32),
            nullable=False,
            comment="completeness, validity, consistency, accuracy",
        ),
        sa.Column("table_name", sa.String(length=64), nullable=False),
        sa.Column("metric_name", sa.String(length=64), nullable=False),
        sa.Column("metric_value", sa.Float(), nullable=False),
        sa.Column("threshold", sa.Float(), nullable=False),
        sa.Column("status", sa.String(length=8), nullable=False),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("metric_id"),
    )
    op.create_index(
        "ix_data_quality_metrics_check_date_type",
        "data_quality_metrics",
        ["check_date", "check_type"],
        unique=False,
    )
    op.create_index("ix_data_quality_metrics_status", "data_quality_metrics", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_data_quality_metrics_status", table_name="data_quality_metrics")
    op.drop_index("ix_data_quality_metrics_check_date_type", table_name="data_quality_metrics")
    op.drop_table("data_quality_metrics")
    op.drop_index("ix_pipeline_runs_started_at", table_name="pipeline_runs")
    op.drop_index("ix_pipeline_runs_status", table_name="pipeline_runs")
    op.drop_index("ix_pipeline_runs_pipeline_name", table_name="pipeline_runs")
    op.drop_table("pipeline_runs")

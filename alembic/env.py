"""
alembic/env.py

Migration environment for the sales warehouse schema: the time, product,
store and customer dimensions, fact_sales with its rejected_sales side
table, and the pipeline_runs / data_quality_metrics telemetry tables.

The target database comes from ``-x db_url=...`` when given, then from
``sqlalchemy.url`` in alembic.ini, and otherwise from the same environment
variables the ETL pipeline and API use (see ``db.config``).
"""

from __future__ import annotations

from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import engine_from_config, pool

from db.base import Base
from db.config import load_env_files, normalize_postgres_url, resolve_database_url
from db.models import (  # noqa: F401  registers warehouse tables on Base.metadata
    DataQualityMetric,
    DimCustomer,
    DimProduct,
    DimStore,
    DimTime,
    FactSales,
    PipelineRun,
    RejectedSale,
)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Applied to both offline and online runs.
_COMPARE_OPTIONS: dict[str, Any] = {
    "compare_type": True,
    "compare_server_default": True,
}


def _warehouse_url() -> str:
    load_env_files()

    override = (context.get_x_argument(as_dictionary=True).get("db_url") or "").strip()
    ini_url = (config.get_main_option("sqlalchemy.url") or "").strip()
    url = normalize_postgres_url(override or ini_url) if (override or ini_url) else resolve_database_url()

    # Partial unique indexes and JSONB columns in the migrations are PostgreSQL DDL.
    if not url.startswith("postgresql"):
        raise RuntimeError(f"Warehouse migrations need a PostgreSQL URL, got: {url.split(':', 1)[0]}")
    return url


def run_migrations_offline() -> None:
    context.configure(
        url=_warehouse_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_COMPARE_OPTIONS,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _warehouse_url()
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, **_COMPARE_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

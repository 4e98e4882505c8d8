"""
tests/conftest.py

Shared fixtures: an in-memory SQLite warehouse with every table created,
a session factory bound to it, and caller identities per role.

pysqlite's own transaction handling is switched off so that SAVEPOINTs
behave the way they do on PostgreSQL.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  registers every model on Base.metadata
from db.base import Base
from db.models.pipeline_run import PipelineRun
from pipelines.base import Identity, PipelineConfig


def _sqlite_engine() -> Engine:
    engine = create_engine(
        "sqlite+pysqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, _record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    return engine


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = _sqlite_engine()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture()
def session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def unprovisioned_session_factory() -> Iterator[sessionmaker[Session]]:
    """Session factory for a warehouse whose pipeline_runs table does not exist yet."""
    engine = _sqlite_engine()
    Base.metadata.create_all(
        engine,
        tables=[
            table
            for table in Base.metadata.sorted_tables
            if table.name != PipelineRun.__tablename__
        ],
    )
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


# ---------------------------------------------------------------------------
# Identities and config
# ---------------------------------------------------------------------------


@pytest.fixture()
def operator() -> Identity:
    return Identity.for_role("operator:test", "operator")


@pytest.fixture()
def analyst() -> Identity:
    return Identity.for_role("analyst:test", "analyst")


@pytest.fixture()
def admin() -> Identity:
    return Identity.for_role("admin:test", "admin")


@pytest.fixture()
def pipeline_config() -> PipelineConfig:
    """Default pipeline config without retry back-off delays."""
    return PipelineConfig(retry_delay_seconds=0.0, log_rejections=False)

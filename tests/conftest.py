"""
tests/conftest.py

Shared fixtures: a controllable clock, in-memory stores and an SQLite engine
with working SAVEPOINT support.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.domain.bulk_import import ProcessCandidate
from app.repositories.in_memory_store import InMemoryRecordStore
from app.services.batch_registry import InMemoryBatchRegistry
from app.services.bulk_import_service import BulkImportService
from db.base import Base
from db.models import Process, Product  # noqa: F401  registers tables on Base.metadata


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


def make_sqlite_engine() -> Engine:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT semantics.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record) -> None:  # noqa: ANN001
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn) -> None:  # noqa: ANN001
        conn.exec_driver_sql("BEGIN")

    return engine


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def registry(clock: FakeClock) -> InMemoryBatchRegistry:
    return InMemoryBatchRegistry(ttl_seconds=60, tombstone_retention_seconds=300, clock=clock)


@pytest.fixture()
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture()
def seeded_store() -> InMemoryRecordStore:
    return InMemoryRecordStore(
        [ProcessCandidate(row_number=0, key="EXIST", name="Existing", cost=Decimal("1.00"))]
    )


@pytest.fixture()
def service(registry: InMemoryBatchRegistry) -> BulkImportService:
    return BulkImportService(
        registry=registry,
        max_bytes=64 * 1024,
        max_rows=1000,
        preview_limit=50,
    )


@pytest.fixture()
def sqlite_engine() -> Iterator[Engine]:
    engine = make_sqlite_engine()
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def session_factory(sqlite_engine: Engine) -> sessionmaker:
    return sessionmaker(bind=sqlite_engine, class_=Session, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()

"""
db/session.py

SQLAlchemy engine and session factory.
"""

from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import get_database_pool_settings, resolve_database_url


def create_db_engine(database_url: str | None = None) -> Engine:
    url = database_url or resolve_database_url()
    if not url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    pool = get_database_pool_settings()
    return create_engine(
        url,
        echo=pool.echo,
        pool_pre_ping=True,
        pool_recycle=pool.pool_recycle,
        pool_size=pool.pool_size,
        max_overflow=pool.max_overflow,
    )


_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def get_engine() -> Engine:
    """Return the shared engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def _get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory


def SessionLocal() -> Session:
    """Lazy session factory. Drop-in replacement for a sessionmaker() call."""
    return _get_session_factory()()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Yield a fresh session and ensure it is closed on exit."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

"""SQLAlchemy model and session helpers backing :class:`~finance_tracker.storage.SqlStore`.

The SQL backend mirrors the key/value shape of the JSON-file store: one
``ft_storage`` row per document (records, settings) holding the JSON payload.
The schema is created on first use with ``metadata.create_all``.

Usage
-----
engine = make_engine("sqlite+pysqlite:///finance.db")
with session_scope(engine) as s:
    s.get(FtStorageEntry, "finance_tracker_data")
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker


class Base(DeclarativeBase):
    pass


class FtStorageEntry(Base):
    __tablename__ = "ft_storage"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


def make_engine(database_url: str) -> Engine:
    """Create an engine for ``database_url`` and ensure the schema exists."""

    engine = create_engine(database_url, pool_pre_ping=True)
    Base.metadata.create_all(bind=engine)
    return engine


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = sessionmaker(bind=engine, expire_on_commit=False, class_=Session)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = ["Base", "FtStorageEntry", "make_engine", "session_scope"]

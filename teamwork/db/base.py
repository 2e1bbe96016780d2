"""
Teamwork Database Base — SQLAlchemy declarative base, key-value table, engine factory.

Provides:
- Base: SQLAlchemy declarative base
- KeyValueEntry: one row per storage key (a whole serialized collection)
- create_storage_engine: engine factory handling file and in-memory SQLite
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for Teamwork tables."""
    pass


class KeyValueEntry(Base):
    """A single persisted key. Values are whole JSON collection snapshots."""

    __tablename__ = "kv_entries"

    key = Column(String(200), primary_key=True)
    value = Column(Text, nullable=False)
    size_bytes = Column(Integer, nullable=False, default=0)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<KeyValueEntry key='{self.key}' size={self.size_bytes}>"


def create_storage_engine(url: str, echo: bool = False, **kwargs: Any) -> Engine:
    """
    Create an engine for the key-value table and make sure the table exists.

    ``sqlite://`` (no path) is an in-memory database shared through a static
    pool so that every session sees the same data. File databases get their
    parent directory created.
    """
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        database = parsed.database
        if not database or database == ":memory:":
            kwargs.setdefault("poolclass", StaticPool)
            kwargs.setdefault("connect_args", {"check_same_thread": False})
        else:
            Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, echo=echo, **kwargs)
    Base.metadata.create_all(engine)
    return engine

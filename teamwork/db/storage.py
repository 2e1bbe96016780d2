"""
Teamwork Storage Backends — Quota-bounded key-value persistence.

A backend stores opaque text values under string keys, the way a browser's
local storage does. The Store layers typed collections on top.

Quota:
    Every set_item computes the total UTF-8 size of all values with the new
    value in place. Exceeding quota_bytes raises TeamworkQuotaExceeded and
    the previous value stays untouched.

Backends:
    SQLStorage   — SQLAlchemy (sqlite file or in-memory); one transaction per write
    RedisStorage — see teamwork.db.redis_storage
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from teamwork.db.base import KeyValueEntry, create_storage_engine
from teamwork.engine.errors import TeamworkQuotaExceeded, TeamworkStorageError

logger = logging.getLogger("teamwork.db.storage")

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


def value_size(value: str) -> int:
    """Size of a stored value in bytes."""
    return len(value.encode("utf-8"))


class StorageBackend(ABC):
    """Key-value persistence contract shared by all backends."""

    def __init__(self, quota_bytes: int = DEFAULT_QUOTA_BYTES):
        self._quota_bytes = quota_bytes

    @property
    def quota_bytes(self) -> int:
        return self._quota_bytes

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Replace the value for key. Raises TeamworkQuotaExceeded when full."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove a key. No-op if absent."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every key owned by this backend."""

    @abstractmethod
    def keys(self) -> List[str]:
        """All stored keys."""

    @abstractmethod
    def usage_bytes(self) -> int:
        """Total bytes currently stored."""

    def _check_quota(self, key: str, new_total: int) -> None:
        if new_total > self._quota_bytes:
            logger.warning(
                f"Storage quota exceeded writing '{key}': "
                f"{new_total} > {self._quota_bytes} bytes"
            )
            raise TeamworkQuotaExceeded(
                "Storage is full. Delete existing files to free up space.",
                key=key,
                required_bytes=new_total,
                quota_bytes=self._quota_bytes,
            )

    def close(self) -> None:
        """Release backend resources."""
        return


class SQLStorage(StorageBackend):
    """
    SQLAlchemy-backed storage.

    Each write runs in its own transaction: quota check and upsert commit
    together or roll back together.
    """

    def __init__(
        self,
        url: str = "sqlite://",
        quota_bytes: int = DEFAULT_QUOTA_BYTES,
        engine: Optional[Engine] = None,
    ):
        super().__init__(quota_bytes=quota_bytes)
        self._engine = engine or create_storage_engine(url)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        logger.info(f"SQL storage ready: {self._engine.url!r}")

    @property
    def engine(self) -> Engine:
        return self._engine

    def get_item(self, key: str) -> Optional[str]:
        try:
            with self._session_factory() as session:
                entry = session.get(KeyValueEntry, key)
                return entry.value if entry is not None else None
        except SQLAlchemyError as e:
            raise TeamworkStorageError(f"Could not read '{key}': {e}", key=key) from e

    def set_item(self, key: str, value: str) -> None:
        size = value_size(value)
        try:
            with self._session_factory() as session:
                with session.begin():
                    others = session.execute(
                        select(func.coalesce(func.sum(KeyValueEntry.size_bytes), 0))
                        .where(KeyValueEntry.key != key)
                    ).scalar_one()
                    self._check_quota(key, int(others) + size)

                    entry = session.get(KeyValueEntry, key)
                    if entry is None:
                        session.add(KeyValueEntry(key=key, value=value, size_bytes=size))
                    else:
                        entry.value = value
                        entry.size_bytes = size
        except SQLAlchemyError as e:
            raise TeamworkStorageError(f"Could not write '{key}': {e}", key=key) from e
        logger.debug(f"Stored '{key}' ({size} bytes)")

    def remove_item(self, key: str) -> None:
        try:
            with self._session_factory() as session:
                with session.begin():
                    session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
        except SQLAlchemyError as e:
            raise TeamworkStorageError(f"Could not remove '{key}': {e}", key=key) from e

    def clear(self) -> None:
        try:
            with self._session_factory() as session:
                with session.begin():
                    session.execute(delete(KeyValueEntry))
        except SQLAlchemyError as e:
            raise TeamworkStorageError(f"Could not clear storage: {e}") from e

    def keys(self) -> List[str]:
        with self._session_factory() as session:
            return list(session.execute(select(KeyValueEntry.key)).scalars())

    def usage_bytes(self) -> int:
        with self._session_factory() as session:
            total = session.execute(
                select(func.coalesce(func.sum(KeyValueEntry.size_bytes), 0))
            ).scalar_one()
            return int(total)

    def close(self) -> None:
        self._engine.dispose()

    def __repr__(self) -> str:
        return f"<SQLStorage url='{self._engine.url}' quota={self._quota_bytes}>"


def create_storage(
    url: str,
    quota_bytes: int = DEFAULT_QUOTA_BYTES,
    key_prefix: str = "teamwork:",
) -> StorageBackend:
    """Pick a backend from the URL scheme (sqlite:// or redis://)."""
    if url.startswith(("redis://", "rediss://")):
        from teamwork.db.redis_storage import RedisStorage

        storage = RedisStorage(redis_url=url, prefix=key_prefix, quota_bytes=quota_bytes)
        storage.connect()
        return storage
    return SQLStorage(url=url, quota_bytes=quota_bytes)

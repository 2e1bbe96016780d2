"""
Teamwork Redis Storage — Key-value persistence on a Redis database.

Keys are namespaced with a prefix (default ``teamwork:``) so several teams can
share one Redis DB. Unlike a cache, failures here are errors: a lost write
would silently drop a team's data, so every Redis failure is raised as
TeamworkStorageError.

Quota:
    Tracked client-side with STRLEN over the prefixed keys. A Redis server
    refusing writes with an OOM error is reported as TeamworkQuotaExceeded too.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from teamwork.db.storage import DEFAULT_QUOTA_BYTES, StorageBackend, value_size
from teamwork.engine.errors import TeamworkQuotaExceeded, TeamworkStorageError

logger = logging.getLogger("teamwork.db.redis_storage")


class RedisStorage(StorageBackend):
    """Redis-backed storage with prefix namespacing and a byte quota."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        prefix: str = "teamwork:",
        quota_bytes: int = DEFAULT_QUOTA_BYTES,
        client: Any = None,
    ):
        super().__init__(quota_bytes=quota_bytes)
        self._redis_url = redis_url
        self._prefix = prefix
        self._client = client

    def connect(self) -> None:
        """Initialize the Redis connection and verify it answers."""
        import redis

        try:
            self._client = redis.Redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
            )
            self._client.ping()
        except redis.RedisError as e:
            raise TeamworkStorageError(
                f"Redis connection failed ({self._redis_url}): {e}",
                url=self._redis_url,
            ) from e
        logger.info(f"Redis storage connected: {self._redis_url} ({self._prefix})")

    def _make_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _strip_key(self, full_key: str) -> str:
        return full_key[len(self._prefix):]

    @property
    def client(self) -> Any:
        if self._client is None:
            raise TeamworkStorageError("Redis storage is not connected")
        return self._client

    def get_item(self, key: str) -> Optional[str]:
        import redis

        try:
            return self.client.get(self._make_key(key))
        except redis.RedisError as e:
            raise TeamworkStorageError(f"Redis GET failed for '{key}': {e}", key=key) from e

    def set_item(self, key: str, value: str) -> None:
        import redis

        full_key = self._make_key(key)
        size = value_size(value)
        try:
            others = sum(
                int(self.client.strlen(k))
                for k in self.client.scan_iter(match=f"{self._prefix}*", count=1000)
                if k != full_key
            )
        except redis.RedisError as e:
            raise TeamworkStorageError(f"Redis usage check failed: {e}", key=key) from e

        self._check_quota(key, others + size)

        try:
            self.client.set(full_key, value)
        except redis.ResponseError as e:
            if "OOM" in str(e):
                logger.warning(f"Redis refused write for '{key}': {e}")
                raise TeamworkQuotaExceeded(
                    "Storage is full. Delete existing files to free up space.",
                    key=key,
                    required_bytes=others + size,
                    quota_bytes=self._quota_bytes,
                ) from e
            raise TeamworkStorageError(f"Redis SET failed for '{key}': {e}", key=key) from e
        except redis.RedisError as e:
            raise TeamworkStorageError(f"Redis SET failed for '{key}': {e}", key=key) from e

    def remove_item(self, key: str) -> None:
        import redis

        try:
            self.client.delete(self._make_key(key))
        except redis.RedisError as e:
            raise TeamworkStorageError(f"Redis DEL failed for '{key}': {e}", key=key) from e

    def clear(self) -> None:
        import redis

        try:
            keys = list(self.client.scan_iter(match=f"{self._prefix}*", count=1000))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError as e:
            raise TeamworkStorageError(f"Redis clear failed: {e}") from e

    def keys(self) -> List[str]:
        return [
            self._strip_key(k)
            for k in self.client.scan_iter(match=f"{self._prefix}*", count=1000)
        ]

    def usage_bytes(self) -> int:
        return sum(
            int(self.client.strlen(k))
            for k in self.client.scan_iter(match=f"{self._prefix}*", count=1000)
        )

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __repr__(self) -> str:
        return f"<RedisStorage url='{self._redis_url}' prefix='{self._prefix}'>"

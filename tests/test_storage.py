"""Unit tests for teamwork.db — SQL key-value storage, quota, backend factory."""

from unittest.mock import patch

import pytest
from sqlalchemy import inspect

from teamwork.db.base import KeyValueEntry, create_storage_engine
from teamwork.db.storage import SQLStorage, create_storage, value_size
from teamwork.engine.errors import TeamworkQuotaExceeded


class TestValueSize:

    def test_counts_utf8_bytes(self):
        assert value_size("abc") == 3
        assert value_size("팀") == 3


class TestSQLStorage:

    def test_get_missing(self, storage):
        assert storage.get_item("absent") is None

    def test_set_get_overwrite(self, storage):
        storage.set_item("k", "one")
        storage.set_item("k", "two")
        assert storage.get_item("k") == "two"
        assert storage.keys() == ["k"]

    def test_remove_and_clear(self, storage):
        storage.set_item("a", "1")
        storage.set_item("b", "2")
        storage.remove_item("a")
        storage.remove_item("a")
        assert storage.keys() == ["b"]
        storage.clear()
        assert storage.keys() == []

    def test_usage_bytes(self, storage):
        storage.set_item("a", "12345")
        storage.set_item("b", "123")
        assert storage.usage_bytes() == 8

    def test_file_database_creates_parent(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "tw.db"
        backend = SQLStorage(f"sqlite:///{db_path.as_posix()}")
        backend.set_item("k", "v")
        backend.close()
        assert db_path.exists()
        reopened = SQLStorage(f"sqlite:///{db_path.as_posix()}")
        assert reopened.get_item("k") == "v"
        reopened.close()


class TestQuota:

    def test_write_within_quota(self):
        backend = SQLStorage("sqlite://", quota_bytes=10)
        backend.set_item("k", "x" * 10)
        assert backend.usage_bytes() == 10

    def test_over_quota_keeps_previous_value(self):
        backend = SQLStorage("sqlite://", quota_bytes=10)
        backend.set_item("a", "xxxxx")
        backend.set_item("b", "yyy")
        with pytest.raises(TeamworkQuotaExceeded) as exc:
            backend.set_item("b", "y" * 6)
        assert backend.get_item("b") == "yyy"
        assert exc.value.key == "b"
        assert exc.value.required_bytes == 11
        assert exc.value.message == "Storage is full. Delete existing files to free up space."

    def test_replacing_own_key_not_double_counted(self):
        backend = SQLStorage("sqlite://", quota_bytes=10)
        backend.set_item("a", "x" * 8)
        backend.set_item("a", "x" * 10)
        assert backend.get_item("a") == "x" * 10


class TestEngineFactory:

    def test_in_memory_shared(self):
        engine = create_storage_engine("sqlite://")
        assert KeyValueEntry.__tablename__ in inspect(engine).get_table_names()


class TestCreateStorage:

    def test_sqlite_url(self):
        backend = create_storage("sqlite://", quota_bytes=123)
        assert isinstance(backend, SQLStorage)
        assert backend.quota_bytes == 123

    def test_redis_url(self, mock_redis):
        with patch("redis.Redis.from_url", return_value=mock_redis) as from_url:
            backend = create_storage("redis://localhost:6379/2", key_prefix="t1:")
        from_url.assert_called_once()
        mock_redis.ping.assert_called_once()
        assert repr(backend) == "<RedisStorage url='redis://localhost:6379/2' prefix='t1:'>"

"""Unit tests for teamwork.engine.errors — Error hierarchy & serialization."""

import json
import pytest

from teamwork.engine.errors import (
    TeamworkConfigError,
    TeamworkDuplicateName,
    TeamworkError,
    TeamworkExternalFetchFailed,
    TeamworkFileTooLarge,
    TeamworkInvalidTransition,
    TeamworkQuotaExceeded,
    TeamworkRecordNotFound,
    TeamworkStorageError,
    TeamworkValidationError,
)


class TestTeamworkError:
    """Base error class tests."""

    def test_basic_creation(self):
        err = TeamworkError("something broke")
        assert err.message == "something broke"
        assert str(err) == "something broke"
        assert err.error_type == "TeamworkError"
        assert err.collection is None
        assert err.record_id is None

    def test_context_fields(self):
        err = TeamworkError(
            "fail",
            collection="teamwork_tasks",
            record_id="abc",
            operation="update",
            extra="x",
        )
        assert err.collection == "teamwork_tasks"
        assert err.record_id == "abc"
        assert err.operation == "update"
        assert err.context["extra"] == "x"

    def test_to_dict(self):
        err = TeamworkError("fail", collection="teamwork_docs", size=3)
        d = err.to_dict()
        assert d["error_type"] == "TeamworkError"
        assert d["message"] == "fail"
        assert d["collection"] == "teamwork_docs"
        assert d["context"] == {"size": "3"}
        assert "timestamp" in d

    def test_to_json(self):
        parsed = json.loads(TeamworkError("fail").to_json())
        assert parsed["error_type"] == "TeamworkError"
        assert parsed["message"] == "fail"

    def test_repr(self):
        err = TeamworkError("boom", collection="teamwork_tasks", record_id="t1")
        assert repr(err) == "TeamworkError: boom | collection=teamwork_tasks | record_id=t1"


class TestSubclasses:

    @pytest.mark.parametrize("cls", [
        TeamworkRecordNotFound,
        TeamworkDuplicateName,
        TeamworkFileTooLarge,
        TeamworkQuotaExceeded,
        TeamworkExternalFetchFailed,
        TeamworkValidationError,
        TeamworkInvalidTransition,
        TeamworkStorageError,
        TeamworkConfigError,
    ])
    def test_all_inherit_base(self, cls):
        err = cls("x")
        assert isinstance(err, TeamworkError)
        assert err.error_type == cls.__name__

    def test_invalid_transition_is_validation_error(self):
        err = TeamworkInvalidTransition("no", from_status="completed", to_status="todo")
        assert isinstance(err, TeamworkValidationError)
        assert err.from_status == "completed"
        assert err.to_status == "todo"

    def test_file_too_large_fields(self):
        err = TeamworkFileTooLarge("big", file_name="a.pdf", size_bytes=400, limit_bytes=300)
        d = err.to_dict()
        assert d["file_name"] == "a.pdf"
        assert d["size_bytes"] == 400
        assert d["limit_bytes"] == 300

    def test_duplicate_name(self):
        err = TeamworkDuplicateName("dup", name="Alice")
        assert err.to_dict()["name"] == "Alice"

    def test_external_fetch_failed(self):
        err = TeamworkExternalFetchFailed("down", source="quotes", status_code=503)
        d = err.to_dict()
        assert d["source"] == "quotes"
        assert d["status_code"] == 503

    def test_quota_fields(self):
        err = TeamworkQuotaExceeded("full", key="k", required_bytes=10, quota_bytes=5)
        assert err.key == "k"
        assert err.required_bytes == 10
        assert err.quota_bytes == 5

    def test_validation_errors_list(self):
        err = TeamworkValidationError("bad", validation_errors=[{"field": "title"}])
        assert err.to_dict()["validation_errors"] == [{"field": "title"}]

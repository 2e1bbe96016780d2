"""Unit tests for teamwork.services.members — roster and duplicate names."""

import pytest

from teamwork.engine.errors import TeamworkDuplicateName, TeamworkValidationError
from teamwork.engine.events import ChangeEvent
from teamwork.services.members import MemberService


@pytest.fixture
def service(store, notifier):
    return MemberService(store, notifier)


class TestCreate:

    def test_create_trims(self, service):
        member = service.create("  Alice ", "  designer ")
        assert member.name == "Alice"
        assert member.role == "designer"

    def test_role_optional(self, service):
        assert service.create("Bob").role == ""

    def test_fires_members_changed(self, service, events):
        member = service.create("Alice")
        assert events == [(ChangeEvent.MEMBERS_CHANGED, {
            "collection": "teamwork_members",
            "operation": "create",
            "record_id": member.id,
            "event": ChangeEvent.MEMBERS_CHANGED,
        })]

    def test_duplicate_rejected(self, service, events):
        service.create("Alice")
        with pytest.raises(TeamworkDuplicateName) as exc:
            service.create("Alice", "other role")
        assert exc.value.name == "Alice"
        assert len(service.list()) == 1
        assert len(events) == 1

    def test_duplicate_after_trim(self, service):
        service.create("Alice")
        with pytest.raises(TeamworkDuplicateName):
            service.create(" Alice  ")

    def test_case_sensitive(self, service):
        service.create("Alice")
        service.create("alice")
        assert service.names() == ["Alice", "alice"]

    def test_long_name_and_role_accepted(self, service):
        member = service.create("n" * 150, "r" * 150)
        assert member.name == "n" * 150
        assert member.role == "r" * 150

    def test_blank_name(self, service):
        with pytest.raises(TeamworkValidationError):
            service.create("   ")
        assert service.list() == []


class TestLookup:

    def test_get_by_name(self, service):
        service.create("Alice")
        assert service.get_by_name("Alice").name == "Alice"
        assert service.get_by_name("Nobody") is None

    def test_names_in_insertion_order(self, service):
        for name in ("Cara", "Alice", "Bob"):
            service.create(name)
        assert service.names() == ["Cara", "Alice", "Bob"]

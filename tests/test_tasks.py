"""Unit tests for teamwork.services.tasks — state machine, filtering, prompts."""

import pytest
from pydantic import ValidationError

from teamwork.engine.errors import TeamworkInvalidTransition, TeamworkValidationError
from teamwork.engine.events import ChangeEvent
from teamwork.prompts import DenyConfirm, FixedSelector
from teamwork.records.models import Collection, TaskPriority, TaskStatus
from teamwork.services.tasks import (
    ALLOWED_TRANSITIONS,
    TaskFilter,
    TaskService,
    split_by_completion,
)


@pytest.fixture
def roster(store):
    store.add(Collection.MEMBERS, {"name": "Alice", "role": "lead"})
    store.add(Collection.MEMBERS, {"name": "Bob"})


@pytest.fixture
def service(store, notifier, roster):
    return TaskService(store, notifier)


class TestCreate:

    def test_creates_todo_task(self, service):
        task = service.create({"title": "Plan", "priority": "high"}, assignee="Alice")
        assert task.status == TaskStatus.TODO
        assert task.priority == TaskPriority.HIGH
        assert task.assigned_to == "Alice"
        assert task.completed_at is None

    def test_status_in_fields_ignored(self, service):
        task = service.create({"title": "Plan", "status": "completed"}, assignee="Bob")
        assert task.status == TaskStatus.TODO

    def test_selector_asked_when_no_assignee(self, store, notifier, roster, make_selector):
        selector = make_selector("Bob")
        service = TaskService(store, notifier, selector=selector)
        task = service.create({"title": "Plan"})
        assert task.assigned_to == "Bob"
        assert len(selector.calls) == 1

    def test_no_choice_aborts(self, store, notifier, roster, make_selector, events):
        service = TaskService(store, notifier, selector=make_selector(None))
        assert service.create({"title": "Plan"}) is None
        assert store.get(Collection.TASKS) == []
        assert events == []

    def test_fixed_selector_rejects_unknown_name(self, store, notifier, roster):
        service = TaskService(store, notifier, selector=FixedSelector("Mallory"))
        assert service.create({"title": "Plan"}) is None

    def test_fires_data_changed(self, service, events):
        task = service.create({"title": "Plan"}, assignee="Alice")
        assert events == [(ChangeEvent.DATA_CHANGED, {
            "collection": Collection.TASKS,
            "operation": "create",
            "record_id": task.id,
            "event": ChangeEvent.DATA_CHANGED,
        })]

    def test_invalid_fields(self, service, store, events):
        with pytest.raises(TeamworkValidationError):
            service.create({"title": "   "}, assignee="Alice")
        assert store.get(Collection.TASKS) == []
        assert events == []

    def test_long_title_and_description_accepted(self, service):
        task = service.create(
            {"title": "t" * 500, "description": "x" * 5000}, assignee="Alice",
        )
        assert len(task.title) == 500
        assert len(task.description) == 5000

    def test_optional_fields(self, service):
        task = service.create(
            {"title": "Plan", "description": "", "dueDate": "2024-06-30"}, assignee="Alice",
        )
        assert task.description is None
        assert task.due_date.isoformat() == "2024-06-30"


class TestStateMachine:

    def test_todo_in_progress_completed(self, service):
        task = service.create({"title": "Plan"}, assignee="Alice")
        started = service.set_status(task.id, "in-progress")
        assert started.status == TaskStatus.IN_PROGRESS
        assert started.completed_at is None
        done = service.complete(task.id)
        assert done.status == TaskStatus.COMPLETED
        assert done.completed_at is not None

    def test_todo_straight_to_completed(self, service):
        task = service.create({"title": "Plan"}, assignee="Alice")
        done = service.complete(task.id)
        assert done.status == TaskStatus.COMPLETED
        assert done.completed_at is not None

    def test_restart_in_progress_allowed(self, service):
        task = service.create({"title": "Plan"}, assignee="Alice")
        service.start(task.id)
        assert service.start(task.id).status == TaskStatus.IN_PROGRESS

    @pytest.mark.parametrize("target", ["todo", "in-progress", "completed"])
    def test_completed_is_terminal(self, service, target):
        task = service.create({"title": "Plan"}, assignee="Alice")
        service.complete(task.id)
        with pytest.raises(TeamworkInvalidTransition) as exc:
            service.set_status(task.id, target)
        assert exc.value.from_status == "completed"

    def test_back_to_todo_rejected(self, service):
        task = service.create({"title": "Plan"}, assignee="Alice")
        service.start(task.id)
        with pytest.raises(TeamworkInvalidTransition):
            service.set_status(task.id, "todo")

    def test_unknown_status(self, service):
        task = service.create({"title": "Plan"}, assignee="Alice")
        with pytest.raises(TeamworkValidationError):
            service.set_status(task.id, "blocked")

    def test_unknown_id_is_silent(self, service, events):
        assert service.complete("missing") is None
        assert events == []

    def test_transition_table_shape(self):
        assert ALLOWED_TRANSITIONS[TaskStatus.COMPLETED] == set()
        assert TaskStatus.TODO not in ALLOWED_TRANSITIONS[TaskStatus.IN_PROGRESS]


class TestRemove:

    def test_confirmed_delete(self, store, notifier, roster, auto_confirm, events):
        service = TaskService(store, notifier, confirmer=auto_confirm)
        task = service.create({"title": "Plan"}, assignee="Alice")
        assert service.remove(task.id) is True
        assert service.list() == []
        assert events[-1][1]["operation"] == "delete"

    def test_declined_delete(self, store, notifier, roster):
        service = TaskService(store, notifier, confirmer=DenyConfirm())
        task = service.create({"title": "Plan"}, assignee="Alice")
        assert service.remove(task.id) is False
        assert len(service.list()) == 1

    def test_missing_id(self, service, events):
        assert service.remove("missing") is False
        assert events == []

    def test_without_confirmer_nothing_deleted(self, service):
        task = service.create({"title": "Plan"}, assignee="Alice")
        assert service.remove(task.id) is False
        assert [t.id for t in service.list()] == [task.id]


class TestTaskFilter:

    @pytest.fixture
    def tasks(self, service):
        a = service.create({"title": "Write report", "priority": "high"}, assignee="Alice")
        b = service.create(
            {"title": "Slides", "description": "Report summary", "priority": "low"},
            assignee="Bob",
        )
        c = service.create({"title": "Review"}, assignee="Alice")
        service.start(b.id)
        service.complete(c.id)
        return service.list()

    def test_defaults_pass_through(self, tasks):
        assert TaskFilter().apply(tasks) == tasks

    def test_pending_matches_only_todo(self, tasks):
        result = TaskFilter(status="pending").apply(tasks)
        assert [t.title for t in result] == ["Write report"]
        assert all(t.status == TaskStatus.TODO for t in result)

    def test_search_title_or_description(self, tasks):
        result = TaskFilter(search="REPORT").apply(tasks)
        assert [t.title for t in result] == ["Write report", "Slides"]

    def test_combined(self, tasks):
        result = TaskFilter(search="report", assignee="Bob", status="in-progress").apply(tasks)
        assert [t.title for t in result] == ["Slides"]

    def test_priority(self, tasks):
        assert [t.title for t in TaskFilter(priority="low").apply(tasks)] == ["Slides"]

    def test_is_pure(self, tasks):
        f = TaskFilter(assignee="Alice")
        assert f.apply(tasks) == f.apply(tasks)

    def test_invalid_values(self):
        with pytest.raises(ValidationError):
            TaskFilter(status="done")
        with pytest.raises(ValidationError):
            TaskFilter(priority="urgent")

    def test_split_by_completion(self, tasks):
        active, completed = split_by_completion(tasks)
        assert [t.title for t in active] == ["Write report", "Slides"]
        assert [t.title for t in completed] == ["Review"]

    def test_service_filter(self, service, tasks):
        assert len(service.filter(TaskFilter(status="completed"))) == 1

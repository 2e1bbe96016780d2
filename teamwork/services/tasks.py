"""
Teamwork Task Service — Task CRUD, status state machine, and filtering.

State machine:
    todo         → in-progress | completed
    in-progress  → in-progress | completed
    completed    → (none; reopening is not supported)
    any          → deleted (confirmed removal)

Completing a task stamps completedAt. Mutations fire DATA_CHANGED only when
something was actually written; an unknown id is a silent no-op.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from pydantic import BaseModel, field_validator

from teamwork.engine.errors import TeamworkInvalidTransition, TeamworkValidationError
from teamwork.engine.events import ChangeEvent, ChangeNotifier
from teamwork.prompts import ConfirmationPrompt, DenyConfirm, MemberSelector
from teamwork.records.models import Collection, Member, Task, TaskPriority, TaskStatus
from teamwork.records.store import Store

logger = logging.getLogger("teamwork.services.tasks")

ALLOWED_TRANSITIONS: Dict[TaskStatus, Set[TaskStatus]] = {
    TaskStatus.TODO: {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED},
    TaskStatus.IN_PROGRESS: {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED},
    TaskStatus.COMPLETED: set(),
}

ALL = "all"
# Filter value shown to users for tasks still waiting to be started
PENDING = "pending"


def _parse_status(value: Any) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        raise TeamworkValidationError(
            f"Unknown task status '{value}'",
            validation_errors=[{"field": "status", "value": str(value)}],
        ) from None


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------

class TaskFilter(BaseModel):
    """
    Pure predicate over tasks. Every criterion defaults to pass-through.

    status accepts "all", "pending" (alias of todo), "todo", "in-progress",
    "completed"; priority and assignee accept "all" or an exact value.
    """

    search: str = ""
    status: str = ALL
    priority: str = ALL
    assignee: str = ALL

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        allowed = {ALL, PENDING, *(s.value for s in TaskStatus)}
        if v not in allowed:
            raise ValueError(f"status filter must be one of {sorted(allowed)}, got '{v}'")
        return v

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: str) -> str:
        allowed = {ALL, *(p.value for p in TaskPriority)}
        if v not in allowed:
            raise ValueError(f"priority filter must be one of {sorted(allowed)}, got '{v}'")
        return v

    @property
    def status_value(self) -> Optional[TaskStatus]:
        if self.status == ALL:
            return None
        if self.status == PENDING:
            return TaskStatus.TODO
        return TaskStatus(self.status)

    def matches(self, task: Task) -> bool:
        term = self.search.lower()
        if term:
            in_title = term in task.title.lower()
            in_description = bool(task.description) and term in task.description.lower()
            if not (in_title or in_description):
                return False

        wanted = self.status_value
        if wanted is not None and task.status != wanted:
            return False
        if self.priority != ALL and task.priority.value != self.priority:
            return False
        if self.assignee != ALL and task.assigned_to != self.assignee:
            return False
        return True

    def apply(self, tasks: Iterable[Task]) -> List[Task]:
        return [t for t in tasks if self.matches(t)]


def split_by_completion(tasks: Iterable[Task]) -> Tuple[List[Task], List[Task]]:
    """(active, completed) preserving order."""
    active: List[Task] = []
    completed: List[Task] = []
    for task in tasks:
        (completed if task.is_completed else active).append(task)
    return active, completed


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class TaskService:
    """Task operations over the shared Store."""

    def __init__(
        self,
        store: Store,
        notifier: ChangeNotifier,
        selector: Optional[MemberSelector] = None,
        confirmer: Optional[ConfirmationPrompt] = None,
    ):
        self._store = store
        self._notifier = notifier
        self.selector = selector
        self.confirmer = confirmer or DenyConfirm()

    def _notify(self, operation: str, task_id: str) -> None:
        self._notifier.fire(ChangeEvent.DATA_CHANGED, {
            "collection": Collection.TASKS,
            "operation": operation,
            "record_id": task_id,
        })

    def _members(self) -> List[Member]:
        return self._store.get(Collection.MEMBERS)  # type: ignore[return-value]

    # -- reads --

    def list(self) -> List[Task]:
        return self._store.get(Collection.TASKS)  # type: ignore[return-value]

    def get(self, task_id: str) -> Optional[Task]:
        return self._store.find(Collection.TASKS, task_id)  # type: ignore[return-value]

    def filter(self, task_filter: Optional[TaskFilter] = None) -> List[Task]:
        return (task_filter or TaskFilter()).apply(self.list())

    # -- mutations --

    def create(self, fields: Dict[str, Any], assignee: Optional[str] = None) -> Optional[Task]:
        """
        Create a todo task.

        Without an explicit assignee the member selector is asked; when it
        returns nothing the create is aborted and None is returned.
        """
        if assignee is None and self.selector is not None:
            assignee = self.selector.select("Choose the task assignee", self._members())
        if not assignee:
            logger.info("Task creation cancelled: no assignee chosen")
            return None

        data = {
            k: v for k, v in fields.items()
            if k not in ("status", "completed_at", "completedAt", "assigned_to", "assignedTo")
        }
        data["assigned_to"] = assignee
        data["status"] = TaskStatus.TODO

        task: Task = self._store.add(Collection.TASKS, data)  # type: ignore[assignment]
        logger.info(f"Task created: '{task.title}' → {task.assigned_to}")
        self._notify("create", task.id)
        return task

    def set_status(self, task_id: str, status: Any) -> Optional[Task]:
        """
        Move a task to ``status``. Returns None for an unknown id.

        Raises TeamworkInvalidTransition for moves the state machine forbids.
        """
        target = _parse_status(status)
        current = self.get(task_id)
        if current is None:
            return None

        if target not in ALLOWED_TRANSITIONS[current.status]:
            raise TeamworkInvalidTransition(
                f"Cannot move task from '{current.status.value}' to '{target.value}'",
                collection=Collection.TASKS,
                record_id=task_id,
                from_status=current.status.value,
                to_status=target.value,
            )

        patch: Dict[str, Any] = {"status": target}
        if target == TaskStatus.COMPLETED:
            patch["completed_at"] = datetime.now(timezone.utc)

        task: Optional[Task] = self._store.update(Collection.TASKS, task_id, patch)  # type: ignore[assignment]
        if task is None:
            return None
        logger.info(f"Task {task_id}: {current.status.value} → {target.value}")
        self._notify("update", task_id)
        return task

    def start(self, task_id: str) -> Optional[Task]:
        return self.set_status(task_id, TaskStatus.IN_PROGRESS)

    def complete(self, task_id: str) -> Optional[Task]:
        return self.set_status(task_id, TaskStatus.COMPLETED)

    def remove(self, task_id: str) -> bool:
        """Delete after confirmation. False when cancelled or not found."""
        if not self.confirmer.confirm("Delete this task?"):
            logger.info(f"Task delete cancelled: {task_id}")
            return False
        if not self._store.delete(Collection.TASKS, task_id):
            return False
        self._notify("delete", task_id)
        return True

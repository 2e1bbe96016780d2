"""
Teamwork Dashboard — The four derived panels kept in sync with the Store.

Panels:
    task board        — filtered tasks split into active / completed
    document list     — title search results, newest first
    contributions     — per-member activity report + totals
    assignee options  — "all" followed by roster names (feeds the task filter)

DATA_CHANGED refreshes every panel; MEMBERS_CHANGED refreshes contributions
and assignee options. Every refresh re-reads the Store, so a panel never
shows a stale snapshot and refreshing twice gives the same result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from teamwork.engine.events import ChangeEvent, ChangeNotifier, Subscription
from teamwork.records.models import Collection, Document, Member, Task
from teamwork.records.store import Store
from teamwork.services.contribution import ContributionReport, compute_contributions
from teamwork.services.documents import search_documents
from teamwork.services.tasks import ALL, TaskFilter, split_by_completion

logger = logging.getLogger("teamwork.dashboard")


@dataclass
class TaskBoard:
    active: List[Task] = field(default_factory=list)
    completed: List[Task] = field(default_factory=list)


class Dashboard:
    def __init__(
        self,
        store: Store,
        notifier: ChangeNotifier,
        task_filter: Optional[TaskFilter] = None,
        document_search: str = "",
    ):
        self._store = store
        self._notifier = notifier
        self._task_filter = task_filter or TaskFilter()
        self._document_search = document_search
        self._subscriptions: List[Subscription] = []

        self.task_board = TaskBoard()
        self.documents: List[Document] = []
        self.contributions = ContributionReport()
        self.assignee_options: List[str] = [ALL]
        self.refresh_count = 0

    # -------------------------------------------------------------------
    # Wiring
    # -------------------------------------------------------------------

    def attach(self) -> None:
        """Subscribe to change notifications (idempotent)."""
        if self._subscriptions:
            return
        self._subscriptions = [
            self._notifier.subscribe(
                ChangeEvent.DATA_CHANGED, self.refresh_all, name="dashboard.refresh_all",
            ),
            self._notifier.subscribe(
                ChangeEvent.MEMBERS_CHANGED, self.refresh_members, name="dashboard.refresh_members",
            ),
        ]

    def detach(self) -> None:
        for subscription in self._subscriptions:
            self._notifier.unsubscribe(subscription)
        self._subscriptions = []

    # -------------------------------------------------------------------
    # Filters
    # -------------------------------------------------------------------

    @property
    def task_filter(self) -> TaskFilter:
        return self._task_filter

    def set_task_filter(self, **changes: Any) -> TaskBoard:
        """Change filter criteria (search/status/priority/assignee) and re-render the board."""
        self._task_filter = TaskFilter(**{**self._task_filter.model_dump(), **changes})
        return self.refresh_tasks()

    @property
    def document_search(self) -> str:
        return self._document_search

    def set_document_search(self, term: str) -> List[Document]:
        self._document_search = term
        return self.refresh_documents()

    # -------------------------------------------------------------------
    # Panels
    # -------------------------------------------------------------------

    def refresh_tasks(self) -> TaskBoard:
        tasks: List[Task] = self._store.get(Collection.TASKS)  # type: ignore[assignment]
        active, completed = split_by_completion(self._task_filter.apply(tasks))
        self.task_board = TaskBoard(active=active, completed=completed)
        return self.task_board

    def refresh_documents(self) -> List[Document]:
        docs: List[Document] = self._store.get(Collection.DOCUMENTS)  # type: ignore[assignment]
        self.documents = search_documents(docs, self._document_search)
        return self.documents

    def refresh_contributions(self) -> ContributionReport:
        self.contributions = compute_contributions(
            self._store.get(Collection.MEMBERS),  # type: ignore[arg-type]
            self._store.get(Collection.TASKS),  # type: ignore[arg-type]
            self._store.get(Collection.DOCUMENTS),  # type: ignore[arg-type]
        )
        return self.contributions

    def refresh_assignee_options(self) -> List[str]:
        members: List[Member] = self._store.get(Collection.MEMBERS)  # type: ignore[assignment]
        self.assignee_options = [ALL] + [m.name for m in members]
        # A selection that no longer exists falls back to "all"
        if self._task_filter.assignee not in self.assignee_options:
            self._task_filter = self._task_filter.model_copy(update={"assignee": ALL})
        return self.assignee_options

    def refresh_members(self, payload: Optional[Dict[str, Any]] = None) -> None:
        self.refresh_contributions()
        self.refresh_assignee_options()

    def refresh_all(self, payload: Optional[Dict[str, Any]] = None) -> None:
        self.refresh_members()
        self.refresh_tasks()
        self.refresh_documents()
        self.refresh_count += 1
        logger.debug(f"Dashboard refreshed ({(payload or {}).get('operation', 'manual')})")

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data view of every panel."""
        return {
            "tasks": {
                "active": [t.to_storage() for t in self.task_board.active],
                "completed": [t.to_storage() for t in self.task_board.completed],
            },
            "documents": [
                {k: v for k, v in d.to_storage().items() if k != "data"}
                for d in self.documents
            ],
            "contributions": self.contributions.model_dump(by_alias=True),
            "assigneeOptions": list(self.assignee_options),
            "filters": {
                "task": self._task_filter.model_dump(),
                "documentSearch": self._document_search,
            },
        }

"""
Teamwork Contribution Aggregation — per-member activity share.

For every member (roster order):
    doc_count             = documents with uploaded_by == name
    completed_task_count  = completed tasks with assigned_to == name
    percentage            = round_half_up((doc_count + completed_task_count) / grand_total * 100)

grand_total counts ALL documents and ALL completed tasks, including ones
attributed to names no longer (or never) on the roster, so percentages only
sum to ~100 when every activity belongs to a current member.

Pure derivation: nothing is cached or written back.
"""

from __future__ import annotations

from typing import Iterable, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from teamwork.records.models import Collection, Document, Member, Task, TaskStatus
from teamwork.records.store import Store


class ContributionRow(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    role: str = ""
    doc_count: int = 0
    completed_task_count: int = 0
    percentage: int = 0

    @property
    def total(self) -> int:
        return self.doc_count + self.completed_task_count


class ContributionReport(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    rows: List[ContributionRow] = Field(default_factory=list)
    total_documents: int = 0
    total_completed_tasks: int = 0

    @property
    def grand_total(self) -> int:
        return self.total_documents + self.total_completed_tasks

    def row_for(self, name: str) -> ContributionRow | None:
        for row in self.rows:
            if row.name == name:
                return row
        return None


def round_half_up_percent(part: int, whole: int) -> int:
    """part/whole as a whole percentage, halves rounded up. 0 when whole is 0."""
    if whole <= 0:
        return 0
    # floor(100 * part / whole + 1/2) in exact integer arithmetic
    return (200 * part + whole) // (2 * whole)


def compute_contributions(
    members: Iterable[Member],
    tasks: Iterable[Task],
    documents: Iterable[Document],
) -> ContributionReport:
    documents = list(documents)
    completed = [t for t in tasks if t.status == TaskStatus.COMPLETED]
    grand_total = len(documents) + len(completed)

    rows = []
    for member in members:
        doc_count = sum(1 for d in documents if d.uploaded_by == member.name)
        task_count = sum(1 for t in completed if t.assigned_to == member.name)
        rows.append(ContributionRow(
            name=member.name,
            role=member.role,
            doc_count=doc_count,
            completed_task_count=task_count,
            percentage=round_half_up_percent(doc_count + task_count, grand_total),
        ))

    return ContributionReport(
        rows=rows,
        total_documents=len(documents),
        total_completed_tasks=len(completed),
    )


class ContributionAggregator:
    """Re-derives the report from the Store on every call."""

    def __init__(self, store: Store):
        self._store = store

    def compute(self) -> ContributionReport:
        return compute_contributions(
            self._store.get(Collection.MEMBERS),  # type: ignore[arg-type]
            self._store.get(Collection.TASKS),  # type: ignore[arg-type]
            self._store.get(Collection.DOCUMENTS),  # type: ignore[arg-type]
        )

"""
Teamwork Records — Pydantic definitions for the three persisted collections.

Record: id + creation/update timestamps shared by every entity.
Task: work item with a status state machine and a name-based assignee.
Document: uploaded file metadata plus its data-URL encoded payload.
Member: roster entry; the name is the join key used by tasks and documents.

Persisted form uses camelCase keys (``createdAt``, ``assignedTo`` …); Python
code uses the snake_case attribute names. Both are accepted on input.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class Collection:
    """Storage keys of the three collections."""
    TASKS = "teamwork_tasks"
    DOCUMENTS = "teamwork_docs"
    MEMBERS = "teamwork_members"

    ALL = (TASKS, DOCUMENTS, MEMBERS)


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ---------------------------------------------------------------------------
# Base record
# ---------------------------------------------------------------------------

class Record(BaseModel):
    """Fields stamped by the Store on every entity."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(description="Unique id assigned at creation (UUID4 hex)")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: Optional[datetime] = Field(
        default=None, description="Last mutation timestamp; absent until first update"
    )

    def to_storage(self) -> Dict[str, Any]:
        """Serialize to the persisted camelCase JSON shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def field_name(cls, key: str) -> Optional[str]:
        """Resolve a camelCase alias or snake_case name to the attribute name."""
        if key in cls.model_fields:
            return key
        for name, info in cls.model_fields.items():
            if info.alias == key:
                return name
        return None


def _strip(v: Any) -> Any:
    return v.strip() if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------

class Task(Record):
    """
    Work item assigned to a member by name.

    Status moves todo → in-progress → completed (or todo → completed);
    completed_at is present exactly when status is completed.
    """

    title: str = Field(min_length=1)
    description: Optional[str] = None
    due_date: Optional[date] = Field(default=None, description="YYYY-MM-DD")
    priority: TaskPriority = TaskPriority.MEDIUM
    assigned_to: str = Field(min_length=1, description="Member name (not enforced)")
    status: TaskStatus = TaskStatus.TODO
    completed_at: Optional[datetime] = None

    @field_validator("title", "assigned_to", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return _strip(v)

    @field_validator("description", "due_date", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_completed_at(self) -> "Task":
        if self.status == TaskStatus.COMPLETED and self.completed_at is None:
            raise ValueError("completedAt is required when status is completed")
        if self.status != TaskStatus.COMPLETED and self.completed_at is not None:
            raise ValueError("completedAt is only allowed when status is completed")
        return self

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------

class Document(Record):
    """Uploaded file. ``data`` is a ``data:<mime>;base64,<payload>`` blob."""

    title: str = Field(min_length=1)
    file_name: str = Field(min_length=1)
    file_type: str = "application/octet-stream"
    size: int = Field(ge=0, description="File size in bytes")
    uploaded_by: str = Field(min_length=1, description="Member name (not enforced)")
    data: str = Field(description="Self-describing encoded payload")


# ---------------------------------------------------------------------------
# Member
# ---------------------------------------------------------------------------

class Member(Record):
    """Roster entry. Names are unique, case-sensitive."""

    name: str = Field(min_length=1)
    role: str = ""

    @field_validator("name", "role", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return _strip(v)


COLLECTION_MODELS: Dict[str, Type[Record]] = {
    Collection.TASKS: Task,
    Collection.DOCUMENTS: Document,
    Collection.MEMBERS: Member,
}

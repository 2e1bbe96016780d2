"""
Teamwork Error Hierarchy — Structured exceptions carrying serializable context.

Every error keeps the keyword context it was raised with so the CLI and the
activity log can report it without string parsing.

Hierarchy:
    TeamworkError
    ├── TeamworkRecordNotFound        — update/delete on a missing id
    ├── TeamworkDuplicateName         — member name already on the roster
    ├── TeamworkFileTooLarge          — upload above the size cap
    ├── TeamworkQuotaExceeded         — storage quota exhausted, write discarded
    ├── TeamworkExternalFetchFailed   — quote API / file encoder failure
    ├── TeamworkValidationError       — input validation failed
    │   └── TeamworkInvalidTransition — task status change not allowed
    ├── TeamworkStorageError          — persisted data unreadable
    └── TeamworkConfigError           — invalid teamwork.yaml
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class TeamworkError(Exception):
    """Base error for all Teamwork failures. Context is JSON-serializable."""

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.error_type: str = self.__class__.__name__
        self.collection: Optional[str] = context.get("collection")
        self.record_id: Optional[str] = context.get("record_id")
        self.operation: Optional[str] = context.get("operation")
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to a JSON-compatible dict for logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "collection": self.collection,
            "record_id": self.record_id,
            "operation": self.operation,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("collection", "record_id", "operation")
            },
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.collection:
            parts.append(f"collection={self.collection}")
        if self.record_id:
            parts.append(f"record_id={self.record_id}")
        return " | ".join(parts)


class TeamworkRecordNotFound(TeamworkError):
    """No record with the given id exists in the collection."""
    pass


class TeamworkDuplicateName(TeamworkError):
    """A member with the identical (case-sensitive) name already exists."""

    def __init__(self, message: str, **context: Any):
        self.name: Optional[str] = context.get("name")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["name"] = self.name
        return d


class TeamworkFileTooLarge(TeamworkError):
    """Upload rejected because the file exceeds the size cap."""

    def __init__(self, message: str, **context: Any):
        self.file_name: Optional[str] = context.get("file_name")
        self.size_bytes: Optional[int] = context.get("size_bytes")
        self.limit_bytes: Optional[int] = context.get("limit_bytes")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["file_name"] = self.file_name
        d["size_bytes"] = self.size_bytes
        d["limit_bytes"] = self.limit_bytes
        return d


class TeamworkQuotaExceeded(TeamworkError):
    """
    Storage quota exhausted. The attempted write was discarded and the
    previously persisted value is still authoritative.
    """

    def __init__(self, message: str, **context: Any):
        self.key: Optional[str] = context.get("key")
        self.required_bytes: Optional[int] = context.get("required_bytes")
        self.quota_bytes: Optional[int] = context.get("quota_bytes")
        super().__init__(message, **context)


class TeamworkExternalFetchFailed(TeamworkError):
    """External collaborator (quote API, file encoder) failed."""

    def __init__(self, message: str, **context: Any):
        self.source: Optional[str] = context.get("source")
        self.status_code: Optional[int] = context.get("status_code")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["source"] = self.source
        d["status_code"] = self.status_code
        return d


class TeamworkValidationError(TeamworkError):
    """Input validation failed. Includes field-level error details."""

    def __init__(self, message: str, **context: Any):
        self.validation_errors: Optional[List[Any]] = context.get("validation_errors")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["validation_errors"] = self.validation_errors
        return d


class TeamworkInvalidTransition(TeamworkValidationError):
    """Task status change not permitted by the state machine."""

    def __init__(self, message: str, **context: Any):
        self.from_status: Optional[str] = context.get("from_status")
        self.to_status: Optional[str] = context.get("to_status")
        super().__init__(message, **context)


class TeamworkStorageError(TeamworkError):
    """Persisted collection could not be decoded."""
    pass


class TeamworkConfigError(TeamworkError):
    """Configuration error — invalid teamwork.yaml."""
    pass

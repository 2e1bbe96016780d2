"""
Teamwork Store — Generic persisted collections over a key-value backend.

Each collection is persisted as one JSON array under its storage key, in
insertion order. Every write replaces the whole snapshot; if the backend
refuses it (quota) the previous snapshot stays authoritative.

Operations:
    get(collection)               → list of records (empty if uninitialized)
    find(collection, id)          → record or None
    add(collection, fields)       → new record (id + createdAt stamped)
    update(collection, id, patch) → merged record, or None when id is unknown
    delete(collection, id)        → True if a record was removed
    init() / clear_all()
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Type

from pydantic import ValidationError

from teamwork.db.storage import StorageBackend
from teamwork.engine.errors import (
    TeamworkQuotaExceeded,
    TeamworkStorageError,
    TeamworkValidationError,
)
from teamwork.engine.logging import log, log_record_operation, log_system_event
from teamwork.records.models import COLLECTION_MODELS, Collection, Record

logger = logging.getLogger("teamwork.records.store")

# Never rewritten by update()
IMMUTABLE_FIELDS = ("id", "created_at")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _stamp_after(previous: Optional[datetime]) -> datetime:
    """A timestamp strictly later than ``previous``."""
    now = _utcnow()
    if previous is not None:
        if previous.tzinfo is None:
            previous = previous.replace(tzinfo=timezone.utc)
        if now <= previous:
            now = previous + timedelta(microseconds=1)
    return now


def new_record_id() -> str:
    return uuid.uuid4().hex


class Store:
    """
    Typed collection access shared by every service.

    One Store per application session; services hold a reference to it.
    """

    def __init__(self, storage: StorageBackend):
        self._storage = storage

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------

    @staticmethod
    def _model_for(collection: str) -> Type[Record]:
        try:
            return COLLECTION_MODELS[collection]
        except KeyError:
            raise ValueError(
                f"Unknown collection '{collection}'. Known: {list(COLLECTION_MODELS)}"
            ) from None

    def _load(self, collection: str) -> List[Record]:
        model = self._model_for(collection)
        raw = self._storage.get_item(collection)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            raise TeamworkStorageError(
                f"Collection '{collection}' is not valid JSON: {e}",
                collection=collection,
            ) from e
        if not isinstance(items, list):
            raise TeamworkStorageError(
                f"Collection '{collection}' must be a JSON array",
                collection=collection,
            )
        try:
            return [model.model_validate(item) for item in items]
        except ValidationError as e:
            raise TeamworkStorageError(
                f"Collection '{collection}' holds malformed records",
                collection=collection,
                validation_errors=e.errors(include_url=False),
            ) from e

    def _save(self, collection: str, records: List[Record]) -> None:
        payload = json.dumps(
            [r.to_storage() for r in records],
            ensure_ascii=False,
            separators=(",", ":"),
        )
        try:
            self._storage.set_item(collection, payload)
        except TeamworkQuotaExceeded as e:
            e.context.setdefault("collection", collection)
            e.collection = collection
            raise

    def _normalize(self, model: Type[Record], fields: Dict[str, Any]) -> Dict[str, Any]:
        """Map camelCase / snake_case keys onto attribute names; unknown keys are dropped."""
        normalized: Dict[str, Any] = {}
        for key, value in fields.items():
            name = model.field_name(key)
            if name is None:
                logger.debug(f"Ignoring unknown field '{key}' for {model.__name__}")
                continue
            normalized[name] = value
        return normalized

    def _validate(self, model: Type[Record], data: Dict[str, Any], collection: str, operation: str) -> Record:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise TeamworkValidationError(
                f"Invalid {model.__name__.lower()}: {e.error_count()} error(s)",
                collection=collection,
                operation=operation,
                validation_errors=e.errors(include_url=False, include_context=False),
            ) from e

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------

    def init(self) -> None:
        """Create empty collections for keys that do not exist yet."""
        for collection in Collection.ALL:
            if self._storage.get_item(collection) is None:
                self._storage.set_item(collection, "[]")
                logger.debug(f"Initialized empty collection '{collection}'")

    def get(self, collection: str) -> List[Record]:
        """All records of a collection in insertion order."""
        return self._load(collection)

    def find(self, collection: str, record_id: str) -> Optional[Record]:
        for record in self._load(collection):
            if record.id == record_id:
                return record
        return None

    def add(self, collection: str, fields: Dict[str, Any]) -> Record:
        """Stamp id + createdAt, append, persist the whole collection."""
        model = self._model_for(collection)
        records = self._load(collection)

        data = self._normalize(model, fields)
        existing_ids = {r.id for r in records}
        record_id = new_record_id()
        while record_id in existing_ids:
            record_id = new_record_id()
        data["id"] = record_id
        data["created_at"] = _utcnow()
        data.pop("updated_at", None)

        record = self._validate(model, data, collection, "create")
        records.append(record)
        self._save(collection, records)

        log(log_record_operation("create", collection, record_id=record.id))
        logger.debug(f"Added {model.__name__} {record.id} to {collection}")
        return record

    def update(self, collection: str, record_id: str, patch: Dict[str, Any]) -> Optional[Record]:
        """
        Merge ``patch`` over the stored record and restamp updatedAt.

        Returns None (and writes nothing) when no record has that id.
        """
        model = self._model_for(collection)
        records = self._load(collection)

        index = next((i for i, r in enumerate(records) if r.id == record_id), None)
        if index is None:
            logger.debug(f"Update skipped: {record_id} not in {collection}")
            return None

        changes = self._normalize(model, patch)
        for name in IMMUTABLE_FIELDS:
            if name in changes:
                logger.warning(f"Ignoring attempt to change immutable field '{name}' on {record_id}")
                changes.pop(name)
        changes.pop("updated_at", None)

        current = records[index]
        merged = current.model_dump()
        merged.update(changes)
        merged["updated_at"] = _stamp_after(current.updated_at or current.created_at)

        record = self._validate(model, merged, collection, "update")
        records[index] = record
        self._save(collection, records)

        log(log_record_operation(
            "update", collection, record_id=record_id, fields_changed=sorted(changes),
        ))
        return record

    def delete(self, collection: str, record_id: str) -> bool:
        """Remove the record with ``record_id``. No write when it is absent."""
        records = self._load(collection)
        remaining = [r for r in records if r.id != record_id]
        if len(remaining) == len(records):
            logger.debug(f"Delete skipped: {record_id} not in {collection}")
            return False

        self._save(collection, remaining)
        log(log_record_operation("delete", collection, record_id=record_id))
        return True

    def clear_all(self) -> None:
        """Wipe every collection and reinitialize them empty. Irreversible."""
        self._storage.clear()
        self.init()
        log(log_system_event("store_cleared", level="WARNING"))
        logger.warning("All collections cleared")

    def count(self, collection: str) -> int:
        return len(self._load(collection))

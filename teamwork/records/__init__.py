"""Teamwork Records — Pydantic record models and the collection Store."""

from teamwork.records.models import Collection, Document, Member, Task  # noqa: F401
from teamwork.records.store import Store  # noqa: F401

__all__ = ["Collection", "Document", "Member", "Task", "Store"]

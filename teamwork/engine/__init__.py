"""Teamwork Engine — Configuration, errors, activity logging, change notification."""

from teamwork.engine.errors import TeamworkError  # noqa: F401
from teamwork.engine.events import ChangeEvent, ChangeNotifier  # noqa: F401

__all__ = [
    "TeamworkError",
    "ChangeEvent",
    "ChangeNotifier",
]

"""
Teamwork Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from teamwork.db.storage import SQLStorage
from teamwork.engine.events import ChangeNotifier
from teamwork.prompts import AutoConfirm, FixedSelector
from teamwork.records.models import Member
from teamwork.records.store import Store


# ---------------------------------------------------------------------------
# Global state isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_globals():
    """Reset the config singleton and the activity-log queue between tests."""
    import teamwork.engine.config as cfg_mod
    import teamwork.engine.logging as log_mod

    cfg_mod._config = None
    yield
    if log_mod._global_queue is not None:
        log_mod._global_queue.stop()
        log_mod._global_queue = None
    cfg_mod._config = None


# ---------------------------------------------------------------------------
# Storage / store
# ---------------------------------------------------------------------------

@pytest.fixture
def storage():
    """In-memory SQLite key-value storage."""
    backend = SQLStorage("sqlite://")
    yield backend
    backend.close()


@pytest.fixture
def store(storage):
    s = Store(storage)
    s.init()
    return s


@pytest.fixture
def notifier():
    return ChangeNotifier()


@pytest.fixture
def events(notifier):
    """Records every (event, payload) fired on the notifier."""
    from teamwork.engine.events import ChangeEvent

    fired: List[tuple] = []
    for event in ChangeEvent.ALL:
        notifier.subscribe(event, lambda payload, e=event: fired.append((e, payload)))
    return fired


@pytest.fixture
def mock_redis():
    """Return a mock Redis client."""
    client = MagicMock()
    client.ping.return_value = True
    client.get.return_value = None
    client.set.return_value = True
    client.delete.return_value = 1
    client.strlen.return_value = 0
    client.scan_iter.return_value = iter([])
    return client


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

class RecordingSelector:
    """Returns a preset answer and remembers how often it was asked."""

    def __init__(self, answer: Optional[str]):
        self.answer = answer
        self.calls: List[str] = []

    def select(self, prompt: str, members: List[Member]) -> Optional[str]:
        self.calls.append(prompt)
        return self.answer


@pytest.fixture
def make_selector():
    return RecordingSelector


@pytest.fixture
def auto_confirm():
    return AutoConfirm()


@pytest.fixture
def alice_selector():
    return FixedSelector("Alice")


# ---------------------------------------------------------------------------
# Project tree
# ---------------------------------------------------------------------------

@pytest.fixture
def project_root(tmp_path) -> Path:
    """
    A project directory with teamwork.yaml pointing at a file SQLite DB and
    a log directory inside tmp_path. Quotes are disabled.
    """
    root = tmp_path / "project"
    root.mkdir()
    (root / "teamwork.yaml").write_text(
        "team:\n"
        "  name: Test Team\n"
        "  environment: dev\n"
        "storage:\n"
        f"  url: sqlite:///{(root / 'data' / 'teamwork.db').as_posix()}\n"
        "documents:\n"
        "  max_upload_kib: 300\n"
        "quotes:\n"
        "  enabled: false\n"
        "logging:\n"
        "  level: debug\n"
        f"  directory: {(root / 'logs').as_posix()}\n"
        "  async_queue:\n"
        "    flush_interval_ms: 10\n",
        encoding="utf-8",
    )
    return root

"""Unit tests for teamwork.engine.events — ChangeNotifier."""

import pytest

from teamwork.engine.events import ChangeEvent, ChangeNotifier


class TestSubscribe:

    def test_unknown_event_rejected(self):
        with pytest.raises(ValueError):
            ChangeNotifier().subscribe("nope", lambda p: None)

    def test_priority_order(self):
        notifier = ChangeNotifier()
        order = []
        notifier.subscribe(ChangeEvent.DATA_CHANGED, lambda p: order.append("late"), priority=10)
        notifier.subscribe(ChangeEvent.DATA_CHANGED, lambda p: order.append("early"), priority=-1)
        notifier.fire(ChangeEvent.DATA_CHANGED)
        assert order == ["early", "late"]

    def test_unsubscribe(self):
        notifier = ChangeNotifier()
        calls = []
        sub = notifier.subscribe(ChangeEvent.MEMBERS_CHANGED, calls.append)
        assert notifier.unsubscribe(sub) is True
        assert notifier.unsubscribe(sub) is False
        notifier.fire(ChangeEvent.MEMBERS_CHANGED)
        assert calls == []


class TestFire:

    def test_payload_carries_event(self):
        notifier = ChangeNotifier()
        seen = []
        notifier.subscribe(ChangeEvent.DATA_CHANGED, seen.append, name="recorder")
        results = notifier.fire(ChangeEvent.DATA_CHANGED, {"operation": "create"})
        assert seen == [{"operation": "create", "event": "data_changed"}]
        assert results == [{"listener": "recorder", "status": "success"}]

    def test_events_are_independent(self):
        notifier = ChangeNotifier()
        seen = []
        notifier.subscribe(ChangeEvent.DATA_CHANGED, seen.append)
        notifier.fire(ChangeEvent.MEMBERS_CHANGED)
        assert seen == []
        assert notifier.fire_count(ChangeEvent.MEMBERS_CHANGED) == 1
        assert notifier.fire_count(ChangeEvent.DATA_CHANGED) == 0

    def test_failing_listener_does_not_stop_others(self):
        notifier = ChangeNotifier()
        seen = []

        def broken(payload):
            raise RuntimeError("boom")

        notifier.subscribe(ChangeEvent.DATA_CHANGED, broken, name="broken")
        notifier.subscribe(ChangeEvent.DATA_CHANGED, seen.append, name="ok", priority=1)
        results = notifier.fire(ChangeEvent.DATA_CHANGED)
        assert results[0] == {"listener": "broken", "status": "error", "error": "boom"}
        assert results[1]["status"] == "success"
        assert len(seen) == 1

    def test_clear(self):
        notifier = ChangeNotifier()
        notifier.subscribe(ChangeEvent.DATA_CHANGED, lambda p: None)
        notifier.fire(ChangeEvent.DATA_CHANGED)
        notifier.clear()
        assert notifier.listeners(ChangeEvent.DATA_CHANGED) == []
        assert notifier.fire_count(ChangeEvent.DATA_CHANGED) == 0

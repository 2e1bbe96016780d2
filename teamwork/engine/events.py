"""
Teamwork Change Notifier — Observer registry for "data changed" broadcasts.

Services fire an event after a mutation has been committed to the Store;
subscribers (dashboard panels, aggregates) re-derive from the Store.

Events:
    DATA_CHANGED     — tasks or documents changed; every panel recomputes
    MEMBERS_CHANGED  — roster changed; contribution table + assignee options

A failing listener is logged and reported in the results list. It never
propagates into the service that fired the event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("teamwork.engine.events")


class ChangeEvent:
    """Enumeration of change notifications."""
    DATA_CHANGED = "data_changed"
    MEMBERS_CHANGED = "members_changed"

    ALL = {DATA_CHANGED, MEMBERS_CHANGED}


Listener = Callable[[Dict[str, Any]], Any]


@dataclass
class Subscription:
    """A registered listener for a change event."""
    event: str
    callback: Listener
    name: str
    priority: int = 0        # Lower = runs first

    def __repr__(self) -> str:
        return f"<Subscription({self.event} → {self.name})>"


class ChangeNotifier:
    """
    Central registry and dispatcher for change listeners.

    Usage:
        notifier = ChangeNotifier()
        notifier.subscribe(ChangeEvent.DATA_CHANGED, dashboard.refresh_all)

        # after a committed mutation:
        notifier.fire(ChangeEvent.DATA_CHANGED, {"collection": "teamwork_tasks"})
    """

    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._fire_count: Dict[str, int] = {}

    def subscribe(
        self,
        event: str,
        callback: Listener,
        priority: int = 0,
        name: Optional[str] = None,
    ) -> Subscription:
        """Register a listener. Listeners run in ascending priority order."""
        if event not in ChangeEvent.ALL:
            raise ValueError(f"Unknown change event '{event}'")

        subscription = Subscription(
            event=event,
            callback=callback,
            name=name or getattr(callback, "__qualname__", repr(callback)),
            priority=priority,
        )
        listeners = self._subscriptions.setdefault(event, [])
        listeners.append(subscription)
        listeners.sort(key=lambda s: s.priority)
        logger.debug(f"Subscribed {subscription.name} to {event}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        listeners = self._subscriptions.get(subscription.event, [])
        if subscription in listeners:
            listeners.remove(subscription)
            return True
        return False

    def fire(self, event: str, payload: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Notify every listener of an event synchronously.

        Returns:
            One result dict per listener: {"listener", "status", "error"?}.
        """
        payload = dict(payload or {})
        payload.setdefault("event", event)
        self._fire_count[event] = self._fire_count.get(event, 0) + 1

        results: List[Dict[str, Any]] = []
        for subscription in list(self._subscriptions.get(event, [])):
            try:
                subscription.callback(payload)
                results.append({"listener": subscription.name, "status": "success"})
            except Exception as e:
                logger.error(f"Listener failed: {subscription.name} for {event}: {e}")
                results.append({
                    "listener": subscription.name,
                    "status": "error",
                    "error": str(e),
                })
        return results

    def listeners(self, event: str) -> List[Subscription]:
        return list(self._subscriptions.get(event, []))

    def fire_count(self, event: str) -> int:
        return self._fire_count.get(event, 0)

    def clear(self) -> None:
        self._subscriptions.clear()
        self._fire_count.clear()

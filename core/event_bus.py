"""Simple in-process event bus for decoupled event emission."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from typing import Any

EventHandler = Callable[[dict[str, Any]], None]

PLAN_CREATED = "plan_created"
GROUP_STARTED = "group_started"
GROUP_COMPLETED = "group_completed"
UNIT_COMPLETED = "unit_completed"
UNIT_FAILED = "unit_failed"
UNIT_RETRY = "unit_retry"
PLAN_FINISHED = "plan_finished"
PLAN_CANCELLED = "plan_cancelled"

logger = logging.getLogger("ao.event_bus")


class EventBus:
    """Dispatches events to subscribers by event name.

    Units emit from worker threads, so the handler table is locked. A failing
    subscriber is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """Register a callback for an event."""
        with self._lock:
            self._handlers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> bool:
        with self._lock:
            handlers = self._handlers.get(event_name, [])
            if handler in handlers:
                handlers.remove(handler)
                return True
        return False

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        """Emit an event to all subscribers."""
        with self._lock:
            handlers = list(self._handlers.get(event_name, []))
        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                logger.exception("Subscriber for %s failed", event_name)

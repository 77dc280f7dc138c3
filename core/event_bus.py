"""In-process notifications about tracker state."""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Callable
from typing import Any

EventHandler = Callable[[dict[str, Any]], None]

SNAPSHOT_CHANGED = "snapshot.changed"
FREEZE_REJECTED = "freeze.rejected"
GOAL_ARCHIVED = "goal.archived"


class EventBus:
    """Fans tracker events out to subscribers, in subscription order.

    Every delivered payload carries its event name under ``"event"``.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self.emitted: Counter[str] = Counter()

    def subscribe(self, event_name: str, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler``; the returned callable detaches it again."""
        self._handlers[event_name].append(handler)

        def _detach() -> None:
            if handler in self._handlers[event_name]:
                self._handlers[event_name].remove(handler)

        return _detach

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        self.emitted[event_name] += 1
        message = {"event": event_name, **payload}
        for handler in list(self._handlers.get(event_name, [])):
            handler(message)

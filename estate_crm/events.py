from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from typing import Any, Protocol

from estate_crm.context import get_correlation_id


class DomainEvent(Protocol):
    event_type: str
    correlation_id: str | None


EventHandler = Callable[[Any], None]


class InProcessEventSink:
    """Synchronous fan-out to subscribers registered per event type."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)
        self.published: list[Any] = []

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._subscribers[event_type].append(handler)

    def publish(self, event: DomainEvent) -> None:
        if event.correlation_id is None:
            event.correlation_id = get_correlation_id()

        self.published.append(event)
        for handler in self._subscribers.get(event.event_type, []):
            handler(event)

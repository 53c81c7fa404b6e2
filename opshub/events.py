"""Domain events raised by allocation changes.

Subscribers register for an exact event type ("opshub.allocation.reassigned")
or a dotted prefix ending in ``*`` ("opshub.allocation.*"). Delivery is
synchronous and in-process; a failing handler propagates to the publisher.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from opshub.context import get_correlation_id
from opshub.core.time import utcnow

published_events: list[dict[str, Any]] = []


@dataclass
class DomainEvent:
    event_type: str
    envelope: dict[str, Any]

    @property
    def payload(self) -> dict[str, Any]:
        return self.envelope["payload"]


EventHandler = Callable[[DomainEvent], None]


class InProcessEventBus:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, pattern: str, handler: EventHandler) -> None:
        self._subscribers[pattern].append(handler)

    def unsubscribe(self, pattern: str, handler: EventHandler) -> None:
        handlers = self._subscribers.get(pattern, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: DomainEvent) -> None:
        for pattern, handlers in list(self._subscribers.items()):
            if not _matches(pattern, event.event_type):
                continue
            for handler in list(handlers):
                handler(event)


def _matches(pattern: str, event_type: str) -> bool:
    if pattern.endswith("*"):
        return event_type.startswith(pattern[:-1])
    return pattern == event_type


event_bus = InProcessEventBus()


def build_envelope(event_type: str, actor_user_id: int | None, payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "event_id": str(uuid.uuid4()),
        "event_type": event_type,
        "occurred_at": utcnow().isoformat(),
        "actor_user_id": actor_user_id,
        "correlation_id": None,
        "payload": dict(payload),
    }


def publish(envelope: dict[str, Any]) -> None:
    if envelope.get("correlation_id") is None:
        envelope["correlation_id"] = get_correlation_id()

    published_events.append(envelope)
    event_type = envelope.get("event_type")
    if isinstance(event_type, str) and event_type:
        event_bus.publish(DomainEvent(event_type=event_type, envelope=envelope))

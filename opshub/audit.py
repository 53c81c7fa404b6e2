"""In-process audit trail for allocation changes and access denials.

Entries are plain dicts so they can be shipped as-is once an external sink
exists; until then ``audit_entries`` is the trail.
"""

from __future__ import annotations

import uuid
from typing import Any, Protocol

from opshub.context import get_correlation_id
from opshub.core.time import utcnow

audit_entries: list[dict[str, Any]] = []


class Actor(Protocol):
    user_id: int
    correlation_id: str | None


def record(
    actor: Actor,
    entity_type: str,
    entity_id: object,
    action: str,
    before: dict[str, Any] | None = None,
    after: dict[str, Any] | None = None,
) -> dict[str, Any]:
    entry = {
        "id": str(uuid.uuid4()),
        "actor_user_id": str(actor.user_id),
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "action": action,
        "before": before,
        "after": after,
        "correlation_id": actor.correlation_id or get_correlation_id(),
        "occurred_at": utcnow().isoformat(),
    }
    audit_entries.append(entry)
    return entry


def entries_for(entity_type: str, entity_id: object | None = None, *, action: str | None = None) -> list[dict[str, Any]]:
    return [
        entry
        for entry in audit_entries
        if entry["entity_type"] == entity_type
        and (entity_id is None or entry["entity_id"] == str(entity_id))
        and (action is None or entry["action"] == action)
    ]

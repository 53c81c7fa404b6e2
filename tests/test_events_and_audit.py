from __future__ import annotations

from opshub import audit, events
from opshub.context import correlation_scope
from opshub.platform.security.context import ActorUser


def test_prefix_subscription_receives_matching_events() -> None:
    received: list[str] = []

    def handler(event: events.DomainEvent) -> None:
        received.append(event.event_type)

    events.event_bus.subscribe("opshub.allocation.*", handler)
    try:
        events.publish(events.build_envelope("opshub.allocation.reassigned", 1, {"customer_id": 5}))
        events.publish(events.build_envelope("opshub.customer.created", 1, {}))
    finally:
        events.event_bus.unsubscribe("opshub.allocation.*", handler)
    events.publish(events.build_envelope("opshub.allocation.created", 1, {}))

    assert received == ["opshub.allocation.reassigned"]
    assert len(events.published_events) == 3


def test_envelope_picks_up_correlation_id() -> None:
    with correlation_scope("corr-evt"):
        events.publish(events.build_envelope("opshub.allocation.created", 7, {"customer_id": 1}))

    envelope = events.published_events[-1]
    assert envelope["correlation_id"] == "corr-evt"
    assert envelope["payload"] == {"customer_id": 1}


def test_audit_record_and_lookup() -> None:
    actor = ActorUser(user_id=3, user_type="ADMIN")
    with correlation_scope("corr-audit"):
        audit.record(actor, "customer_allocation", 10, "reassign", {"user": 1}, {"user": 2})
    audit.record(actor, "customer_allocation", 11, "create")

    [entry] = audit.entries_for("customer_allocation", 10)
    assert entry["actor_user_id"] == "3"
    assert entry["correlation_id"] == "corr-audit"
    assert entry["after"] == {"user": 2}
    assert len(audit.entries_for("customer_allocation", action="create")) == 1

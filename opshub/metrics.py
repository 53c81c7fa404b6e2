from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

from opshub.core.config import get_settings


access_denied_total = Counter(
    "opshub_access_denied_total",
    "Access decisions denied by the hierarchy gate",
    ["resource", "scope_level"],
)

allocation_changes_total = Counter(
    "opshub_allocation_changes_total",
    "Customer allocation changes by action",
    ["action"],
)

allocation_conflicts_total = Counter(
    "opshub_allocation_conflicts_total",
    "Allocation changes rejected because of a concurrent writer",
    ["action"],
)

allocation_integrity_violations_total = Counter(
    "opshub_allocation_integrity_violations_total",
    "Customers found with more than one active allocation",
)

pii_crypto_failures_total = Counter(
    "opshub_pii_crypto_failures_total",
    "PII cipher failures by operation",
    ["operation"],
)


def _enabled() -> bool:
    return get_settings().metrics_enabled


def observe_access_denied(resource: str, scope_level: str) -> None:
    if _enabled():
        access_denied_total.labels(resource=resource, scope_level=scope_level).inc()


def observe_allocation_change(action: str) -> None:
    if _enabled():
        allocation_changes_total.labels(action=action).inc()


def observe_allocation_conflict(action: str) -> None:
    if _enabled():
        allocation_conflicts_total.labels(action=action).inc()


def observe_allocation_integrity_violation() -> None:
    if _enabled():
        allocation_integrity_violations_total.inc()


def observe_crypto_failure(operation: str) -> None:
    if _enabled():
        pii_crypto_failures_total.labels(operation=operation).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST

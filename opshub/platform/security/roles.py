"""Role normalization and rank ordering.

User types are stored as free-form labels ("ZONE_LEAD", "field_agent", ...).
Every authorization decision works on the normalized form instead:

    ADMIN(6) > CLUSTER_HEAD(5) > CIRCLE_HEAD(4) > ZONE_HEAD(3)
        > AREA_HEAD(2) > STORE_HEAD(1) > AGENT(0) > unknown(-1)

Unknown labels are kept rather than rejected; they rank below every known role.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class CanonicalRole(StrEnum):
    ADMIN = "ADMIN"
    CLUSTER_HEAD = "CLUSTER_HEAD"
    CIRCLE_HEAD = "CIRCLE_HEAD"
    ZONE_HEAD = "ZONE_HEAD"
    AREA_HEAD = "AREA_HEAD"
    STORE_HEAD = "STORE_HEAD"
    AGENT = "AGENT"


@dataclass(frozen=True, slots=True)
class UnknownRole:
    """A label outside the known synonym sets, trimmed and upper-cased."""

    label: str

    def __str__(self) -> str:
        return self.label


RoleLabel = CanonicalRole | UnknownRole

UNKNOWN_RANK = -1

_SYNONYMS: dict[str, CanonicalRole] = {
    "ADMIN": CanonicalRole.ADMIN,
    "CLUSTER_HEAD": CanonicalRole.CLUSTER_HEAD,
    "CLUSTER_LEAD": CanonicalRole.CLUSTER_HEAD,
    "CIRCLE_HEAD": CanonicalRole.CIRCLE_HEAD,
    "CIRCLE_LEAD": CanonicalRole.CIRCLE_HEAD,
    "ZONE_HEAD": CanonicalRole.ZONE_HEAD,
    "ZONE_LEAD": CanonicalRole.ZONE_HEAD,
    "AREA_HEAD": CanonicalRole.AREA_HEAD,
    "AREA_LEAD": CanonicalRole.AREA_HEAD,
    "STORE_HEAD": CanonicalRole.STORE_HEAD,
    "STORE_LEAD": CanonicalRole.STORE_HEAD,
    "STORE": CanonicalRole.STORE_HEAD,
    "AGENT": CanonicalRole.AGENT,
    "FIELD_AGENT": CanonicalRole.AGENT,
    "ANALYST": CanonicalRole.AGENT,
}

_RANKS: dict[CanonicalRole, int] = {
    CanonicalRole.ADMIN: 6,
    CanonicalRole.CLUSTER_HEAD: 5,
    CanonicalRole.CIRCLE_HEAD: 4,
    CanonicalRole.ZONE_HEAD: 3,
    CanonicalRole.AREA_HEAD: 2,
    CanonicalRole.STORE_HEAD: 1,
    CanonicalRole.AGENT: 0,
}


def normalize(raw: str | RoleLabel | None) -> RoleLabel:
    """Map a raw user type onto a canonical role, or an UnknownRole carrying the cleaned label."""

    if isinstance(raw, CanonicalRole | UnknownRole):
        return raw
    cleaned = (raw or "").strip().upper()
    canonical = _SYNONYMS.get(cleaned)
    if canonical is not None:
        return canonical
    return UnknownRole(cleaned)


def normalize_user_type(raw: str | RoleLabel | None) -> str:
    return str(normalize(raw))


def rank(role: str | RoleLabel | None) -> int:
    normalized = normalize(role)
    if isinstance(normalized, CanonicalRole):
        return _RANKS[normalized]
    return UNKNOWN_RANK


def is_above(actor_role: str | RoleLabel | None, target_role: str | RoleLabel | None) -> bool:
    """True iff the actor strictly outranks the target; peers never act on each other."""

    return rank(actor_role) > rank(target_role)


def is_known(role: str | RoleLabel | None) -> bool:
    return isinstance(normalize(role), CanonicalRole)

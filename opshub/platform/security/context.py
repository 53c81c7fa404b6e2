from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol


ASSIGN_CUSTOMERS = "customers.assign"


class ScopeLevel(StrEnum):
    ALL = "ALL"
    CLUSTER = "CLUSTER"
    CIRCLE = "CIRCLE"
    ZONE = "ZONE"
    AREA = "AREA"
    NONE = "NONE"


class Placed(Protocol):
    """Anything that sits in the geography tree through an area reference."""

    user_type: str | None
    area_id: int | None


@dataclass(slots=True)
class ActorUser:
    """The user a request is acting as."""

    user_id: int
    user_type: str | None
    area_id: int | None = None
    permissions: set[str] = field(default_factory=set)
    correlation_id: str | None = None

    @classmethod
    def from_user(
        cls,
        user: Any,
        *,
        permissions: set[str] | None = None,
        correlation_id: str | None = None,
    ) -> ActorUser:
        return cls(
            user_id=user.id,
            user_type=user.user_type,
            area_id=user.area_id,
            permissions=set(permissions or ()),
            correlation_id=correlation_id,
        )

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions


@dataclass(frozen=True, slots=True)
class GeographyContext:
    """Resolved area/zone/circle/cluster ids and names; every field may be absent."""

    area_id: int | None = None
    area_name: str | None = None
    zone_id: int | None = None
    zone_name: str | None = None
    circle_id: int | None = None
    circle_name: str | None = None
    cluster_id: int | None = None
    cluster_name: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.area_id is None

    def id_for(self, level: ScopeLevel) -> int | None:
        if level == ScopeLevel.AREA:
            return self.area_id
        if level == ScopeLevel.ZONE:
            return self.zone_id
        if level == ScopeLevel.CIRCLE:
            return self.circle_id
        if level == ScopeLevel.CLUSTER:
            return self.cluster_id
        return None

    def as_dict(self) -> dict[str, Any]:
        if self.is_empty:
            return {}
        return {
            "areaId": self.area_id,
            "areaName": self.area_name,
            "zoneId": self.zone_id,
            "zoneName": self.zone_name,
            "circleId": self.circle_id,
            "circleName": self.circle_name,
            "clusterId": self.cluster_id,
            "clusterName": self.cluster_name,
        }


@dataclass(frozen=True, slots=True)
class ScopeFilter:
    level: ScopeLevel
    id: int | None = None

    @classmethod
    def all(cls) -> ScopeFilter:
        return cls(level=ScopeLevel.ALL)

    @classmethod
    def deny_all(cls) -> ScopeFilter:
        return cls(level=ScopeLevel.NONE)

    @property
    def is_unrestricted(self) -> bool:
        return self.level == ScopeLevel.ALL

    @property
    def is_deny_all(self) -> bool:
        return self.level == ScopeLevel.NONE

    def contains(self, geography: GeographyContext) -> bool:
        if self.level == ScopeLevel.ALL:
            return True
        if self.level == ScopeLevel.NONE or self.id is None:
            return False
        return geography.id_for(self.level) == self.id

"""
Access gate: who may see or act on which users and customers.

The acting user's normalized role picks the geography level they are
confined to, and their resolved geography context supplies the id at that
level:

    ADMIN                         -> ALL
    CLUSTER_HEAD                  -> CLUSTER id
    CIRCLE_HEAD                   -> CIRCLE id
    ZONE_HEAD                     -> ZONE id
    AREA_HEAD, STORE_HEAD, AGENT  -> AREA id
    unknown role / no geography   -> NONE (deny-all)

An active allocation to a customer always grants visibility of that
customer, even outside the geographic scope.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement, Select, false, or_
from sqlalchemy.orm import Session

from opshub import audit
from opshub.allocations.repository import AllocationRepository, allocation_repository
from opshub.customers.models import Customer
from opshub.geography.repository import GeographyRepository, geography_repository
from opshub.metrics import observe_access_denied
from opshub.platform.security.context import ActorUser, Placed, ScopeFilter, ScopeLevel
from opshub.platform.security.errors import AccessDeniedError
from opshub.platform.security.hierarchy import HierarchyResolver, hierarchy_resolver
from opshub.platform.security.roles import CanonicalRole, is_above, normalize

logger = logging.getLogger("opshub.security.gate")

_ROLE_SCOPE_LEVEL: dict[CanonicalRole, ScopeLevel] = {
    CanonicalRole.ADMIN: ScopeLevel.ALL,
    CanonicalRole.CLUSTER_HEAD: ScopeLevel.CLUSTER,
    CanonicalRole.CIRCLE_HEAD: ScopeLevel.CIRCLE,
    CanonicalRole.ZONE_HEAD: ScopeLevel.ZONE,
    CanonicalRole.AREA_HEAD: ScopeLevel.AREA,
    CanonicalRole.STORE_HEAD: ScopeLevel.AREA,
    CanonicalRole.AGENT: ScopeLevel.AREA,
}


@dataclass(frozen=True, slots=True)
class AccessGate:
    resolver: HierarchyResolver = hierarchy_resolver
    geography: GeographyRepository = geography_repository
    allocations: AllocationRepository = allocation_repository

    def visibility_scope(self, session: Session, actor: Placed) -> ScopeFilter:
        role = normalize(actor.user_type)
        if not isinstance(role, CanonicalRole):
            return ScopeFilter.deny_all()

        level = _ROLE_SCOPE_LEVEL[role]
        if level == ScopeLevel.ALL:
            return ScopeFilter.all()

        geography = self.resolver.resolve_geography(session, actor)
        node_id = geography.id_for(level)
        if node_id is None:
            return ScopeFilter.deny_all()
        return ScopeFilter(level=level, id=node_id)

    def can_act(self, session: Session, actor: Placed, target_user: Placed) -> bool:
        if not is_above(actor.user_type, target_user.user_type):
            return False
        scope = self.visibility_scope(session, actor)
        if scope.is_unrestricted:
            return True
        return scope.contains(self.resolver.resolve_geography(session, target_user))

    def can_view_customer(self, session: Session, actor: ActorUser, customer: Customer) -> bool:
        scope = self.visibility_scope(session, actor)
        if scope.is_unrestricted:
            return True
        if scope.contains(self.resolver.resolve_area(session, customer.area_id)):
            return True
        return self.allocations.exists_active(session, customer.id, actor.user_id)

    def require_act(self, session: Session, actor: ActorUser, target_user: Any) -> None:
        if self.can_act(session, actor, target_user):
            return
        self._deny(session, actor, resource="user", resource_id=target_user.id, reason="target outside rank or scope")

    def require_view_customer(self, session: Session, actor: ActorUser, customer: Customer) -> None:
        if self.can_view_customer(session, actor, customer):
            return
        self._deny(session, actor, resource="customer", resource_id=customer.id, reason="customer outside scope")

    def scoped_area_ids(self, session: Session, scope: ScopeFilter) -> set[int] | None:
        """Area ids an aggregate may cover; None means unrestricted."""

        if scope.is_unrestricted:
            return None
        return self.geography.area_ids_under(session, scope.level, scope.id)

    def apply_scope_filter(
        self,
        stmt: Select[Any],
        scope: ScopeFilter,
        area_column: ColumnElement[Any],
        *,
        allocated_to: int | None = None,
        id_column: ColumnElement[Any] | None = None,
    ) -> Select[Any]:
        """Restrict a query to rows whose area lies within the scope.

        With ``allocated_to`` and ``id_column`` set, rows actively allocated
        to that user are kept as well.
        """

        if scope.is_unrestricted:
            return stmt

        conditions: list[ColumnElement[bool]] = []
        if not scope.is_deny_all:
            area_ids = self.geography.area_ids_select(scope.level, scope.id)
            conditions.append(area_column.in_(area_ids.scalar_subquery()))
        if allocated_to is not None and id_column is not None:
            allocated = self.allocations.active_customer_ids_select(allocated_to)
            conditions.append(id_column.in_(allocated.scalar_subquery()))

        if not conditions:
            return stmt.where(false())
        return stmt.where(or_(*conditions))

    def _deny(self, session: Session, actor: ActorUser, *, resource: str, resource_id: Any, reason: str) -> None:
        scope = self.visibility_scope(session, actor)
        observe_access_denied(resource, scope.level.value)
        logger.warning(
            "access.denied",
            extra={
                "actor_user_id": actor.user_id,
                "resource": resource,
                "scope_level": scope.level.value,
                "scope_id": scope.id,
                "reason": reason,
            },
        )
        audit.record(
            actor,
            resource,
            resource_id,
            "access.denied",
            after={"scope_level": scope.level.value, "scope_id": scope.id, "reason": reason},
        )
        raise AccessDeniedError(resource, reason)


access_gate = AccessGate()

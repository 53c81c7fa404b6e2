from __future__ import annotations

import logging
from collections.abc import Collection, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, NoReturn

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from opshub import audit, events
from opshub.allocations.models import AllocationStatus, CustomerAllocation
from opshub.allocations.repository import AllocationRepository, allocation_repository
from opshub.allocations.schemas import AllocateCustomerRequest, AllocationRead, ReassignCustomerRequest
from opshub.core.time import utcnow
from opshub.customers.models import Customer
from opshub.metrics import (
    observe_allocation_change,
    observe_allocation_conflict,
    observe_allocation_integrity_violation,
)
from opshub.platform.security.context import ASSIGN_CUSTOMERS, ActorUser
from opshub.platform.security.errors import (
    AccessDeniedError,
    ConflictError,
    DataIntegrityError,
    NotFoundError,
    OpsHubError,
    ValidationError,
)
from opshub.platform.security.gate import AccessGate, access_gate
from opshub.platform.security.roles import normalize
from opshub.users.models import User
from opshub.users.repository import UserRepository, user_repository

logger = logging.getLogger("opshub.allocations")

_ACTIVE = AllocationStatus.ACTIVE.value
_INACTIVE = AllocationStatus.INACTIVE.value


@dataclass(frozen=True, slots=True)
class AllocationManager:
    """Owns the rule that a customer has at most one active allocation.

    Every mutation runs as a single transaction that either commits in full
    or is rolled back. Concurrent writers are detected through the
    customer's ``allocation_version`` and, as a backstop, the partial unique
    index on active rows; both surface as ConflictError.
    """

    entity_type = "customer_allocation"

    repository: AllocationRepository = allocation_repository
    users: UserRepository = user_repository
    gate: AccessGate = access_gate

    def active_allocations_for_customer(self, session: Session, customer_id: int) -> list[AllocationRead]:
        return [AllocationRead.model_validate(item) for item in self._active_for_customer(session, customer_id)]

    def active_allocations_for_user(self, session: Session, user_id: int) -> list[AllocationRead]:
        return [AllocationRead.model_validate(item) for item in self.repository.find_active_by_user(session, user_id)]

    def allocation_history(self, session: Session, customer_id: int) -> list[AllocationRead]:
        return [AllocationRead.model_validate(item) for item in self.repository.find_by_customer(session, customer_id)]

    def count_active_for_user(self, session: Session, user_id: int) -> int:
        return self.repository.count_active_by_user(session, user_id)

    def customers_visible_to(self, session: Session, user_id: int) -> list[Customer]:
        return self.repository.customers_with_active_allocation_to(session, user_id)

    def sum_pending_amount(self, session: Session, area_ids: Collection[int] | None) -> Decimal:
        return self.repository.sum_pending_amount(session, area_ids)

    def count_by_status(self, session: Session, area_ids: Collection[int] | None) -> dict[str, int]:
        return self.repository.count_by_status(session, area_ids)

    def list_active_allocations(self, session: Session, actor: ActorUser) -> list[AllocationRead]:
        self._enforce_assign_permission(actor)
        scope = self.gate.visibility_scope(session, actor)
        stmt = (
            select(CustomerAllocation)
            .join(Customer, Customer.id == CustomerAllocation.customer_id)
            .where(CustomerAllocation.status == _ACTIVE)
        )
        stmt = self.gate.apply_scope_filter(stmt, scope, Customer.area_id)
        rows = session.scalars(stmt.order_by(CustomerAllocation.id.asc())).all()
        return [AllocationRead.model_validate(item) for item in rows]

    def allocate(self, session: Session, actor: ActorUser, request: AllocateCustomerRequest) -> AllocationRead:
        self._enforce_assign_permission(actor)
        with _rollback_on_rejection(session):
            customer = self._lock_customer(session, request.customer_id)
            self.gate.require_view_customer(session, actor, customer)
            assignee = self._get_assignee(session, request.user_id)
            role_code = self._role_code(request.role_code, assignee)

            active = self._active_for_customer(session, customer.id)
            if active:
                if active[0].user_id == assignee.id:
                    raise ValidationError("customer is already allocated to this user")
                raise ValidationError("customer already has an active allocation; reassign it instead")

            self._bump_version(session, customer.id, customer.allocation_version, action="allocate")
            allocation = CustomerAllocation(
                customer_id=customer.id,
                user_id=assignee.id,
                role_code=role_code,
                allocation_type=request.allocation_type.value,
                status=_ACTIVE,
                allocated_by_id=actor.user_id,
                allocated_at=utcnow(),
                notes=request.notes,
            )
            session.add(allocation)
            self._flush(session, action="allocate")
            after = self._snapshot(allocation, customer)
            session.commit()

        self._record(actor, after["allocation_id"], action="create", before=None, after=after)
        self._publish(actor, "opshub.allocation.created", after)
        observe_allocation_change("allocate")
        logger.info(
            "allocation.created",
            extra={
                "customer_id": after["customer_id"],
                "user_id": after["user_id"],
                "allocation_id": after["allocation_id"],
                "actor_user_id": actor.user_id,
            },
        )
        return AllocationRead.model_validate(allocation)

    def reassign(self, session: Session, actor: ActorUser, request: ReassignCustomerRequest) -> AllocationRead:
        """Move a customer to a new assignee in one atomic step.

        ``expected_version`` is the customer's ``allocation_version`` as the
        caller last read it. If any allocation change committed since then,
        ConflictError is raised and nothing is changed, so of two writers that
        read the same state only the first succeeds.
        """

        self._enforce_assign_permission(actor)
        with _rollback_on_rejection(session):
            customer = self._lock_customer(session, request.customer_id)
            self.gate.require_view_customer(session, actor, customer)
            assignee = self._get_assignee(session, request.new_user_id)
            role_code = self._role_code(request.role_code, assignee)

            active = self._active_for_customer(session, customer.id)
            if active and active[0].user_id == assignee.id:
                raise ValidationError("customer is already allocated to this user")
            before: dict[str, Any] = {
                "customer_id": customer.id,
                "customer_code": customer.customer_code,
                "active_allocation_ids": [item.id for item in active],
                "previous_user_ids": [item.user_id for item in active],
            }

            self._bump_version(session, customer.id, request.expected_version, action="reassign")

            now = utcnow()
            deactivation_reason = f"Reassigned to user {assignee.employee_id}"
            if request.reason:
                deactivation_reason = f"{deactivation_reason}: {request.reason}"
            for existing in active:
                existing.status = _INACTIVE
                existing.deallocated_at = now
                existing.deallocation_reason = deactivation_reason[:500]
            self._flush(session, action="reassign")

            allocation = CustomerAllocation(
                customer_id=customer.id,
                user_id=assignee.id,
                role_code=role_code,
                allocation_type=request.allocation_type.value,
                status=_ACTIVE,
                allocated_by_id=actor.user_id,
                allocated_at=now,
                notes=request.notes,
            )
            session.add(allocation)
            self._flush(session, action="reassign")

            after = self._snapshot(allocation, customer)
            after["reason"] = request.reason
            after["deactivated_allocations"] = len(active)
            deactivated = [
                {"allocation_id": item.id, "customer_id": customer.id, "user_id": item.user_id} for item in active
            ]
            session.commit()

        self._record(actor, after["allocation_id"], action="reassign", before=before, after=after)
        for payload in deactivated:
            self._publish(actor, "opshub.allocation.deactivated", payload)
        self._publish(actor, "opshub.allocation.reassigned", after)
        observe_allocation_change("reassign")
        logger.info(
            "allocation.reassigned",
            extra={
                "customer_id": after["customer_id"],
                "user_id": after["user_id"],
                "allocation_id": after["allocation_id"],
                "actor_user_id": actor.user_id,
                "reason": request.reason,
            },
        )
        return AllocationRead.model_validate(allocation)

    def deallocate(
        self,
        session: Session,
        actor: ActorUser,
        customer_id: int,
        user_id: int,
        reason: str | None = None,
    ) -> AllocationRead:
        self._enforce_assign_permission(actor)
        with _rollback_on_rejection(session):
            customer = self._lock_customer(session, customer_id)
            self.gate.require_view_customer(session, actor, customer)

            allocation = self.repository.find_active_by_customer_and_user(session, customer.id, user_id)
            if allocation is None:
                raise NotFoundError("active allocation", f"customer={customer_id} user={user_id}")

            self._bump_version(session, customer.id, customer.allocation_version, action="deallocate")
            allocation.status = _INACTIVE
            allocation.deallocated_at = utcnow()
            allocation.deallocation_reason = reason
            self._flush(session, action="deallocate")
            allocation_id = allocation.id
            session.commit()

        self._record(
            actor,
            allocation_id,
            action="deallocate",
            before={"status": _ACTIVE},
            after={"status": _INACTIVE, "deallocation_reason": reason},
        )
        self._publish(
            actor,
            "opshub.allocation.deactivated",
            {"allocation_id": allocation_id, "customer_id": customer_id, "user_id": user_id, "reason": reason},
        )
        observe_allocation_change("deallocate")
        logger.info(
            "allocation.deallocated",
            extra={
                "customer_id": customer_id,
                "user_id": user_id,
                "allocation_id": allocation_id,
                "actor_user_id": actor.user_id,
                "reason": reason,
            },
        )
        return AllocationRead.model_validate(allocation)

    def _active_for_customer(self, session: Session, customer_id: int) -> list[CustomerAllocation]:
        active = self.repository.find_active_by_customer(session, customer_id)
        if len(active) > 1:
            observe_allocation_integrity_violation()
            logger.error(
                "allocation.integrity_violation",
                extra={
                    "customer_id": customer_id,
                    "error": f"{len(active)} active allocations: {[item.id for item in active]}",
                },
            )
            raise DataIntegrityError(
                f"customer {customer_id} has {len(active)} active allocations; expected at most one"
            )
        return active

    def _lock_customer(self, session: Session, customer_id: int) -> Customer:
        customer = session.scalar(select(Customer).where(Customer.id == customer_id).with_for_update())
        if customer is None:
            raise NotFoundError("customer", customer_id)
        return customer

    def _get_assignee(self, session: Session, user_id: int) -> User:
        assignee = self.users.get(session, user_id)
        if assignee is None:
            raise NotFoundError("user", user_id)
        if not assignee.active:
            raise ValidationError(f"user {user_id} is inactive")
        return assignee

    @staticmethod
    def _role_code(requested: str | None, assignee: User) -> str | None:
        """The role an allocation is made under; it must be the assignee's own role."""

        held = normalize(assignee.user_type)
        if requested is None:
            return str(held) or None
        role = normalize(requested)
        if role != held:
            raise ValidationError(f"user {assignee.id} does not hold role {role}")
        return str(role)

    def _bump_version(self, session: Session, customer_id: int, expected_version: int, *, action: str) -> None:
        result = session.execute(
            update(Customer)
            .where(Customer.id == customer_id, Customer.allocation_version == expected_version)
            .values(allocation_version=Customer.allocation_version + 1, updated_at=utcnow())
        )
        if result.rowcount == 0:
            session.rollback()
            self._conflict(customer_id, action)

    def _flush(self, session: Session, *, action: str) -> None:
        try:
            session.flush()
        except IntegrityError:
            session.rollback()
            self._conflict(None, action)

    @staticmethod
    def _conflict(customer_id: int | None, action: str) -> NoReturn:
        observe_allocation_conflict(action)
        logger.warning("allocation.conflict", extra={"customer_id": customer_id, "action": action})
        raise ConflictError("customer allocation was changed concurrently; retry the operation")

    @staticmethod
    def _enforce_assign_permission(actor: ActorUser) -> None:
        if not actor.has_permission(ASSIGN_CUSTOMERS):
            raise AccessDeniedError("customer_allocation", "insufficient permissions to allocate customers")

    @staticmethod
    def _snapshot(allocation: CustomerAllocation, customer: Customer) -> dict[str, Any]:
        return {
            "allocation_id": allocation.id,
            "customer_id": customer.id,
            "customer_code": customer.customer_code,
            "user_id": allocation.user_id,
            "role_code": allocation.role_code,
            "allocation_type": allocation.allocation_type,
            "status": allocation.status,
        }

    def _record(
        self,
        actor: ActorUser,
        allocation_id: int,
        *,
        action: str,
        before: dict[str, Any] | None,
        after: dict[str, Any] | None,
    ) -> None:
        audit.record(actor, self.entity_type, allocation_id, action, before, after)

    @staticmethod
    def _publish(actor: ActorUser, event_type: str, payload: dict[str, Any]) -> None:
        envelope = events.build_envelope(event_type, actor.user_id, payload)
        envelope["correlation_id"] = actor.correlation_id
        events.publish(envelope)


@contextmanager
def _rollback_on_rejection(session: Session) -> Iterator[None]:
    # Releases the customer row lock taken before the rejection.
    try:
        yield
    except OpsHubError:
        session.rollback()
        raise


allocation_manager = AllocationManager()

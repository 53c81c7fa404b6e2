from __future__ import annotations

from collections.abc import Collection
from decimal import Decimal
from typing import Any

from sqlalchemy import Select, exists, false, func, select
from sqlalchemy.orm import Session

from opshub.allocations.models import AllocationStatus, CustomerAllocation
from opshub.customers.models import Customer

_ACTIVE = AllocationStatus.ACTIVE.value


class AllocationRepository:
    def get(self, session: Session, allocation_id: int) -> CustomerAllocation | None:
        return session.get(CustomerAllocation, allocation_id)

    def find_active_by_customer(self, session: Session, customer_id: int) -> list[CustomerAllocation]:
        stmt = select(CustomerAllocation).where(
            CustomerAllocation.customer_id == customer_id,
            CustomerAllocation.status == _ACTIVE,
        )
        return list(session.scalars(stmt.order_by(CustomerAllocation.id.asc())).all())

    def find_active_by_user(self, session: Session, user_id: int) -> list[CustomerAllocation]:
        stmt = select(CustomerAllocation).where(
            CustomerAllocation.user_id == user_id,
            CustomerAllocation.status == _ACTIVE,
        )
        return list(session.scalars(stmt.order_by(CustomerAllocation.id.asc())).all())

    def find_active_by_customer_and_user(
        self,
        session: Session,
        customer_id: int,
        user_id: int,
    ) -> CustomerAllocation | None:
        stmt = select(CustomerAllocation).where(
            CustomerAllocation.customer_id == customer_id,
            CustomerAllocation.user_id == user_id,
            CustomerAllocation.status == _ACTIVE,
        )
        return session.scalar(stmt.limit(1))

    def exists_active(self, session: Session, customer_id: int, user_id: int) -> bool:
        return bool(
            session.scalar(
                select(
                    exists().where(
                        CustomerAllocation.customer_id == customer_id,
                        CustomerAllocation.user_id == user_id,
                        CustomerAllocation.status == _ACTIVE,
                    )
                )
            )
        )

    def find_by_customer(self, session: Session, customer_id: int) -> list[CustomerAllocation]:
        stmt = select(CustomerAllocation).where(CustomerAllocation.customer_id == customer_id)
        return list(session.scalars(stmt.order_by(CustomerAllocation.id.asc())).all())

    def find_by_status(self, session: Session, status: str) -> list[CustomerAllocation]:
        stmt = select(CustomerAllocation).where(CustomerAllocation.status == status)
        return list(session.scalars(stmt.order_by(CustomerAllocation.id.asc())).all())

    def count_active_by_user(self, session: Session, user_id: int) -> int:
        stmt = select(func.count(CustomerAllocation.id)).where(
            CustomerAllocation.user_id == user_id,
            CustomerAllocation.status == _ACTIVE,
        )
        return int(session.scalar(stmt) or 0)

    def active_customer_ids_select(self, user_id: int) -> Select[Any]:
        return select(CustomerAllocation.customer_id).where(
            CustomerAllocation.user_id == user_id,
            CustomerAllocation.status == _ACTIVE,
        )

    def customers_with_active_allocation_to(self, session: Session, user_id: int) -> list[Customer]:
        stmt = (
            select(Customer)
            .where(Customer.id.in_(self.active_customer_ids_select(user_id).scalar_subquery()))
            .order_by(Customer.id.asc())
        )
        return list(session.scalars(stmt).all())

    def sum_pending_amount(self, session: Session, area_ids: Collection[int] | None) -> Decimal:
        stmt = select(func.coalesce(func.sum(Customer.pending_amount), 0))
        if area_ids is not None:
            stmt = stmt.where(Customer.area_id.in_(list(area_ids)) if area_ids else false())
        return Decimal(str(session.scalar(stmt) or 0))

    def count_by_status(self, session: Session, area_ids: Collection[int] | None) -> dict[str, int]:
        stmt = select(Customer.status, func.count(Customer.id)).group_by(Customer.status)
        if area_ids is not None:
            stmt = stmt.where(Customer.area_id.in_(list(area_ids)) if area_ids else false())
        return {status: int(count) for status, count in session.execute(stmt).all()}


allocation_repository = AllocationRepository()

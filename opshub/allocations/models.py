from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from opshub.core.database import Base
from opshub.core.time import utcnow


class AllocationStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class AllocationType(StrEnum):
    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"
    TEMPORARY = "TEMPORARY"


class CustomerAllocation(Base):
    __tablename__ = "customer_allocations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    role_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    allocation_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=AllocationType.PRIMARY.value,
        server_default=AllocationType.PRIMARY.value,
    )
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=AllocationStatus.ACTIVE.value,
        server_default=AllocationStatus.ACTIVE.value,
    )
    allocated_by_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    allocated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    deallocated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deallocation_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    __table_args__ = (
        # At most one ACTIVE row per customer, enforced by storage as well as by the manager.
        Index(
            "uq_customer_allocations_active_customer",
            "customer_id",
            unique=True,
            sqlite_where=text("status = 'ACTIVE'"),
            postgresql_where=text("status = 'ACTIVE'"),
        ),
        Index("ix_customer_allocations_user_status", "user_id", "status"),
    )

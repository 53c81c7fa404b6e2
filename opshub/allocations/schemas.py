from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from opshub.allocations.models import AllocationType


class AllocateCustomerRequest(BaseModel):
    customer_id: int
    user_id: int
    role_code: str | None = None
    allocation_type: AllocationType = AllocationType.PRIMARY
    notes: str | None = Field(default=None, max_length=1000)


class ReassignCustomerRequest(BaseModel):
    customer_id: int
    new_user_id: int
    reason: str | None = Field(default=None, max_length=400)
    role_code: str | None = None
    allocation_type: AllocationType = AllocationType.PRIMARY
    notes: str | None = Field(default=None, max_length=1000)
    # allocation_version the caller read before deciding to reassign; a mismatch is a conflict.
    expected_version: int


class AllocationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_id: int
    user_id: int
    role_code: str | None
    allocation_type: str
    status: str
    allocated_by_id: int | None
    allocated_at: datetime
    deallocated_at: datetime | None
    deallocation_reason: str | None
    notes: str | None


class PortfolioSummary(BaseModel):
    total_pending_amount: Decimal
    status_counts: dict[str, int]

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class CustomerCreate(BaseModel):
    customer_code: str = Field(min_length=1, max_length=50)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    area_id: int | None = None
    status: str = "ACTIVE"
    pending_amount: Decimal = Decimal("0")
    phone: str = Field(min_length=1, max_length=20)
    alternate_phone: str | None = Field(default=None, max_length=20)
    email: str | None = Field(default=None, max_length=255)


class CustomerRead(BaseModel):
    """Customer with PII decrypted for display."""

    id: int
    customer_code: str
    first_name: str
    last_name: str | None
    area_id: int | None
    status: str
    pending_amount: Decimal
    phone: str
    alternate_phone: str | None
    email: str | None
    allocation_version: int
    created_at: datetime
    updated_at: datetime

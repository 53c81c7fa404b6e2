from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from opshub import audit
from opshub.allocations.schemas import PortfolioSummary
from opshub.allocations.service import AllocationManager, allocation_manager
from opshub.customers.models import CUSTOMER_STATUSES, Customer
from opshub.customers.repository import CustomerRepository, customer_repository
from opshub.customers.schemas import CustomerCreate, CustomerRead
from opshub.geography.repository import GeographyRepository, geography_repository
from opshub.platform.security.cipher import PiiCipher, get_pii_cipher
from opshub.platform.security.context import ActorUser
from opshub.platform.security.errors import CryptoError, NotFoundError, ValidationError
from opshub.platform.security.gate import AccessGate, access_gate

logger = logging.getLogger("opshub.customers")


@dataclass(frozen=True, slots=True)
class CustomerService:
    repository: CustomerRepository = customer_repository
    geography: GeographyRepository = geography_repository
    allocations: AllocationManager = allocation_manager
    gate: AccessGate = access_gate
    cipher: PiiCipher | None = None

    def _get_cipher(self) -> PiiCipher:
        return self.cipher or get_pii_cipher()

    def register_customer(self, session: Session, actor: ActorUser, dto: CustomerCreate) -> CustomerRead:
        code = dto.customer_code.strip().upper()
        if not code:
            raise ValidationError("customer code cannot be empty")
        phone = dto.phone.strip()
        if not phone:
            raise ValidationError("phone cannot be empty")
        status = dto.status.strip().upper()
        if status not in CUSTOMER_STATUSES:
            raise ValidationError(f"unsupported customer status: {dto.status}")
        if dto.area_id is not None and self.geography.get_area(session, dto.area_id) is None:
            raise NotFoundError("area", dto.area_id)
        if self.repository.exists_by_customer_code(session, code):
            raise ValidationError(f"customer code already in use: {code}")

        cipher = self._get_cipher()
        phone_encrypted = cipher.encrypt(phone)
        if self.repository.exists_by_phone_encrypted(session, phone_encrypted):
            raise ValidationError("a customer with this phone number already exists")

        customer = Customer(
            customer_code=code,
            first_name=dto.first_name.strip(),
            last_name=dto.last_name,
            area_id=dto.area_id,
            status=status,
            pending_amount=dto.pending_amount,
            phone_encrypted=phone_encrypted,
            alternate_phone_encrypted=cipher.encrypt_optional(dto.alternate_phone),
            email_encrypted=cipher.encrypt_optional(dto.email),
        )
        session.add(customer)
        try:
            session.flush()
        except IntegrityError:
            session.rollback()
            raise ValidationError(f"customer code already in use: {code}")

        audit.record(
            actor,
            "customer",
            customer.id,
            "create",
            after={"customer_code": code, "area_id": customer.area_id, "status": status},
        )
        session.commit()
        session.refresh(customer)
        logger.info(
            "customer.registered",
            extra={"customer_id": customer.id, "actor_user_id": actor.user_id},
        )
        return self._to_read(customer)

    def get_customer(self, session: Session, actor: ActorUser, customer_id: int) -> CustomerRead:
        customer = self.repository.get(session, customer_id)
        if customer is None:
            raise NotFoundError("customer", customer_id)
        self.gate.require_view_customer(session, actor, customer)
        return self._to_read(customer)

    def list_customers(self, session: Session, actor: ActorUser, *, status: str | None = None) -> list[CustomerRead]:
        """Customers inside the actor's scope plus those actively allocated to them."""

        scope = self.gate.visibility_scope(session, actor)
        stmt = select(Customer)
        if status is not None:
            stmt = stmt.where(Customer.status == status.strip().upper())
        stmt = self.gate.apply_scope_filter(
            stmt,
            scope,
            Customer.area_id,
            allocated_to=actor.user_id,
            id_column=Customer.id,
        )
        rows = session.scalars(stmt.order_by(Customer.id.asc())).all()
        return [self._to_read(customer) for customer in rows]

    def portfolio_summary(self, session: Session, actor: ActorUser) -> PortfolioSummary:
        area_ids = self.gate.scoped_area_ids(session, self.gate.visibility_scope(session, actor))
        return PortfolioSummary(
            total_pending_amount=self.allocations.sum_pending_amount(session, area_ids),
            status_counts=self.allocations.count_by_status(session, area_ids),
        )

    def _to_read(self, customer: Customer) -> CustomerRead:
        cipher = self._get_cipher()
        try:
            phone = cipher.decrypt(customer.phone_encrypted)
            alternate_phone = cipher.decrypt_optional(customer.alternate_phone_encrypted)
            email = cipher.decrypt_optional(customer.email_encrypted)
        except CryptoError:
            logger.error("customer.pii_unreadable", extra={"customer_id": customer.id})
            raise
        return CustomerRead(
            id=customer.id,
            customer_code=customer.customer_code,
            first_name=customer.first_name,
            last_name=customer.last_name,
            area_id=customer.area_id,
            status=customer.status,
            pending_amount=customer.pending_amount,
            phone=phone,
            alternate_phone=alternate_phone,
            email=email,
            allocation_version=customer.allocation_version,
            created_at=customer.created_at,
            updated_at=customer.updated_at,
        )


customer_service = CustomerService()

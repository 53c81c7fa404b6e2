from __future__ import annotations

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from opshub.customers.models import Customer
from opshub.platform.security.cipher import PiiCipher, get_pii_cipher


class CustomerRepository:
    def get(self, session: Session, customer_id: int) -> Customer | None:
        return session.get(Customer, customer_id)

    def find_by_customer_code(self, session: Session, customer_code: str) -> Customer | None:
        return session.scalar(select(Customer).where(Customer.customer_code == customer_code))

    def exists_by_customer_code(self, session: Session, customer_code: str) -> bool:
        return bool(session.scalar(select(exists().where(Customer.customer_code == customer_code))))

    def exists_by_phone_encrypted(self, session: Session, phone_encrypted: str) -> bool:
        # Ciphertext equality only works because encryption is deterministic.
        return bool(session.scalar(select(exists().where(Customer.phone_encrypted == phone_encrypted))))

    def exists_by_phone(self, session: Session, phone: str, cipher: PiiCipher | None = None) -> bool:
        return self.exists_by_phone_encrypted(session, (cipher or get_pii_cipher()).encrypt(phone))

    def list_by_area(self, session: Session, area_id: int) -> list[Customer]:
        stmt = select(Customer).where(Customer.area_id == area_id).order_by(Customer.id.asc())
        return list(session.scalars(stmt).all())

    def list_by_status(self, session: Session, status: str) -> list[Customer]:
        stmt = select(Customer).where(Customer.status == status).order_by(Customer.id.asc())
        return list(session.scalars(stmt).all())


customer_repository = CustomerRepository()

from __future__ import annotations

import itertools
from collections.abc import Callable, Generator
from dataclasses import dataclass
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from opshub import audit, events
from opshub.core.config import get_settings
from opshub.core.database import Base
from opshub.customers.models import Customer
from opshub.geography.models import Area, Circle, Cluster, Zone
from opshub.platform.security.cipher import get_pii_cipher
from opshub.users.models import User
import opshub.models  # noqa: F401


@pytest.fixture(autouse=True)
def _reset_state() -> Generator[None, None, None]:
    audit.audit_entries.clear()
    events.published_events.clear()
    get_settings.cache_clear()
    get_pii_cipher.cache_clear()
    yield
    get_settings.cache_clear()
    get_pii_cipher.cache_clear()


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@dataclass
class GeoTree:
    """Cluster 1 holding circle 7 (zone 70, area 700) and circle 9 (zone 90, area 900)."""

    cluster: Cluster
    circle_7: Circle
    circle_9: Circle
    zone_70: Zone
    zone_90: Zone
    area_700: Area
    area_900: Area


@pytest.fixture()
def geo(db_session: Session) -> GeoTree:
    cluster = Cluster(id=1, code="K1", name="North Cluster")
    circle_7 = Circle(id=7, code="C7", name="Circle Seven", cluster_id=1)
    circle_9 = Circle(id=9, code="C9", name="Circle Nine", cluster_id=1)
    zone_70 = Zone(id=70, code="Z70", name="Zone Seventy", circle_id=7)
    zone_90 = Zone(id=90, code="Z90", name="Zone Ninety", circle_id=9)
    area_700 = Area(id=700, code="A700", name="Area Seven Hundred", zone_id=70)
    area_900 = Area(id=900, code="A900", name="Area Nine Hundred", zone_id=90)
    db_session.add_all([cluster, circle_7, circle_9, zone_70, zone_90, area_700, area_900])
    db_session.commit()
    return GeoTree(cluster, circle_7, circle_9, zone_70, zone_90, area_700, area_900)


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    def _make(employee_id: str, user_type: str, area_id: int | None, *, active: bool = True) -> User:
        user = User(
            employee_id=employee_id,
            username=employee_id.lower(),
            email=f"{employee_id.lower()}@example.com",
            full_name=employee_id,
            user_type=user_type,
            area_id=area_id,
            active=active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_customer(db_session: Session) -> Callable[..., Customer]:
    phones = itertools.count(9000000001)

    def _make(
        code: str,
        area_id: int | None,
        *,
        phone: str | None = None,
        status: str = "ACTIVE",
        pending_amount: Decimal = Decimal("0"),
    ) -> Customer:
        customer = Customer(
            customer_code=code,
            first_name=code.title(),
            area_id=area_id,
            status=status,
            pending_amount=pending_amount,
            phone_encrypted=get_pii_cipher().encrypt(phone or str(next(phones))),
        )
        db_session.add(customer)
        db_session.commit()
        db_session.refresh(customer)
        return customer

    return _make

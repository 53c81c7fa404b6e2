from __future__ import annotations

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from opshub.geography.repository import GeographyRepository, geography_repository
from opshub.platform.security.context import ScopeLevel
from opshub.users.models import User


class UserRepository:
    def __init__(self, geography: GeographyRepository = geography_repository) -> None:
        self.geography = geography

    def get(self, session: Session, user_id: int) -> User | None:
        return session.get(User, user_id)

    def find_by_employee_id(self, session: Session, employee_id: str) -> User | None:
        return session.scalar(select(User).where(User.employee_id == employee_id))

    def find_by_username(self, session: Session, username: str) -> User | None:
        return session.scalar(select(User).where(User.username == username))

    def find_by_email(self, session: Session, email: str) -> User | None:
        return session.scalar(select(User).where(User.email == email))

    def exists_by_employee_id(self, session: Session, employee_id: str) -> bool:
        return bool(session.scalar(select(exists().where(User.employee_id == employee_id))))

    def exists_by_username(self, session: Session, username: str) -> bool:
        return bool(session.scalar(select(exists().where(User.username == username))))

    def exists_by_email(self, session: Session, email: str) -> bool:
        return bool(session.scalar(select(exists().where(User.email == email))))

    def list_by_area(self, session: Session, area_id: int) -> list[User]:
        return self._list_under(session, ScopeLevel.AREA, area_id)

    def list_by_zone(self, session: Session, zone_id: int) -> list[User]:
        return self._list_under(session, ScopeLevel.ZONE, zone_id)

    def list_by_circle(self, session: Session, circle_id: int) -> list[User]:
        return self._list_under(session, ScopeLevel.CIRCLE, circle_id)

    def list_by_cluster(self, session: Session, cluster_id: int) -> list[User]:
        return self._list_under(session, ScopeLevel.CLUSTER, cluster_id)

    def list_by_area_and_type(self, session: Session, area_id: int, user_type: str) -> list[User]:
        stmt = select(User).where(User.area_id == area_id, User.user_type == user_type).order_by(User.id.asc())
        return list(session.scalars(stmt).all())

    def list_in_areas(self, session: Session, level: ScopeLevel, node_id: int | None) -> list[User]:
        return self._list_under(session, level, node_id)

    def _list_under(self, session: Session, level: ScopeLevel, node_id: int | None) -> list[User]:
        area_ids = self.geography.area_ids_select(level, node_id)
        stmt = select(User).where(User.area_id.in_(area_ids.scalar_subquery())).order_by(User.id.asc())
        return list(session.scalars(stmt).all())


user_repository = UserRepository()

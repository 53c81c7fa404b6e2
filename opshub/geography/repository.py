from __future__ import annotations

from typing import Any

from sqlalchemy import Select, exists, false, func, select
from sqlalchemy.orm import Session

from opshub.geography.models import Area, Circle, Cluster, Zone
from opshub.platform.security.context import ScopeLevel


class GeographyRepository:
    """Lookups over the cluster -> circle -> zone -> area tree.

    Parents are always resolved by explicit id lookups; no relationship
    loading is relied upon.
    """

    def get_cluster(self, session: Session, cluster_id: int) -> Cluster | None:
        return session.get(Cluster, cluster_id)

    def get_circle(self, session: Session, circle_id: int) -> Circle | None:
        return session.get(Circle, circle_id)

    def get_zone(self, session: Session, zone_id: int) -> Zone | None:
        return session.get(Zone, zone_id)

    def get_area(self, session: Session, area_id: int) -> Area | None:
        return session.get(Area, area_id)

    def find_cluster_by_code(self, session: Session, code: str) -> Cluster | None:
        return session.scalar(select(Cluster).where(Cluster.code == code))

    def find_circle_by_code(self, session: Session, code: str) -> Circle | None:
        return session.scalar(select(Circle).where(Circle.code == code))

    def find_zone_by_code(self, session: Session, code: str) -> Zone | None:
        return session.scalar(select(Zone).where(Zone.code == code))

    def find_area_by_code(self, session: Session, code: str) -> Area | None:
        return session.scalar(select(Area).where(Area.code == code))

    def find_area_by_name(self, session: Session, name: str) -> Area | None:
        return session.scalar(select(Area).where(func.lower(Area.name) == name.strip().lower()).limit(1))

    def exists_cluster_by_code(self, session: Session, code: str) -> bool:
        return bool(session.scalar(select(exists().where(Cluster.code == code))))

    def exists_circle_by_code(self, session: Session, code: str) -> bool:
        return bool(session.scalar(select(exists().where(Circle.code == code))))

    def exists_zone_by_code(self, session: Session, code: str) -> bool:
        return bool(session.scalar(select(exists().where(Zone.code == code))))

    def exists_area_by_code(self, session: Session, code: str) -> bool:
        return bool(session.scalar(select(exists().where(Area.code == code))))

    def list_clusters(self, session: Session, *, active_only: bool = False) -> list[Cluster]:
        stmt = select(Cluster)
        if active_only:
            stmt = stmt.where(Cluster.active.is_(True))
        return list(session.scalars(stmt.order_by(Cluster.name.asc())).all())

    def list_circles_by_cluster(self, session: Session, cluster_id: int, *, active_only: bool = False) -> list[Circle]:
        stmt = select(Circle).where(Circle.cluster_id == cluster_id)
        if active_only:
            stmt = stmt.where(Circle.active.is_(True))
        return list(session.scalars(stmt.order_by(Circle.name.asc())).all())

    def list_zones_by_circle(self, session: Session, circle_id: int, *, active_only: bool = False) -> list[Zone]:
        stmt = select(Zone).where(Zone.circle_id == circle_id)
        if active_only:
            stmt = stmt.where(Zone.active.is_(True))
        return list(session.scalars(stmt.order_by(Zone.name.asc())).all())

    def list_areas_by_zone(self, session: Session, zone_id: int, *, active_only: bool = False) -> list[Area]:
        stmt = select(Area).where(Area.zone_id == zone_id)
        if active_only:
            stmt = stmt.where(Area.active.is_(True))
        return list(session.scalars(stmt.order_by(Area.name.asc())).all())

    def area_ids_select(self, level: ScopeLevel, node_id: int | None) -> Select[Any]:
        """Select the ids of every area under the given node at the given level."""

        if level == ScopeLevel.ALL:
            return select(Area.id)
        if level == ScopeLevel.NONE or node_id is None:
            return select(Area.id).where(false())
        if level == ScopeLevel.AREA:
            return select(Area.id).where(Area.id == node_id)
        if level == ScopeLevel.ZONE:
            return select(Area.id).where(Area.zone_id == node_id)
        if level == ScopeLevel.CIRCLE:
            return select(Area.id).join(Zone, Area.zone_id == Zone.id).where(Zone.circle_id == node_id)
        return (
            select(Area.id)
            .join(Zone, Area.zone_id == Zone.id)
            .join(Circle, Zone.circle_id == Circle.id)
            .where(Circle.cluster_id == node_id)
        )

    def area_ids_under(self, session: Session, level: ScopeLevel, node_id: int | None) -> set[int]:
        return set(session.scalars(self.area_ids_select(level, node_id)).all())


geography_repository = GeographyRepository()

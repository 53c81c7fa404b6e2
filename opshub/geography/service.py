from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from opshub.geography.models import Area, Circle, Cluster, Zone
from opshub.geography.repository import GeographyRepository, geography_repository
from opshub.geography.schemas import AreaOption, CircleOption, ClusterOption, GeographyNodeCreate, ZoneOption
from opshub.platform.security.errors import NotFoundError, ValidationError

logger = logging.getLogger("opshub.geography")

NodeT = TypeVar("NodeT", Cluster, Circle, Zone, Area)


def _clean_code(value: str | None) -> str:
    code = (value or "").strip().upper()
    if not code:
        raise ValidationError("code cannot be empty")
    return code


def _clean_name(value: str | None) -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationError("name cannot be empty")
    return name


@dataclass(frozen=True, slots=True)
class GeographyService:
    repository: GeographyRepository = geography_repository

    def create_cluster(self, session: Session, dto: GeographyNodeCreate) -> Cluster:
        code = _clean_code(dto.code)
        if self.repository.exists_cluster_by_code(session, code):
            raise ValidationError(f"cluster code already in use: {code}")
        cluster = Cluster(code=code, name=_clean_name(dto.name), description=dto.description)
        return self._persist(session, cluster)

    def create_circle(self, session: Session, dto: GeographyNodeCreate) -> Circle:
        code = _clean_code(dto.code)
        if dto.parent_id is None or self.repository.get_cluster(session, dto.parent_id) is None:
            raise NotFoundError("cluster", dto.parent_id)
        if self.repository.exists_circle_by_code(session, code):
            raise ValidationError(f"circle code already in use: {code}")
        circle = Circle(code=code, name=_clean_name(dto.name), description=dto.description, cluster_id=dto.parent_id)
        return self._persist(session, circle)

    def create_zone(self, session: Session, dto: GeographyNodeCreate) -> Zone:
        code = _clean_code(dto.code)
        if dto.parent_id is None or self.repository.get_circle(session, dto.parent_id) is None:
            raise NotFoundError("circle", dto.parent_id)
        if self.repository.exists_zone_by_code(session, code):
            raise ValidationError(f"zone code already in use: {code}")
        zone = Zone(code=code, name=_clean_name(dto.name), description=dto.description, circle_id=dto.parent_id)
        return self._persist(session, zone)

    def create_area(self, session: Session, dto: GeographyNodeCreate) -> Area:
        code = _clean_code(dto.code)
        if dto.parent_id is None or self.repository.get_zone(session, dto.parent_id) is None:
            raise NotFoundError("zone", dto.parent_id)
        if self.repository.exists_area_by_code(session, code):
            raise ValidationError(f"area code already in use: {code}")
        area = Area(code=code, name=_clean_name(dto.name), description=dto.description, zone_id=dto.parent_id)
        return self._persist(session, area)

    def filter_tree(self, session: Session) -> list[ClusterOption]:
        """Active clusters with their active circles, zones and areas nested beneath."""

        clusters: list[ClusterOption] = []
        for cluster in self.repository.list_clusters(session, active_only=True):
            circles: list[CircleOption] = []
            for circle in self.repository.list_circles_by_cluster(session, cluster.id, active_only=True):
                zones: list[ZoneOption] = []
                for zone in self.repository.list_zones_by_circle(session, circle.id, active_only=True):
                    areas = [
                        AreaOption.model_validate(area)
                        for area in self.repository.list_areas_by_zone(session, zone.id, active_only=True)
                    ]
                    zones.append(
                        ZoneOption(id=zone.id, code=zone.code, name=zone.name, circle_id=zone.circle_id, areas=areas)
                    )
                circles.append(
                    CircleOption(
                        id=circle.id,
                        code=circle.code,
                        name=circle.name,
                        cluster_id=circle.cluster_id,
                        zones=zones,
                    )
                )
            clusters.append(ClusterOption(id=cluster.id, code=cluster.code, name=cluster.name, circles=circles))
        return clusters

    def _persist(self, session: Session, node: NodeT) -> NodeT:
        session.add(node)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise ValidationError(f"{type(node).__name__.lower()} code already in use: {node.code}")
        session.refresh(node)
        logger.info("geography.created", extra={"resource": type(node).__name__.lower(), "scope_id": node.id})
        return node


geography_service = GeographyService()

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from opshub.geography.repository import GeographyRepository, geography_repository
from opshub.platform.security.context import GeographyContext, Placed
from opshub.platform.security.errors import DataIntegrityError

logger = logging.getLogger("opshub.security.hierarchy")

EMPTY_CONTEXT = GeographyContext()


@dataclass(frozen=True, slots=True)
class HierarchyResolver:
    """Resolve where a user or an area sits in the cluster -> circle -> zone -> area tree.

    Every hop is an explicit lookup by parent id. A missing link leaves the
    remaining fields empty unless ``strict`` is requested.
    """

    repository: GeographyRepository = geography_repository

    def resolve_geography(self, session: Session, user: Placed | None, *, strict: bool = False) -> GeographyContext:
        if user is None or user.area_id is None:
            return EMPTY_CONTEXT
        return self.resolve_area(session, user.area_id, strict=strict)

    def resolve_area(self, session: Session, area_id: int | None, *, strict: bool = False) -> GeographyContext:
        if area_id is None:
            return EMPTY_CONTEXT

        area = self.repository.get_area(session, area_id)
        if area is None:
            return self._broken(strict, f"area {area_id} does not exist", EMPTY_CONTEXT)

        partial = GeographyContext(area_id=area.id, area_name=area.name)
        if area.zone_id is None:
            return self._broken(strict, f"area {area.id} has no zone", partial)
        zone = self.repository.get_zone(session, area.zone_id)
        if zone is None:
            return self._broken(strict, f"zone {area.zone_id} referenced by area {area.id} does not exist", partial)

        partial = GeographyContext(area_id=area.id, area_name=area.name, zone_id=zone.id, zone_name=zone.name)
        if zone.circle_id is None:
            return self._broken(strict, f"zone {zone.id} has no circle", partial)
        circle = self.repository.get_circle(session, zone.circle_id)
        if circle is None:
            return self._broken(strict, f"circle {zone.circle_id} referenced by zone {zone.id} does not exist", partial)

        partial = GeographyContext(
            area_id=area.id,
            area_name=area.name,
            zone_id=zone.id,
            zone_name=zone.name,
            circle_id=circle.id,
            circle_name=circle.name,
        )
        if circle.cluster_id is None:
            return self._broken(strict, f"circle {circle.id} has no cluster", partial)
        cluster = self.repository.get_cluster(session, circle.cluster_id)
        if cluster is None:
            return self._broken(
                strict,
                f"cluster {circle.cluster_id} referenced by circle {circle.id} does not exist",
                partial,
            )

        return GeographyContext(
            area_id=area.id,
            area_name=area.name,
            zone_id=zone.id,
            zone_name=zone.name,
            circle_id=circle.id,
            circle_name=circle.name,
            cluster_id=cluster.id,
            cluster_name=cluster.name,
        )

    @staticmethod
    def _broken(strict: bool, detail: str, partial: GeographyContext) -> GeographyContext:
        if strict:
            logger.error("hierarchy.chain_broken", extra={"error": detail, "scope_id": partial.area_id})
            raise DataIntegrityError(f"broken geography chain: {detail}")
        return partial


hierarchy_resolver = HierarchyResolver()

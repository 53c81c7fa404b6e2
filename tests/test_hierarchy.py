from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from opshub.geography.models import Area, Zone
from opshub.platform.security.context import ActorUser, GeographyContext, ScopeLevel
from opshub.platform.security.errors import DataIntegrityError
from opshub.platform.security.hierarchy import HierarchyResolver


def test_user_without_area_resolves_to_empty_context(db_session: Session, geo, make_user) -> None:
    user = make_user("E-1", "ADMIN", None)

    context = HierarchyResolver().resolve_geography(db_session, user)

    assert context == GeographyContext()
    assert context.is_empty
    assert context.as_dict() == {}
    assert HierarchyResolver().resolve_geography(db_session, None).is_empty


def test_full_chain_resolves_every_level(db_session: Session, geo, make_user) -> None:
    user = make_user("E-2", "AGENT", geo.area_700.id)

    context = HierarchyResolver().resolve_geography(db_session, user)

    assert context.area_id == 700
    assert context.area_name == "Area Seven Hundred"
    assert context.zone_id == 70
    assert context.circle_id == 7
    assert context.circle_name == "Circle Seven"
    assert context.cluster_id == 1
    assert context.cluster_name == "North Cluster"
    assert context.id_for(ScopeLevel.CIRCLE) == 7
    assert context.as_dict()["clusterName"] == "North Cluster"


def test_area_without_zone_keeps_area_fields_only(db_session: Session, geo) -> None:
    orphan = Area(id=701, code="A701", name="Orphan Area", zone_id=None)
    db_session.add(orphan)
    db_session.commit()
    actor = ActorUser(user_id=1, user_type="AGENT", area_id=701)

    context = HierarchyResolver().resolve_geography(db_session, actor)

    assert context.area_id == 701
    assert context.area_name == "Orphan Area"
    assert context.zone_id is None
    assert context.zone_name is None
    assert context.circle_id is None
    assert context.cluster_id is None


def test_dangling_reference_stops_the_walk(db_session: Session, geo) -> None:
    db_session.add(Zone(id=71, code="Z71", name="Lost Zone", circle_id=4040))
    db_session.add(Area(id=710, code="A710", name="Lost Area", zone_id=71))
    db_session.commit()

    context = HierarchyResolver().resolve_area(db_session, 710)

    assert context.zone_id == 71
    assert context.circle_id is None
    assert context.cluster_id is None


def test_strict_mode_raises_on_broken_chain(db_session: Session, geo) -> None:
    db_session.add(Area(id=702, code="A702", name="Loose Area", zone_id=None))
    db_session.commit()

    with pytest.raises(DataIntegrityError):
        HierarchyResolver().resolve_area(db_session, 702, strict=True)

    assert HierarchyResolver().resolve_area(db_session, 700, strict=True).cluster_id == 1


def test_missing_area_is_empty_unless_strict(db_session: Session, geo) -> None:
    assert HierarchyResolver().resolve_area(db_session, 12345).is_empty

    with pytest.raises(DataIntegrityError):
        HierarchyResolver().resolve_area(db_session, 12345, strict=True)

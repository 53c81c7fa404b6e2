from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import select

from opshub.core import database
from opshub.core.database import Base, get_db, get_engine, get_session_factory, session_scope
from opshub.geography.models import Cluster
from opshub.metrics import (
    generate_metrics_payload,
    metrics_content_type,
    observe_access_denied,
    observe_allocation_conflict,
)


@pytest.fixture()
def sqlite_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    get_engine.cache_clear()
    get_session_factory.cache_clear()
    Base.metadata.create_all(bind=get_engine())
    yield
    Base.metadata.drop_all(bind=get_engine())
    get_engine.cache_clear()
    get_session_factory.cache_clear()


def test_session_scope_commits_and_rolls_back(sqlite_settings: None) -> None:
    with session_scope() as session:
        session.add(Cluster(code="K1", name="North"))

    with pytest.raises(RuntimeError):
        with session_scope() as session:
            session.add(Cluster(code="K2", name="South"))
            session.flush()
            raise RuntimeError("boom")

    generator = get_db()
    session = next(generator)
    try:
        assert session.scalars(select(Cluster.code)).all() == ["K1"]
    finally:
        generator.close()


def test_engine_uses_configured_url(sqlite_settings: None) -> None:
    assert database.get_engine().url.database == ":memory:"


def test_metrics_payload_exposes_opshub_counters() -> None:
    observe_access_denied("customer", "AREA")
    observe_allocation_conflict("reassign")

    payload = generate_metrics_payload().decode("utf-8")

    assert 'opshub_access_denied_total{resource="customer",scope_level="AREA"}' in payload
    assert 'opshub_allocation_conflicts_total{action="reassign"}' in payload
    assert metrics_content_type().startswith("text/plain")

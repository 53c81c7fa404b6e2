from __future__ import annotations

import itertools

import pytest

from opshub.platform.security.roles import (
    CanonicalRole,
    UNKNOWN_RANK,
    UnknownRole,
    is_above,
    is_known,
    normalize,
    normalize_user_type,
    rank,
)

ORDER = [
    CanonicalRole.ADMIN,
    CanonicalRole.CLUSTER_HEAD,
    CanonicalRole.CIRCLE_HEAD,
    CanonicalRole.ZONE_HEAD,
    CanonicalRole.AREA_HEAD,
    CanonicalRole.STORE_HEAD,
    CanonicalRole.AGENT,
    "REGIONAL_WIZARD",
]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("CLUSTER_HEAD", CanonicalRole.CLUSTER_HEAD),
        ("cluster_lead", CanonicalRole.CLUSTER_HEAD),
        ("Circle_Head", CanonicalRole.CIRCLE_HEAD),
        ("CIRCLE_LEAD", CanonicalRole.CIRCLE_HEAD),
        ("zone_head", CanonicalRole.ZONE_HEAD),
        ("  ZONE_LEAD ", CanonicalRole.ZONE_HEAD),
        ("AREA_HEAD", CanonicalRole.AREA_HEAD),
        ("area_lead", CanonicalRole.AREA_HEAD),
        ("STORE_LEAD", CanonicalRole.STORE_HEAD),
        ("store", CanonicalRole.STORE_HEAD),
        ("STORE_HEAD", CanonicalRole.STORE_HEAD),
        ("analyst", CanonicalRole.AGENT),
        ("FIELD_AGENT", CanonicalRole.AGENT),
        ("agent", CanonicalRole.AGENT),
        ("admin", CanonicalRole.ADMIN),
    ],
)
def test_normalize_maps_synonyms_to_canonical_role(raw: str, expected: CanonicalRole) -> None:
    assert normalize(raw) is expected
    assert normalize_user_type(raw) == expected.value
    assert is_known(raw)


@pytest.mark.parametrize("raw", [None, "", "   ", "\t\n"])
def test_empty_or_blank_input_normalizes_to_empty_unknown(raw: str | None) -> None:
    assert normalize(raw) == UnknownRole("")
    assert normalize_user_type(raw) == ""
    assert rank(raw) == UNKNOWN_RANK


def test_unrecognized_label_is_kept_cleaned_and_ranks_lowest() -> None:
    role = normalize("  regional wizard ")

    assert role == UnknownRole("REGIONAL WIZARD")
    assert str(role) == "REGIONAL WIZARD"
    assert not is_known(role)
    assert rank(role) == -1
    assert is_above("AGENT", role)
    assert not is_above(role, "AGENT")


def test_normalize_is_idempotent() -> None:
    for raw in ["zone_lead", "store", "mystery"]:
        once = normalize(raw)
        assert normalize(once) == once
        assert normalize(str(once)) == once


@pytest.mark.parametrize("role", ORDER + ["", None])
def test_is_above_is_irreflexive(role: str | None) -> None:
    assert not is_above(role, role)


def test_is_above_follows_fixed_rank_order() -> None:
    for higher, lower in itertools.combinations(ORDER, 2):
        assert is_above(higher, lower), (higher, lower)
        assert not is_above(lower, higher), (lower, higher)


def test_ranks_are_fixed() -> None:
    assert [rank(role) for role in ORDER] == [6, 5, 4, 3, 2, 1, 0, -1]


def test_synonyms_are_peers() -> None:
    assert not is_above("ZONE_LEAD", "zone_head")
    assert not is_above("FIELD_AGENT", "AGENT")
    assert rank("FIELD_AGENT") == 0


def test_canonical_roles_render_as_plain_strings() -> None:
    assert str(CanonicalRole.ZONE_HEAD) == "ZONE_HEAD"
    assert f"{normalize('field_agent')}" == "AGENT"
    assert CanonicalRole.AGENT == "AGENT"


def test_underscored_labels_normalize_but_spaced_labels_do_not() -> None:
    assert normalize("ZONE_LEAD") is CanonicalRole.ZONE_HEAD
    assert normalize("field_agent") is CanonicalRole.AGENT
    assert normalize("Zone Lead") == UnknownRole("ZONE LEAD")

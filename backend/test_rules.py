"""
Tests for the architectural rule engine.

Run: python -m pytest test_rules.py
"""

import os
import sys
sys.path.insert(0, os.path.dirname(__file__) or ".")

from services.plan_solver.models import AdjacencyEdge, AdjacencyKind, RoomSpec, RoomType, Severity, Zone
from services.plan_solver.rules import (
    ADJACENCY_RULES,
    ROOM_STANDARDS,
    ZONES,
    aspect_ok,
    clamp_aspect,
    classify_building_typology,
    default_adjacencies,
    determine_entrance_strategy,
    get_adjacency_kind,
    get_adjacency_weight,
    merge_adjacencies,
    requires_window,
    validate_adjacency_feasibility,
    validate_area_distribution,
    validate_corridor_width,
    validate_room,
)


def _rules(issues):
    return {i.rule for i in issues}


def test_every_room_type_has_standard_and_zone():
    for rtype in RoomType:
        std = ROOM_STANDARDS[rtype]
        assert std.min_area <= std.optimal_area <= std.max_area
        assert std.aspect_range[0] < std.aspect_range[1]
        assert rtype in ZONES


def test_tables_are_read_only():
    try:
        ROOM_STANDARDS[RoomType.BEDROOM] = None
    except TypeError:
        pass
    else:
        raise AssertionError("room standards should not be writable")


def test_room_type_parse_aliases():
    assert RoomType.parse("Living Room") == RoomType.LIVING
    assert RoomType.parse("toilet") == RoomType.BATHROOM
    assert RoomType.parse("laundry") == RoomType.UTILITY
    assert RoomType.parse("wine cellar") == RoomType.UNKNOWN
    assert RoomType.parse(None) == RoomType.UNKNOWN


def test_adjacency_weight_symmetric():
    for rule in ADJACENCY_RULES:
        assert get_adjacency_weight(rule.first, rule.second) == rule.weight
        assert get_adjacency_weight(rule.second, rule.first) == rule.weight
        assert get_adjacency_kind(rule.second, rule.first) == rule.kind


def test_adjacency_weight_default():
    assert get_adjacency_weight("garage", "study") == 3
    assert get_adjacency_kind("garage", "study") is None
    assert get_adjacency_weight("kitchen", "dining") == 10
    assert get_adjacency_kind("bathroom", "kitchen") == AdjacencyKind.AVOID


def test_validate_room_min_area():
    issues = validate_room("bedroom", 6.0, (3.0, 2.0))
    assert "MIN_AREA" in _rules(issues)
    assert all(i.severity == Severity.ERROR for i in issues if i.rule == "MIN_AREA")


def test_validate_room_min_dimension():
    issues = validate_room("bathroom", 4.0, (1.5, 2.67))
    assert "MIN_DIMENSION" in _rules(issues)
    assert "MIN_AREA" not in _rules(issues)


def test_validate_room_aspect_ratio():
    issues = validate_room("living", 25.0, (10.0, 2.5))
    assert "ASPECT_RATIO" in _rules(issues)


def test_validate_room_ok():
    assert validate_room("bedroom", 14.0, (4.0, 3.5)) == []
    # rotation does not change the verdict
    assert validate_room("bedroom", 14.0, (3.5, 4.0)) == []


def test_validate_room_max_area_is_warning():
    issues = validate_room("bathroom", 12.0)
    assert _rules(issues) == {"MAX_AREA"}
    assert issues[0].severity == Severity.WARNING


def test_aspect_helpers():
    assert aspect_ok("bedroom", 3.0, 4.0)
    assert not aspect_ok("bedroom", 2.0, 6.0)
    ratio = clamp_aspect("bedroom", 3.0)
    assert 0.9 <= ratio <= 1.5
    assert clamp_aspect("bedroom", 1.2) == 1.2


def test_area_overflow():
    issues = validate_area_distribution(50.0, {"a": 30.0, "b": 25.0, "c": 10.0})
    assert _rules(issues) == {"AREA_OVERFLOW"}
    assert issues[0].severity == Severity.ERROR


def test_area_underutilization():
    issues = validate_area_distribution(100.0, {"a": 20.0, "b": 10.0})
    assert _rules(issues) == {"AREA_UNDERUTILIZATION"}


def test_area_distribution_ok():
    assert validate_area_distribution(100.0, {"a": 40.0, "b": 35.0}) == []


def test_excess_must_adjacencies():
    edges = [AdjacencyEdge("hub", f"r{i}", 10, "must") for i in range(5)]
    issues = validate_adjacency_feasibility(edges)
    assert [i.subject for i in issues] == ["hub"]
    assert issues[0].rule == "EXCESS_MUST_ADJACENCIES"

    assert validate_adjacency_feasibility(edges[:4]) == []


def test_heavy_should_edge_counts_as_must():
    edges = [AdjacencyEdge("hub", f"r{i}", 9, "should") for i in range(5)]
    assert len(validate_adjacency_feasibility(edges)) == 1


def test_corridor_width():
    assert _rules(validate_corridor_width("hallway", 1.0, 4.0)) == {"CORRIDOR_WIDTH"}
    assert validate_corridor_width("hallway", 1.2, 4.0) == []
    assert validate_corridor_width("bedroom", 1.0, 4.0) == []


def test_typology_boundaries():
    assert classify_building_typology(30.0, 1) == "studio"
    assert classify_building_typology(80.0, 5) == "apartment"
    assert classify_building_typology(150.0, 7) == "townhouse"
    assert classify_building_typology(300.0, 9) == "villa"
    assert classify_building_typology(450.0, 12) == "mansion"
    assert classify_building_typology(34.9, 1) == "studio"
    assert classify_building_typology(35.0, 5) == "apartment"
    assert classify_building_typology(99.0, 6) == "townhouse"
    assert classify_building_typology(150.0, 9) == "villa"
    assert classify_building_typology(399.0, 20) == "villa"
    assert classify_building_typology(400.0, 4) == "mansion"


def test_default_adjacencies_round_robin():
    rooms = [
        RoomSpec("bed1", "bedroom"),
        RoomSpec("bed2", "bedroom"),
        RoomSpec("bath", "bathroom"),
        RoomSpec("living", "living"),
    ]
    edges = {e.key: e for e in default_adjacencies(rooms)}
    assert edges[("bath", "bed1")].kind == AdjacencyKind.MUST
    assert edges[("bath", "bed2")].kind == AdjacencyKind.MUST
    # avoid rules apply to every pair
    assert edges[("bed1", "living")].kind == AdjacencyKind.AVOID
    assert edges[("bed2", "living")].kind == AdjacencyKind.AVOID


def test_merge_adjacencies_hint_overrides():
    defaults = [AdjacencyEdge("a", "b", 2, "avoid"), AdjacencyEdge("a", "c", 7, "should")]
    merged = merge_adjacencies(defaults, [AdjacencyEdge("b", "a", 8, "should")])
    assert [(e.key, e.weight) for e in merged] == [(("a", "b"), 8), (("a", "c"), 7)]


def test_requires_window():
    assert requires_window("bedroom")
    assert not requires_window("hallway")
    assert not requires_window("garage")


def test_entrance_strategy():
    studio = determine_entrance_strategy(30.0, ["living", "bathroom"], "studio")
    assert studio.entrance_type == "direct_to_living"
    assert studio.preferred_rooms[0] == RoomType.LIVING

    apartment = determine_entrance_strategy(80.0, ["hallway", "living", "bedroom"], "apartment")
    assert apartment.entrance_type == "hallway"
    assert apartment.preferred_rooms[:2] == (RoomType.HALLWAY, RoomType.LIVING)

    mansion = determine_entrance_strategy(500.0, ["living"], "mansion")
    assert mansion.entrance_type == "foyer"
    assert mansion.clearance == 2.5


def test_zone_privacy_order():
    assert Zone.PUBLIC.privacy < Zone.SERVICE.privacy < Zone.PRIVATE.privacy


if __name__ == "__main__":
    import pytest
    sys.exit(pytest.main([__file__, "-v"]))

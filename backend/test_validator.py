"""
Tests for the multi-pass validator.

Run: python -m pytest test_validator.py
"""

import os
import sys
from dataclasses import replace
sys.path.insert(0, os.path.dirname(__file__) or ".")

import pytest

from config import MAX_DOOR_WIDTH
from services.plan_solver.door_arc import resolve_door_arcs
from services.plan_solver.errors import ValidationFailure
from services.plan_solver.models import (
    BuildingEnvelope,
    FloorPlan,
    FloorPlanSpec,
    Layout,
    RoomPlacement,
    RoomSpec,
)
from services.plan_solver.openings import OpeningPlacer
from services.plan_solver.pipeline import resolve_adjacencies, validate
from services.plan_solver.rules import determine_entrance_strategy
from services.plan_solver.validator import PASS_NAMES, validate_plan
from services.plan_solver.walls import synthesize_walls


ROOMS = (
    RoomSpec("living", "living"),
    RoomSpec("kitchen", "kitchen"),
    RoomSpec("bedroom", "bedroom"),
    RoomSpec("bathroom", "bathroom"),
)
ENVELOPE = BuildingEnvelope.rectangle(10.0, 9.0)


def _plan(**moved):
    """Four-room plan; keyword arguments override placements as (x, y, w, h)."""
    boxes = {
        "living": (0, 0, 6, 5),
        "kitchen": (6, 0, 4, 5),
        "bedroom": (0, 5, 6, 4),
        "bathroom": (6, 5, 4, 4),
    }
    boxes.update(moved)
    layout = Layout(tuple(RoomPlacement(rid, *box) for rid, box in boxes.items()))
    edges = resolve_adjacencies(FloorPlanSpec(ROOMS))
    walls = synthesize_walls(layout, ENVELOPE)
    strategy = determine_entrance_strategy(90.0, [r.room_type for r in ROOMS], "apartment")
    openings = OpeningPlacer(layout, walls, ROOMS, edges, strategy).place()
    openings = resolve_door_arcs(openings, walls, layout, {r.id: r for r in ROOMS})
    return FloorPlan(ENVELOPE, ROOMS, layout, tuple(walls), tuple(openings), tuple(edges))


def _rules(report, pass_name):
    return {i.rule for i in report.pass_result(pass_name).issues}


def test_clean_plan_is_valid():
    report = validate_plan(_plan())
    assert [p.name for p in report.passes] == list(PASS_NAMES)
    assert report.final_valid
    assert report.errors == []
    assert not report.has_corrections
    assert report.summary().startswith("Validation: VALID")


def test_plan_is_not_modified():
    plan = _plan(kitchen=(5.97, 0, 4, 5))
    before = plan.layout
    validate_plan(plan)
    assert plan.layout == before


def test_sliver_overlap_is_trimmed():
    report = validate_plan(_plan(kitchen=(5.97, 0, 4, 5)))
    assert "OVERLAP" in _rules(report, "non_overlap")
    assert not report.final_valid

    notes = report.pass_result("non_overlap").corrections
    assert len(notes) == 1 and "resolved" in notes[0] and "unresolved" not in notes[0]
    kitchen = {p.room_id: p for p in report.corrected_placements}["kitchen"]
    assert kitchen.x == pytest.approx(6.0)
    assert kitchen.width == pytest.approx(3.97)


def test_large_overlap_is_not_corrected():
    report = validate_plan(_plan(kitchen=(5.0, 0, 4, 5)))
    assert "OVERLAP" in _rules(report, "non_overlap")
    assert report.pass_result("non_overlap").corrections == ()


def test_protrusion_detected_and_pulled_back():
    report = validate_plan(_plan(bathroom=(6, 5, 4.03, 4)))
    assert "OUTSIDE_ENVELOPE" in _rules(report, "containment")
    notes = report.pass_result("containment").corrections
    assert any(n.startswith("pulled bathroom") for n in notes)
    bathroom = {p.room_id: p for p in report.corrected_placements}["bathroom"]
    assert bathroom.x2 == pytest.approx(10.0)


def test_wall_leakage():
    plan = _plan()
    plan = replace(plan, walls=tuple(w for w in plan.walls if w.exterior))
    report = validate_plan(plan)
    assert "WALL_LEAKAGE" in _rules(report, "structural")


def test_missing_entry_door():
    plan = _plan()
    plan = replace(plan, openings=tuple(o for o in plan.openings if not o.is_entry))
    report = validate_plan(plan)
    assert "NO_ENTRY_DOOR" in _rules(report, "connectivity")


def test_unreachable_room():
    plan = _plan()
    plan = replace(plan, openings=tuple(
        o for o in plan.openings if not (o.is_door and "bathroom" in o.room_ids)))
    report = validate_plan(plan)
    rules = _rules(report, "connectivity")
    assert "NO_DOOR" in rules
    assert "UNREACHABLE_ROOM" in rules
    assert {i.subject for i in report.pass_result("connectivity").issues} == {"bathroom"}


def test_missing_windows():
    plan = _plan()
    plan = replace(plan, openings=tuple(o for o in plan.openings if o.is_door))
    report = validate_plan(plan)
    missing = [i for i in report.pass_result("code_compliance").issues if i.rule == "MISSING_WINDOW"]
    assert {i.subject for i in missing} == {"living", "kitchen", "bedroom", "bathroom"}


def test_door_width_clamped():
    plan = _plan()
    entry = plan.entry_door
    wide = replace(entry, width=1.6)
    plan = replace(plan, openings=tuple(wide if o.id == entry.id else o for o in plan.openings))
    report = validate_plan(plan)

    assert "DOOR_WIDTH" in _rules(report, "code_compliance")
    corrected = {o.id: o for o in report.corrected_openings}[entry.id]
    assert corrected.width == pytest.approx(MAX_DOOR_WIDTH)
    assert corrected.arc.radius == pytest.approx(MAX_DOOR_WIDTH)
    notes = report.pass_result("code_compliance").corrections
    assert any(entry.id in n and "(resolved)" in n for n in notes)


def test_door_on_unknown_wall_is_reported_not_resolved():
    plan = _plan()
    door = next(o for o in plan.openings if o.is_door and not o.is_entry)
    stray = replace(door, wall_id="wall_999", width=1.6)
    plan = replace(plan, openings=tuple(stray if o.id == door.id else o for o in plan.openings))
    report = validate_plan(plan)

    assert "UNKNOWN_WALL" in _rules(report, "containment")
    assert "DOOR_WIDTH" in _rules(report, "code_compliance")
    corrected = {o.id: o for o in report.corrected_openings}
    assert corrected[door.id].width == pytest.approx(MAX_DOOR_WIDTH)
    assert corrected[door.id].wall_id == "wall_999"
    # doors on known walls still get their arcs
    assert corrected[plan.entry_door.id].arc is not None
    notes = report.pass_result("code_compliance").corrections
    assert any(door.id in n and "(unresolved)" in n for n in notes)


def test_zero_target_area_is_an_error():
    plan = replace(_plan(), envelope=BuildingEnvelope.rectangle(10.0, 9.0, total_area=0.0))
    report = validate_plan(plan)
    assert "INVALID_TARGET_AREA" in _rules(report, "code_compliance")
    assert "AREA_DEVIATION" not in _rules(report, "code_compliance")
    assert not report.final_valid


def test_entry_outside_public_zone():
    plan = _plan()
    wall = next(w for w in plan.walls if w.exterior and w.room_ids == ("kitchen",))
    entry = replace(plan.entry_door, wall_id=wall.id, room_ids=("kitchen",), offset=wall.length / 2)
    plan = replace(plan, openings=tuple(entry if o.is_entry else o for o in plan.openings))
    report = validate_plan(plan)

    issues = [i for i in report.pass_result("connectivity").issues if i.rule == "ENTRY_NOT_PUBLIC"]
    assert [i.subject for i in issues] == [entry.id]
    assert "living" in issues[0].message
    assert not report.final_valid


def test_entry_zone_not_checked_without_public_rooms():
    rooms = tuple(RoomSpec(r.id, "bedroom" if r.id == "living" else r.room_type) for r in ROOMS)
    plan = replace(_plan(), rooms=rooms)
    report = validate_plan(plan)
    assert "ENTRY_NOT_PUBLIC" not in _rules(report, "connectivity")


def test_code_compliance_flags_small_room():
    report = validate_plan(_plan(bathroom=(6, 5, 1.5, 4)))
    rules = _rules(report, "code_compliance")
    assert "MIN_DIMENSION" in rules


def test_round_trip_revalidation():
    plan = _plan()
    plan = replace(plan, report=validate_plan(plan))
    reloaded = FloorPlan.from_dict(plan.to_dict())
    report = validate(reloaded)
    assert report.final_valid == plan.report.final_valid
    assert len(report.errors) == len(plan.report.errors)


def test_raise_for_validity():
    plan = _plan()
    plan = replace(plan, openings=tuple(o for o in plan.openings if o.is_door))
    plan = replace(plan, report=validate_plan(plan))
    with pytest.raises(ValidationFailure) as err:
        plan.raise_for_validity()
    assert "MISSING_WINDOW" in str(err.value)


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))

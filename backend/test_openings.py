"""
Tests for door and window placement and swing orientation.

Layout used throughout (10 x 9 m, entry on the south face):

    +-----------+-------+
    |  bedroom  | bath  |
    +-----------+-------+
    |  living   |kitchen|
    +-----------+-------+

Run: python -m pytest test_openings.py
"""

import os
import sys
sys.path.insert(0, os.path.dirname(__file__) or ".")

import pytest

from config import ENTRY_DOOR_WIDTH, OPENING_CLEARANCE
from services.plan_solver.door_arc import resolve_door_arcs
from services.plan_solver.models import (
    BuildingEnvelope,
    FloorPlanSpec,
    Layout,
    RoomPlacement,
    RoomSpec,
)
from services.plan_solver.openings import OpeningPlacer, door_graph, qualifying_window_walls, reachable_rooms
from services.plan_solver.pipeline import resolve_adjacencies
from services.plan_solver.rules import determine_entrance_strategy
from services.plan_solver.walls import synthesize_walls


ROOMS = (
    RoomSpec("living", "living"),
    RoomSpec("kitchen", "kitchen"),
    RoomSpec("bedroom", "bedroom"),
    RoomSpec("bathroom", "bathroom"),
)
LAYOUT = Layout((
    RoomPlacement("living", 0, 0, 6, 5),
    RoomPlacement("kitchen", 6, 0, 4, 5),
    RoomPlacement("bedroom", 0, 5, 6, 4),
    RoomPlacement("bathroom", 6, 5, 4, 4),
))
ENVELOPE = BuildingEnvelope.rectangle(10.0, 9.0)


def _place():
    walls = synthesize_walls(LAYOUT, ENVELOPE)
    edges = resolve_adjacencies(FloorPlanSpec(ROOMS))
    strategy = determine_entrance_strategy(90.0, [r.room_type for r in ROOMS], "apartment")
    openings = OpeningPlacer(LAYOUT, walls, ROOMS, edges, strategy).place()
    openings = resolve_door_arcs(openings, walls, LAYOUT, {r.id: r for r in ROOMS})
    return walls, openings


def test_single_entry_on_living_south_wall():
    walls, openings = _place()
    by_id = {w.id: w for w in walls}
    entries = [o for o in openings if o.is_door and o.is_entry]
    assert len(entries) == 1

    entry = entries[0]
    wall = by_id[entry.wall_id]
    assert wall.exterior
    assert wall.room_ids == ("living",)
    assert wall.start == (0.0, 0.0) and wall.end == (6.0, 0.0)
    assert entry.width == pytest.approx(ENTRY_DOOR_WIDTH)
    assert entry.offset == pytest.approx(3.0)


def test_interior_doors_follow_adjacency_then_repair():
    _, openings = _place()
    pairs = {frozenset(o.room_ids) for o in openings if o.is_door and not o.is_entry}
    assert pairs == {
        frozenset(("bathroom", "bedroom")),
        frozenset(("living", "kitchen")),
        # added only so the bedroom wing can be reached
        frozenset(("living", "bedroom")),
    }


def test_every_room_reachable_from_entry():
    _, openings = _place()
    assert reachable_rooms(openings, "living") == {"living", "kitchen", "bedroom", "bathroom"}


def test_door_graph_labels_edges():
    _, openings = _place()
    graph = door_graph(openings)
    assert graph.number_of_edges() == 3
    assert graph.edges["living", "bedroom"]["door"].startswith("door_")
    assert "bedroom" in graph["bathroom"]


def test_doors_open_into_more_private_room():
    _, openings = _place()
    door = next(o for o in openings if o.is_door and set(o.room_ids) == {"living", "bedroom"})
    assert door.room_ids == ("living", "bedroom")
    assert door.hinge_side == "end"


def test_arcs_sweep_into_target_room():
    _, openings = _place()
    placements = LAYOUT.as_mapping()
    for door in (o for o in openings if o.is_door):
        assert door.arc is not None
        into = placements[door.room_ids[-1]]
        sx, sy = door.arc.sweep_end
        assert into.x - 1e-9 <= sx <= into.x2 + 1e-9, door.id
        assert into.y - 1e-9 <= sy <= into.y2 + 1e-9, door.id
        assert door.arc.radius == pytest.approx(door.width)


def test_windows_on_exterior_walls_only():
    walls, openings = _place()
    by_id = {w.id: w for w in walls}
    windows = [o for o in openings if not o.is_door]
    assert {o.room_ids[0] for o in windows} == {"living", "kitchen", "bedroom", "bathroom"}
    for window in windows:
        assert by_id[window.wall_id].exterior
    for room in ROOMS:
        qualifying = {w.id for w in qualifying_window_walls(walls, room.id)}
        assert {o.wall_id for o in windows if o.room_ids == (room.id,)} == qualifying


def test_openings_keep_clearance():
    walls, openings = _place()
    for wall in walls:
        spans = sorted(o.span for o in openings if o.wall_id == wall.id)
        for lo, hi in spans:
            assert lo >= OPENING_CLEARANCE - 1e-9
            assert hi <= wall.length - OPENING_CLEARANCE + 1e-9
        for (_, hi), (lo, _) in zip(spans, spans[1:]):
            assert lo - hi >= OPENING_CLEARANCE - 1e-9


def test_ids_are_sequential():
    _, openings = _place()
    doors = [o.id for o in openings if o.is_door]
    windows = [o.id for o in openings if not o.is_door]
    assert doors == [f"door_{i:02d}" for i in range(1, len(doors) + 1)]
    assert windows == [f"window_{i:02d}" for i in range(1, len(windows) + 1)]


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))

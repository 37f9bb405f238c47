"""
Door swing geometry.

Pure functions: given a wall, a fractional position along it and a door
width, derive the opening jambs, the hinge and the quarter-circle the
leaf sweeps.  The swing always goes to the left normal (-dy, dx) of the
direction the wall is traversed in, so ``resolve_door_arcs`` orients each
door's frame to make the left side the room the door opens into.
"""

import math
from dataclasses import replace
from typing import List, Mapping, NamedTuple, Optional, Sequence

from .models import DoorArcGeometry, Layout, Opening, Point, RoomSpec, WallSegment, Zone


class DoorOpening(NamedTuple):
    start: Point
    center: Point
    end: Point


def _unit(start: Point, end: Point):
    dx, dy = end[0] - start[0], end[1] - start[1]
    length = math.hypot(dx, dy)
    if length == 0:
        raise ValueError("Cannot place a door on a zero-length wall")
    return dx / length, dy / length, length


def door_opening(start: Point, end: Point, position: float, width: float) -> DoorOpening:
    """Jambs and center of a door centred at *position* (0..1) along start->end."""
    ux, uy, length = _unit(start, end)
    cx = start[0] + ux * length * position
    cy = start[1] + uy * length * position
    half = width / 2.0
    return DoorOpening(
        start=(cx - ux * half, cy - uy * half),
        center=(cx, cy),
        end=(cx + ux * half, cy + uy * half),
    )


def determine_hinge_side(is_entry: bool, from_zone: Optional[Zone] = None,
                         to_zone: Optional[Zone] = None) -> str:
    """
    Entry doors hinge at the start jamb.  An interior door opening from a
    more public room into a more private one hinges at the end jamb so the
    leaf screens the private room from the doorway; anything else, or a
    door whose rooms are unclassified, hinges at the start.
    """
    if is_entry or from_zone is None or to_zone is None:
        return "start"
    if from_zone.privacy < to_zone.privacy:
        return "end"
    return "start"


def calculate_arc(start: Point, end: Point, position: float, width: float,
                  hinge_side: str = "start") -> DoorArcGeometry:
    """Quarter-circle swing of a door on the wall start->end."""
    if hinge_side not in ("start", "end"):
        raise ValueError(f"hinge_side must be 'start' or 'end', got {hinge_side!r}")
    ux, uy, _ = _unit(start, end)
    opening = door_opening(start, end, position, width)
    hinge, closed = (opening.start, opening.end) if hinge_side == "start" else (opening.end, opening.start)

    perp_x, perp_y = -uy, ux
    sweep_end = (hinge[0] + perp_x * width, hinge[1] + perp_y * width)

    # Angles are taken at the hinge and increase counter-clockwise from
    # start_angle to end_angle.  The closed leaf points along the wall toward
    # the closed end and the open leaf along the left normal, so a start hinge
    # spans wall..wall+90 and an end hinge spans wall+90..wall+180.
    wall_angle = math.degrees(math.atan2(uy, ux))
    if hinge_side == "start":
        start_angle, end_angle = wall_angle, wall_angle + 90.0
    else:
        start_angle, end_angle = wall_angle + 90.0, wall_angle + 180.0

    return DoorArcGeometry(
        hinge=hinge,
        closed_end=closed,
        sweep_end=sweep_end,
        radius=width,
        start_angle=start_angle % 360.0,
        end_angle=end_angle % 360.0,
        clockwise=hinge_side == "start",
        hinge_side=hinge_side,
    )


def _is_left(start: Point, end: Point, point: Point) -> bool:
    cross = (end[0] - start[0]) * (point[1] - start[1]) - (end[1] - start[1]) * (point[0] - start[0])
    return cross > 0


def resolve_door_arcs(openings: Sequence[Opening], walls: Sequence[WallSegment],
                      layout: Layout, rooms: Mapping[str, RoomSpec]) -> List[Opening]:
    """
    Attach rotation, hinge side and swing arc to every door.

    Doors list their rooms as ``(from, into)``; entry doors list only the
    room they open into.  Windows only get their rotation.
    """
    by_id = {w.id: w for w in walls}
    placements = layout.as_mapping()
    resolved = []
    for opening in openings:
        wall = by_id[opening.wall_id]
        start, end = wall.start, wall.end
        position = opening.offset / wall.length if wall.length > 0 else 0.5

        if not opening.is_door:
            resolved.append(replace(opening, rotation=wall.angle))
            continue

        into = opening.room_ids[-1] if opening.room_ids else None
        if into in placements and not _is_left(start, end, placements[into].center):
            start, end, position = end, start, 1.0 - position

        from_zone = to_zone = None
        if not opening.is_entry and len(opening.room_ids) == 2:
            first, second = opening.room_ids
            if first in rooms and second in rooms:
                from_zone, to_zone = rooms[first].zone, rooms[second].zone
        hinge_side = determine_hinge_side(opening.is_entry, from_zone, to_zone)

        arc = calculate_arc(start, end, position, opening.width, hinge_side)
        rotation = math.degrees(math.atan2(end[1] - start[1], end[0] - start[0]))
        resolved.append(replace(opening, rotation=rotation, hinge_side=hinge_side, arc=arc))
    return resolved

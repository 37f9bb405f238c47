"""
Multi-pass geometric validation of a solved floor plan.

Passes run in a fixed order and each inspects the plan as given:

    structural       valid room polygons, every room edge walled in
    non_overlap      no positive-area intersection between rooms
    containment      rooms, walls and openings inside the envelope
    connectivity     one entry door in a public room, every room reachable through doors
    code_compliance  room standards, corridor width, door widths, windows, area

Some findings can be corrected mechanically (sliver overlaps, tiny
protrusions, negative sizes, out-of-range door widths).  A correction is
only reported as resolved after the pass has been re-run on the corrected
data; the corrected values travel on the report so the pipeline can
re-derive walls and openings from them and validate the whole plan again.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from shapely.geometry import LineString
from shapely.validation import explain_validity

from config import (
    AREA_TOLERANCE,
    CIRCULATION_FACTOR,
    CONTAINMENT_TOLERANCE,
    CORRECTION_LIMIT,
    MAX_DOOR_WIDTH,
    MIN_DOOR_WIDTH,
    MIN_WINDOW_COVERAGE,
    OVERLAP_EPSILON,
)
from .door_arc import resolve_door_arcs
from .geometry import detect_overlaps, interval_overlap, outside_area
from .models import (
    FloorPlan,
    Layout,
    Opening,
    PassResult,
    RoomPlacement,
    Severity,
    ValidationIssue,
    ValidationReport,
    Zone,
)
from .openings import qualifying_window_walls, reachable_rooms
from .rules import requires_window, validate_corridor_width, validate_room
from .walls import find_leaks

logger = logging.getLogger(__name__)

PASS_NAMES = ("structural", "non_overlap", "containment", "connectivity", "code_compliance")


def _error(rule: str, message: str, subject: Optional[str] = None,
           suggestion: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(Severity.ERROR, rule, message, suggestion, subject)


def _warning(rule: str, message: str, subject: Optional[str] = None,
             suggestion: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(Severity.WARNING, rule, message, suggestion, subject)


class MultiPassValidator:
    """Run every validation pass over one FloorPlan."""

    def __init__(self, plan: FloorPlan):
        self.plan = plan
        self.envelope = plan.envelope
        self.rooms = {r.id: r for r in plan.rooms}
        self.walls = {w.id: w for w in plan.walls}
        # corrections chain through the passes in order
        self._placements: Dict[str, RoomPlacement] = plan.layout.as_mapping()
        self._openings: List[Opening] = list(plan.openings)
        self._placements_changed = False
        self._openings_changed = False

    def run(self) -> ValidationReport:
        passes = (
            self._structural(),
            self._non_overlap(),
            self._containment(),
            self._connectivity(),
            self._code_compliance(),
        )
        order = self.plan.layout.room_ids
        report = ValidationReport(
            passes=passes,
            corrected_placements=(tuple(self._placements[rid] for rid in order)
                                  if self._placements_changed else None),
            corrected_openings=tuple(self._openings) if self._openings_changed else None,
        )
        if report.final_valid:
            logger.debug(f"Validation passed with {len(report.warnings)} warnings")
        else:
            rules = ", ".join(sorted({e.rule for e in report.errors}))
            logger.info(f"Validation found {len(report.errors)} errors: {rules}")
        return report

    # ------------------------------------------------------------------
    # 1. Structural
    # ------------------------------------------------------------------

    def _structural(self) -> PassResult:
        issues, notes = [], []
        for p in self.plan.layout.placements:
            if p.width <= 0 or p.height <= 0:
                issues.append(_error("DEGENERATE_ROOM",
                                     f"{p.room_id} has non-positive size {p.width:.2f} x {p.height:.2f}",
                                     p.room_id))
            elif not p.polygon.is_valid:
                issues.append(_error("INVALID_POLYGON",
                                     f"{p.room_id}: {explain_validity(p.polygon)}", p.room_id))

        for leak in find_leaks(self.plan.layout, self.plan.walls):
            issues.append(_error("WALL_LEAKAGE",
                                 f"{leak.uncovered:.2f}m of the {leak.side} edge of {leak.room_id} has no wall",
                                 leak.room_id, "Re-synthesize walls for the final layout"))

        for rid, p in list(self._placements.items()):
            if p.width < 0 or p.height < 0:
                fixed = RoomPlacement(rid, min(p.x, p.x2), min(p.y, p.y2), abs(p.width), abs(p.height))
                ok = fixed.width > 0 and fixed.height > 0 and fixed.polygon.is_valid
                self._set_placement(fixed)
                notes.append(f"normalized negative size of {rid} "
                             f"({'resolved' if ok else 'unresolved'})")
        return PassResult("structural", tuple(issues), tuple(notes))

    # ------------------------------------------------------------------
    # 2. Non-overlap
    # ------------------------------------------------------------------

    def _non_overlap(self) -> PassResult:
        issues, notes = [], []
        for a, b, area in detect_overlaps(self.plan.layout.placements, OVERLAP_EPSILON):
            issues.append(_error("OVERLAP", f"{a} and {b} overlap by {area:.3f}m²", a,
                                 f"Separate {a} and {b}"))

        current = [self._placements[rid] for rid in self.plan.layout.room_ids]
        trimmed_pairs = []
        for a_id, b_id, _ in detect_overlaps(current, OVERLAP_EPSILON):
            a, b = self._placements[a_id], self._placements[b_id]
            ix = interval_overlap(a.x, a.x2, b.x, b.x2)
            iy = interval_overlap(a.y, a.y2, b.y, b.y2)
            if min(ix, iy) > CORRECTION_LIMIT:
                continue
            small, large = (a, b) if a.area <= b.area else (b, a)
            if ix <= iy:
                x = small.x + ix if small.x >= large.x else small.x
                fixed = RoomPlacement(small.room_id, x, small.y, small.width - ix, small.height)
            else:
                y = small.y + iy if small.y >= large.y else small.y
                fixed = RoomPlacement(small.room_id, small.x, y, small.width, small.height - iy)
            self._set_placement(fixed)
            trimmed_pairs.append((a_id, b_id))

        if trimmed_pairs:
            remaining = {(a, b) for a, b, _ in detect_overlaps(
                [self._placements[rid] for rid in self.plan.layout.room_ids], OVERLAP_EPSILON)}
            for a_id, b_id in trimmed_pairs:
                state = "unresolved" if (a_id, b_id) in remaining else "resolved"
                notes.append(f"trimmed sliver overlap between {a_id} and {b_id} ({state})")
        return PassResult("non_overlap", tuple(issues), tuple(notes))

    # ------------------------------------------------------------------
    # 3. Containment
    # ------------------------------------------------------------------

    def _containment(self) -> PassResult:
        issues, notes = [], []
        allowed = self.envelope.polygon.buffer(CONTAINMENT_TOLERANCE, join_style="mitre")

        for p in self.plan.layout.placements:
            if p.width <= 0 or p.height <= 0 or allowed.covers(p.polygon):
                continue
            outside = outside_area(p, self.envelope)
            issues.append(_error("OUTSIDE_ENVELOPE",
                                 f"{p.room_id} extends {outside:.2f}m² beyond the envelope",
                                 p.room_id))

        for w in self.plan.walls:
            if not allowed.covers(LineString([w.start, w.end])):
                issues.append(_error("WALL_OUTSIDE_ENVELOPE", f"{w.id} leaves the envelope", w.id))

        for o in self.plan.openings:
            wall = self.walls.get(o.wall_id)
            if wall is None:
                issues.append(_error("UNKNOWN_WALL", f"{o.id} refers to missing wall {o.wall_id}", o.id))
                continue
            lo, hi = o.span
            if lo < -CONTAINMENT_TOLERANCE or hi > wall.length + CONTAINMENT_TOLERANCE:
                issues.append(_error("OPENING_OUTSIDE_WALL",
                                     f"{o.id} ({lo:.2f}-{hi:.2f}) does not fit on {wall.id} "
                                     f"({wall.length:.2f}m)", o.id))

        minx, miny, maxx, maxy = self.envelope.bounds
        for rid in self.plan.layout.room_ids:
            p = self._placements[rid]
            if p.width <= 0 or p.height <= 0:
                continue
            protrusion = max(minx - p.x, p.x2 - maxx, miny - p.y, p.y2 - maxy, 0.0)
            if protrusion <= 1e-12 or protrusion > CORRECTION_LIMIT:
                continue
            width = min(p.width, maxx - minx)
            height = min(p.height, maxy - miny)
            x = min(max(p.x, minx), maxx - width)
            y = min(max(p.y, miny), maxy - height)
            fixed = RoomPlacement(rid, x, y, width, height)
            self._set_placement(fixed)
            state = "resolved" if allowed.covers(fixed.polygon) else "unresolved"
            notes.append(f"pulled {rid} back inside the envelope ({state})")
        return PassResult("containment", tuple(issues), tuple(notes))

    # ------------------------------------------------------------------
    # 4. Connectivity
    # ------------------------------------------------------------------

    def _connectivity(self) -> PassResult:
        issues = []
        room_ids = self.plan.layout.room_ids
        doors = [o for o in self.plan.openings if o.is_door]
        entries = [d for d in doors if d.is_entry]

        if not entries:
            issues.append(_error("NO_ENTRY_DOOR", "The plan has no entry door",
                                 suggestion="Give a public room an exterior wall"))
        elif len(entries) > 1:
            issues.append(_error("MULTIPLE_ENTRY_DOORS",
                                 f"{len(entries)} entry doors found; exactly one is allowed"))
        elif entries[0].room_ids:
            entry_room = self.rooms.get(entries[0].room_ids[0])
            public = [rid for rid in room_ids if rid in self.rooms and self.rooms[rid].zone == Zone.PUBLIC]
            if entry_room is not None and entry_room.zone != Zone.PUBLIC and public:
                issues.append(_error("ENTRY_NOT_PUBLIC",
                                     f"Entry {entries[0].id} opens into {entry_room.id} "
                                     f"({entry_room.zone.value}); expected one of {', '.join(public)}",
                                     entries[0].id, "Give a public room an exterior wall"))

        valid_doors = []
        for d in doors:
            wall = self.walls.get(d.wall_id)
            if wall is None:
                continue
            if d.is_entry:
                if not wall.exterior or not set(d.room_ids) <= set(wall.room_ids):
                    issues.append(_error("ENTRY_NOT_ON_EXTERIOR",
                                         f"Entry {d.id} is not on an exterior wall of its room", d.id))
                valid_doors.append(d)
            elif len(d.room_ids) == 2 and set(d.room_ids) == set(wall.room_ids):
                valid_doors.append(d)
            else:
                issues.append(_error("DOOR_NOT_ON_SHARED_WALL",
                                     f"{d.id} does not sit on a wall shared by {', '.join(d.room_ids)}",
                                     d.id))

        with_door = {rid for d in valid_doors for rid in d.room_ids}
        for rid in room_ids:
            if rid not in with_door:
                issues.append(_error("NO_DOOR", f"{rid} has no door", rid))

        if len(entries) >= 1 and entries[0].room_ids:
            reached = reachable_rooms(valid_doors, entries[0].room_ids[0])
            for rid in room_ids:
                if rid not in reached:
                    issues.append(_error("UNREACHABLE_ROOM",
                                         f"{rid} cannot be reached from the entry", rid,
                                         "Add a door on a wall shared with a reachable room"))
        return PassResult("connectivity", tuple(issues))

    # ------------------------------------------------------------------
    # 5. Code compliance
    # ------------------------------------------------------------------

    def _code_compliance(self) -> PassResult:
        issues, notes = [], []
        for p in self.plan.layout.placements:
            spec = self.rooms.get(p.room_id)
            if spec is None:
                issues.append(_error("UNKNOWN_ROOM", f"{p.room_id} has no room spec", p.room_id))
                continue
            if p.width <= 0 or p.height <= 0:
                continue
            issues.extend(validate_room(spec.room_type, p.area, (p.width, p.height), p.room_id))
            issues.extend(validate_corridor_width(spec.room_type, p.width, p.height, p.room_id))

        out_of_range = []
        for o in self.plan.openings:
            if o.is_door and not (MIN_DOOR_WIDTH - 1e-9 <= o.width <= MAX_DOOR_WIDTH + 1e-9):
                issues.append(_error("DOOR_WIDTH",
                                     f"{o.id} is {o.width:.2f}m wide; allowed "
                                     f"{MIN_DOOR_WIDTH}-{MAX_DOOR_WIDTH}m", o.id))
                out_of_range.append(o.id)

        for rid in self.plan.layout.room_ids:
            spec = self.rooms.get(rid)
            if spec is None or not requires_window(spec.room_type):
                continue
            walls = qualifying_window_walls(self.plan.walls, rid)
            if not walls:
                continue
            wall_ids = {w.id for w in walls}
            windows = [o for o in self.plan.openings
                       if not o.is_door and rid in o.room_ids and o.wall_id in wall_ids]
            if not windows:
                issues.append(_error("MISSING_WINDOW",
                                     f"{rid} has an exterior wall but no window", rid))
                continue
            coverage = sum(o.width for o in windows) / sum(w.length for w in walls)
            if coverage < MIN_WINDOW_COVERAGE:
                issues.append(_warning("LOW_WINDOW_COVERAGE",
                                       f"{rid} windows cover {coverage:.0%} of its exterior walls "
                                       f"(minimum {MIN_WINDOW_COVERAGE:.0%})", rid))

        total = self.envelope.target_area
        room_sum = sum(p.area for p in self.plan.layout.placements if p.width > 0 and p.height > 0)
        if total <= 0:
            issues.append(_error("INVALID_TARGET_AREA",
                                 f"Envelope target area {total:.2f}m² must be positive"))
        else:
            deviation = abs(room_sum + total * CIRCULATION_FACTOR - total) / total
            if deviation > AREA_TOLERANCE + 1e-9:
                issues.append(_warning("AREA_DEVIATION",
                                       f"Rooms cover {room_sum:.1f}m²; with {CIRCULATION_FACTOR:.0%} "
                                       f"circulation that is {deviation:.0%} off the {total:.1f}m² target"))

        if out_of_range:
            notes.extend(self._correct_door_widths(out_of_range))
        return PassResult("code_compliance", tuple(issues), tuple(notes))

    def _correct_door_widths(self, opening_ids: Sequence[str]) -> List[str]:
        notes = []
        fixed = []
        for o in self._openings:
            if o.id in opening_ids:
                width = min(max(o.width, MIN_DOOR_WIDTH), MAX_DOOR_WIDTH)
                o = replace(o, width=width)
            fixed.append(o)
        layout = Layout(tuple(self._placements[rid] for rid in self.plan.layout.room_ids))
        # openings on unknown walls are already reported by the containment pass
        resolved = iter(resolve_door_arcs([o for o in fixed if o.wall_id in self.walls],
                                          self.plan.walls, layout, self.rooms))
        fixed = [next(resolved) if o.wall_id in self.walls else o for o in fixed]
        for o in fixed:
            if o.id in opening_ids:
                wall = self.walls.get(o.wall_id)
                lo, hi = o.span
                ok = (MIN_DOOR_WIDTH - 1e-9 <= o.width <= MAX_DOOR_WIDTH + 1e-9
                      and wall is not None and lo >= -CONTAINMENT_TOLERANCE
                      and hi <= wall.length + CONTAINMENT_TOLERANCE)
                notes.append(f"clamped {o.id} to {o.width:.2f}m ({'resolved' if ok else 'unresolved'})")
        self._openings = fixed
        self._openings_changed = True
        return notes

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_placement(self, placement: RoomPlacement) -> None:
        self._placements[placement.room_id] = placement
        self._placements_changed = True


def validate_plan(plan: FloorPlan) -> ValidationReport:
    """Validate a floor plan; the plan itself is never modified."""
    return MultiPassValidator(plan).run()

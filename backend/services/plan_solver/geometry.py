"""
Rectangle and polygon helpers shared by the placer, scorer and validator.

Placements are axis-aligned rectangles, so most checks are plain interval
arithmetic.  Anything involving the envelope goes through Shapely because
the envelope may be a rectilinear polygon rather than a rectangle.
"""

from itertools import combinations
from typing import List, Optional, Sequence, Tuple

from shapely.geometry import LineString, box

from .models import BuildingEnvelope, RoomPlacement


def interval_overlap(a0: float, a1: float, b0: float, b1: float) -> float:
    """Length of the overlap of [a0, a1] and [b0, b1] (0 when disjoint)."""
    return max(0.0, min(a1, b1) - max(a0, b0))


def shared_edge_length(a: RoomPlacement, b: RoomPlacement, tolerance: float) -> float:
    """Length of wall two rooms share when their edges touch within *tolerance*."""
    length = 0.0
    if abs(a.x2 - b.x) <= tolerance or abs(b.x2 - a.x) <= tolerance:
        length += interval_overlap(a.y, a.y2, b.y, b.y2)
    if abs(a.y2 - b.y) <= tolerance or abs(b.y2 - a.y) <= tolerance:
        length += interval_overlap(a.x, a.x2, b.x, b.x2)
    return length


def outside_area(placement: RoomPlacement, envelope: BuildingEnvelope) -> float:
    """Area of the part of *placement* that falls outside the envelope."""
    if placement.width <= 0 or placement.height <= 0:
        return 0.0
    if envelope.is_rectangle:
        minx, miny, maxx, maxy = envelope.bounds
        inside = (interval_overlap(placement.x, placement.x2, minx, maxx)
                  * interval_overlap(placement.y, placement.y2, miny, maxy))
        return max(0.0, placement.area - inside)
    clipped = placement.polygon.intersection(envelope.polygon)
    return max(0.0, placement.area - clipped.area)


def boundary_contact(placement: RoomPlacement, envelope: BuildingEnvelope,
                     tolerance: float) -> float:
    """Longest single side of *placement* lying on the envelope outline."""
    if placement.width <= 0 or placement.height <= 0:
        return 0.0
    if envelope.is_rectangle:
        minx, miny, maxx, maxy = envelope.bounds
        along_x = interval_overlap(placement.x, placement.x2, minx, maxx)
        along_y = interval_overlap(placement.y, placement.y2, miny, maxy)
        contact = 0.0
        if abs(placement.y - miny) <= tolerance or abs(placement.y2 - maxy) <= tolerance:
            contact = along_x
        if abs(placement.x - minx) <= tolerance or abs(placement.x2 - maxx) <= tolerance:
            contact = max(contact, along_y)
        return contact
    outline = envelope.polygon.exterior.buffer(tolerance)
    return max(LineString(edge).intersection(outline).length for edge in placement.edges())


def detect_overlaps(placements: Sequence[RoomPlacement],
                    tolerance: float = 1e-4) -> List[Tuple[str, str, float]]:
    """
    Return ``(room_a, room_b, area)`` for every pair whose intersection
    exceeds *tolerance* square metres.

    Rooms sharing only an edge (zero-area intersection) are **not**
    considered overlapping.
    """
    overlaps = []
    for a, b in combinations(placements, 2):
        inter = a.polygon.intersection(b.polygon)
        if inter.area > tolerance:
            overlaps.append((a.room_id, b.room_id, inter.area))
    return overlaps


def largest_covered_subrect(placement: RoomPlacement,
                            envelope: BuildingEnvelope) -> Optional[RoomPlacement]:
    """
    Largest axis-aligned piece of *placement* lying fully inside the envelope.

    The envelope is rectilinear, so the best piece is bounded by the
    placement's own edges or by envelope vertex coordinates; trying every
    such combination is cheap for the handful of vertices a floor outline has.
    """
    env = envelope.polygon
    if env.covers(placement.polygon):
        return placement

    xs = sorted({placement.x, placement.x2} | {
        x for x, _ in envelope.outline if placement.x < x < placement.x2})
    ys = sorted({placement.y, placement.y2} | {
        y for _, y in envelope.outline if placement.y < y < placement.y2})

    best, best_area = None, 0.0
    for i, x0 in enumerate(xs):
        for x1 in xs[i + 1:]:
            for j, y0 in enumerate(ys):
                for y1 in ys[j + 1:]:
                    area = (x1 - x0) * (y1 - y0)
                    if area > best_area and env.covers(box(x0, y0, x1, y1)):
                        best, best_area = (x0, y0, x1, y1), area
    if best is None:
        return None
    x0, y0, x1, y1 = best
    return RoomPlacement(placement.room_id, x0, y0, x1 - x0, y1 - y0)

"""
Wall synthesis from room rectangles.

Every room edge and every envelope edge is projected onto its supporting
line.  Edges closer than the contact tolerance share a line, each line is
split at every endpoint, and each covered span becomes a wall piece
carrying the rooms it bounds.  Pieces that continue each other with the
same owners are merged back into one segment.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from config import CONTACT_TOLERANCE, EXTERIOR_WALL_THICKNESS, INTERIOR_WALL_THICKNESS
from .models import BuildingEnvelope, Layout, WallSegment

logger = logging.getLogger(__name__)

_EPS = 1e-9


@dataclass(frozen=True)
class _Edge:
    coord: float
    lo: float
    hi: float
    room_id: Optional[str]  # None for envelope edges


@dataclass(frozen=True)
class _Piece:
    lo: float
    hi: float
    exterior: bool
    room_ids: Tuple[str, ...]


@dataclass(frozen=True)
class Leak:
    room_id: str
    side: str
    uncovered: float


def _collect_edges(layout: Layout, envelope: BuildingEnvelope) -> Tuple[List[_Edge], List[_Edge]]:
    horizontal, vertical = [], []
    for (x1, y1), (x2, y2) in envelope.edges():
        if abs(y1 - y2) <= _EPS:
            horizontal.append(_Edge(y1, min(x1, x2), max(x1, x2), None))
        else:
            vertical.append(_Edge(x1, min(y1, y2), max(y1, y2), None))
    for p in layout.placements:
        if p.width <= _EPS or p.height <= _EPS:
            continue
        horizontal.append(_Edge(p.y, p.x, p.x2, p.room_id))
        horizontal.append(_Edge(p.y2, p.x, p.x2, p.room_id))
        vertical.append(_Edge(p.x, p.y, p.y2, p.room_id))
        vertical.append(_Edge(p.x2, p.y, p.y2, p.room_id))
    return horizontal, vertical


def _cluster(edges: List[_Edge]) -> List[Tuple[float, List[_Edge]]]:
    """Group edges whose supporting lines lie within the contact tolerance."""
    lines = []
    group: List[_Edge] = []
    for edge in sorted(edges, key=lambda e: (e.coord, e.lo, e.hi, e.room_id or "")):
        if group and edge.coord - group[-1].coord > CONTACT_TOLERANCE:
            lines.append(group)
            group = []
        group.append(edge)
    if group:
        lines.append(group)

    result = []
    for group in lines:
        envelope_coords = [e.coord for e in group if e.room_id is None]
        if envelope_coords:
            coord = envelope_coords[0]
        else:
            coord = sum(e.coord for e in group) / len(group)
        result.append((coord, group))
    return result


def _split(group: List[_Edge], order: Dict[str, int]) -> List[_Piece]:
    breaks = sorted({e.lo for e in group} | {e.hi for e in group})
    pieces = []
    for a, b in zip(breaks, breaks[1:]):
        if b - a <= _EPS:
            continue
        mid = (a + b) / 2
        covering = [e for e in group if e.lo - _EPS <= mid <= e.hi + _EPS]
        if not covering:
            continue
        exterior = any(e.room_id is None for e in covering)
        owners = sorted({e.room_id for e in covering if e.room_id is not None},
                        key=lambda rid: order[rid])
        pieces.append(_Piece(a, b, exterior, tuple(owners)))
    return pieces


def _merge(pieces: List[_Piece]) -> List[_Piece]:
    merged: List[_Piece] = []
    for piece in pieces:
        prev = merged[-1] if merged else None
        if (prev is not None and abs(prev.hi - piece.lo) <= _EPS
                and prev.exterior == piece.exterior and prev.room_ids == piece.room_ids):
            merged[-1] = _Piece(prev.lo, piece.hi, prev.exterior, prev.room_ids)
        else:
            merged.append(piece)
    return merged


def synthesize_walls(layout: Layout, envelope: BuildingEnvelope) -> List[WallSegment]:
    """
    Derive the wall graph for a frozen layout.

    Returns
    -------
    list[WallSegment]
        Exterior walls along the envelope, interior walls between rooms
        and partition walls along room edges that face open space.
        Horizontal walls come first (bottom to top), then vertical ones
        (left to right); every segment runs in increasing coordinate.
    """
    order = {rid: i for i, rid in enumerate(layout.room_ids)}
    horizontal, vertical = _collect_edges(layout, envelope)

    walls: List[WallSegment] = []
    for is_horizontal, edges in ((True, horizontal), (False, vertical)):
        for coord, group in _cluster(edges):
            for piece in _merge(_split(group, order)):
                if is_horizontal:
                    start, end = (piece.lo, coord), (piece.hi, coord)
                else:
                    start, end = (coord, piece.lo), (coord, piece.hi)
                walls.append(WallSegment(
                    id=f"wall_{len(walls) + 1:03d}",
                    start=start,
                    end=end,
                    thickness=EXTERIOR_WALL_THICKNESS if piece.exterior else INTERIOR_WALL_THICKNESS,
                    exterior=piece.exterior,
                    room_ids=piece.room_ids,
                ))

    exterior = sum(1 for w in walls if w.exterior)
    shared = sum(1 for w in walls if len(w.room_ids) == 2)
    logger.debug(f"Synthesized {len(walls)} walls ({exterior} exterior, {shared} shared)")
    return walls


def find_leaks(layout: Layout, walls: Sequence[WallSegment],
               tolerance: float = CONTACT_TOLERANCE) -> List[Leak]:
    """Room edges (or parts of them) that no wall segment covers."""
    leaks = []
    sides = ("bottom", "right", "top", "left")
    for p in layout.placements:
        for side, ((x1, y1), (x2, y2)) in zip(sides, p.edges()):
            horizontal = abs(y1 - y2) <= _EPS
            coord = y1 if horizontal else x1
            lo, hi = (min(x1, x2), max(x1, x2)) if horizontal else (min(y1, y2), max(y1, y2))
            spans = []
            for w in walls:
                if w.is_horizontal != horizontal:
                    continue
                w_coord = w.start[1] if horizontal else w.start[0]
                if abs(w_coord - coord) > tolerance:
                    continue
                a, b = (w.start[0], w.end[0]) if horizontal else (w.start[1], w.end[1])
                spans.append((min(a, b), max(a, b)))

            covered, cursor = 0.0, lo
            for a, b in sorted(spans):
                a, b = max(a, cursor), min(b, hi)
                if b > a:
                    covered += b - a
                    cursor = b
            uncovered = (hi - lo) - covered
            if uncovered > 1e-6:
                leaks.append(Leak(p.room_id, side, uncovered))
    return leaks

"""
Zone-based seed placement.

The envelope is cut into bands relative to the entry face: public rooms
(with service rooms beside them) in the front band, private rooms in the
back band.  Each band is then filled with shelf packing.  The result is
only a starting point for the optimizer: rooms tile their band exactly,
so the seed has no overlaps, but areas and proportions are rough.
Non-rectangular outlines are packed into the largest rectangle they
contain; the optimizer grows rooms into the rest.
"""

import logging
from typing import Dict, List, Sequence, Tuple

from config import INFEASIBILITY_MARGIN
from .errors import InfeasibleSpec
from .geometry import largest_covered_subrect
from .models import BuildingEnvelope, Layout, RoomPlacement, RoomSpec, Zone
from .rules import TYPOLOGY_PROFILES

logger = logging.getLogger(__name__)

# (u, v, width, depth) in the entry-face frame: u runs along the face, v away from it
LocalRect = Tuple[float, float, float, float]


def check_feasibility(rooms: Sequence[RoomSpec], envelope: BuildingEnvelope) -> None:
    """Raise InfeasibleSpec when even minimum-size rooms cannot fit."""
    required = sum(r.min_area for r in rooms) * INFEASIBILITY_MARGIN
    available = envelope.area
    if required > available:
        raise InfeasibleSpec(
            f"Rooms need at least {required:.1f}m² (minimum areas x {INFEASIBILITY_MARGIN}) "
            f"but the envelope offers {available:.1f}m²",
            required_area=required,
            available_area=available,
        )

    minx, miny, maxx, maxy = envelope.bounds
    short_side = min(maxx - minx, maxy - miny)
    for room in rooms:
        if room.min_dimension > short_side:
            raise InfeasibleSpec(
                f"{room.id} needs sides of at least {room.min_dimension}m but the "
                f"envelope is only {short_side:.2f}m across",
                required_area=required,
                available_area=available,
            )


class ZonePlacer:
    """
    Produce a seed Layout from room specs and an envelope.

    Parameters
    ----------
    envelope : BuildingEnvelope
        Boundary to fill.
    typology : str
        Building typology; studios are packed without zoning.
    """

    def __init__(self, envelope: BuildingEnvelope, typology: str = "apartment"):
        self.envelope = envelope
        self.typology = typology
        self.frame = self._frame(envelope)
        minx, miny, maxx, maxy = self.frame
        if envelope.entry_face in ("south", "north"):
            self.face_width, self.depth = maxx - minx, maxy - miny
        else:
            self.face_width, self.depth = maxy - miny, maxx - minx

    @staticmethod
    def _frame(envelope: BuildingEnvelope) -> Tuple[float, float, float, float]:
        """Rectangle the seed is packed into: the envelope itself, or the largest one it contains."""
        if envelope.is_rectangle:
            return envelope.bounds
        minx, miny, maxx, maxy = envelope.bounds
        inner = largest_covered_subrect(
            RoomPlacement("frame", minx, miny, maxx - minx, maxy - miny), envelope)
        if inner is None:
            return envelope.bounds
        return inner.bounds

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def place(self, rooms: Sequence[RoomSpec]) -> Layout:
        check_feasibility(rooms, self.envelope)

        local: Dict[str, LocalRect] = {}
        for group, region in self._zone_regions(rooms):
            local.update(self._pack(group, region))

        placements = [self._to_world(room.id, local[room.id]) for room in rooms]

        logger.debug(
            f"Seeded {len(placements)} rooms ({self.typology}, entry {self.envelope.entry_face})"
        )
        return Layout(placements=tuple(placements), generation=0)

    # ------------------------------------------------------------------
    # Zoning
    # ------------------------------------------------------------------

    def _zone_regions(self, rooms: Sequence[RoomSpec]) -> List[Tuple[List[RoomSpec], LocalRect]]:
        width, depth = self.face_width, self.depth
        profile = TYPOLOGY_PROFILES.get(self.typology)
        if profile is not None and not profile.zoned:
            return [(list(rooms), (0.0, 0.0, width, depth))]

        public = [r for r in rooms if r.zone == Zone.PUBLIC]
        service = [r for r in rooms if r.zone == Zone.SERVICE]
        private = [r for r in rooms if r.zone == Zone.PRIVATE]

        a_pub = sum(r.target_area for r in public)
        a_svc = sum(r.target_area for r in service)
        a_prv = sum(r.target_area for r in private)
        total = a_pub + a_svc + a_prv
        front = a_pub + a_svc

        regions = []
        front_depth = depth * front / total if private else depth
        if front > 0:
            if public and service:
                split = width * a_pub / front
                regions.append((public, (0.0, 0.0, split, front_depth)))
                regions.append((service, (split, 0.0, width - split, front_depth)))
            else:
                regions.append((public or service, (0.0, 0.0, width, front_depth)))
        else:
            front_depth = 0.0
        if private:
            regions.append((private, (0.0, front_depth, width, depth - front_depth)))
        return regions

    # ------------------------------------------------------------------
    # Shelf packing
    # ------------------------------------------------------------------

    def _pack(self, rooms: List[RoomSpec], region: LocalRect) -> Dict[str, LocalRect]:
        """Pack *rooms* into *region*, trying shelves in both directions."""
        u0, v0, width, depth = region
        order = sorted(rooms, key=lambda r: -r.target_area)
        total = sum(r.target_area for r in order)
        scale = (width * depth) / total if total > 0 else 1.0
        areas = [r.target_area * scale for r in order]

        along = self._shelves(order, areas, width, depth)
        across = {
            rid: (v, u, d, w)
            for rid, (u, v, w, d) in self._shelves(order, areas, depth, width).items()
        }
        best = min((along, across), key=lambda packed: self._packing_penalty(order, packed))
        return {rid: (u0 + u, v0 + v, w, d) for rid, (u, v, w, d) in best.items()}

    @staticmethod
    def _worst_ratio(row_areas: List[float], width: float) -> float:
        row_depth = sum(row_areas) / width
        worst = 1.0
        for a in row_areas:
            w = a / row_depth
            worst = max(worst, w / row_depth, row_depth / w)
        return worst

    def _shelves(self, rooms: List[RoomSpec], areas: List[float],
                 width: float, depth: float) -> Dict[str, LocalRect]:
        rows: List[List[int]] = []
        current: List[int] = []
        for idx in range(len(rooms)):
            if not current:
                current = [idx]
                continue
            grown = current + [idx]
            if (self._worst_ratio([areas[i] for i in grown], width)
                    <= self._worst_ratio([areas[i] for i in current], width)):
                current = grown
            else:
                rows.append(current)
                current = [idx]
        if current:
            rows.append(current)

        packed: Dict[str, LocalRect] = {}
        v = 0.0
        for r, row in enumerate(rows):
            row_depth = sum(areas[i] for i in row) / width
            if r == len(rows) - 1:
                row_depth = depth - v
            u = 0.0
            for k, idx in enumerate(row):
                w = areas[idx] / row_depth if row_depth > 0 else 0.0
                if k == len(row) - 1:
                    w = width - u
                packed[rooms[idx].id] = (u, v, w, row_depth)
                u += w
            v += row_depth
        return packed

    @staticmethod
    def _packing_penalty(rooms: List[RoomSpec], packed: Dict[str, LocalRect]) -> Tuple[int, float]:
        violations, aspect = 0, 0.0
        for room in rooms:
            _, _, w, d = packed[room.id]
            if min(w, d) < room.min_dimension:
                violations += 1
            if w > 0 and d > 0:
                aspect += max(w / d, d / w)
        return violations, aspect

    # ------------------------------------------------------------------
    # Frame conversion
    # ------------------------------------------------------------------

    def _to_world(self, room_id: str, rect: LocalRect) -> RoomPlacement:
        u, v, w, d = rect
        minx, miny, maxx, maxy = self.frame
        face = self.envelope.entry_face
        if face == "south":
            return RoomPlacement(room_id, minx + u, miny + v, w, d)
        if face == "north":
            return RoomPlacement(room_id, minx + u, maxy - v - d, w, d)
        if face == "west":
            return RoomPlacement(room_id, minx + v, miny + u, d, w)
        return RoomPlacement(room_id, maxx - v - d, miny + u, d, w)

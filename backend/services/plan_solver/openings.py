"""
Circulation-aware door and window placement on a synthesized wall graph.

Order of work:
  1. one entry door on the longest exterior wall of a public room
  2. one interior door per must/should adjacency that shares a wall
  3. extra doors until every room is reachable from the entry
  4. windows on every qualifying exterior wall of rooms that need daylight

Doors and windows never overlap on a wall and keep a clearance from the
wall's ends.
"""

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

import networkx as nx

from config import (
    ENTRY_DOOR_WIDTH,
    MAX_WINDOW_WIDTH,
    MIN_DOOR_WIDTH,
    MIN_WINDOW_WIDTH,
    NARROW_DOOR_WIDTH,
    OPENING_CLEARANCE,
    STANDARD_DOOR_WIDTH,
    WIDE_DOOR_WIDTH,
    WINDOW_FRACTION,
)
from .models import (
    AdjacencyEdge,
    AdjacencyKind,
    Layout,
    Opening,
    OpeningKind,
    RoomSpec,
    RoomType,
    WallSegment,
    Zone,
)
from .rules import HUB_TYPES, EntranceStrategy, requires_window

logger = logging.getLogger(__name__)


def qualifying_window_walls(walls: Sequence[WallSegment], room_id: str) -> List[WallSegment]:
    """Exterior walls of *room_id* long enough to take a window."""
    min_length = MIN_WINDOW_WIDTH + 2 * OPENING_CLEARANCE
    return [w for w in walls
            if w.exterior and room_id in w.room_ids and w.length >= min_length - 1e-9]


def door_graph(openings: Sequence[Opening]) -> nx.Graph:
    """Room graph: one edge per interior door, labelled with the door id."""
    graph = nx.Graph()
    for o in openings:
        if o.is_door and len(o.room_ids) == 2:
            graph.add_edge(*o.room_ids, door=o.id)
    return graph


def reachable_rooms(openings: Sequence[Opening], start: str) -> Set[str]:
    graph = door_graph(openings)
    graph.add_node(start)
    return set(nx.node_connected_component(graph, start))


class OpeningPlacer:
    """
    Place doors and windows for a frozen layout.

    Parameters
    ----------
    layout : Layout
        Frozen room placements.
    walls : sequence of WallSegment
        Output of the wall synthesizer for the same layout.
    rooms : sequence of RoomSpec
        Room specs, for types and zones.
    edges : sequence of AdjacencyEdge
        Resolved adjacency preferences.
    strategy : EntranceStrategy, optional
        Preferred entry rooms, used to break ties between equally long walls.
    """

    def __init__(self, layout: Layout, walls: Sequence[WallSegment], rooms: Sequence[RoomSpec],
                 edges: Sequence[AdjacencyEdge], strategy: Optional[EntranceStrategy] = None):
        self.layout = layout
        self.walls = list(walls)
        self.rooms = {r.id: r for r in rooms}
        self.edges = list(edges)
        self.strategy = strategy
        self._order = {rid: i for i, rid in enumerate(layout.room_ids)}
        self._openings: List[Opening] = []
        self._occupied: Dict[str, List[Tuple[float, float]]] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def place(self) -> List[Opening]:
        entry_room = self._place_entry_door()
        self._place_adjacency_doors()
        if entry_room is not None:
            self._repair_connectivity(entry_room)
        self._place_windows()

        doors = sum(1 for o in self._openings if o.is_door)
        logger.debug(f"Placed {doors} doors and {len(self._openings) - doors} windows")
        return list(self._openings)

    # ------------------------------------------------------------------
    # Doors
    # ------------------------------------------------------------------

    def _place_entry_door(self) -> Optional[str]:
        preferred = list(self.strategy.preferred_rooms) if self.strategy else []

        def rank(wall: WallSegment):
            rtype = self.rooms[wall.room_ids[0]].room_type
            pref = preferred.index(rtype) if rtype in preferred else len(preferred)
            return (-round(wall.length, 6), pref, wall.id)

        for zone in (Zone.PUBLIC, Zone.SERVICE, Zone.PRIVATE):
            candidates = [w for w in self.walls
                          if w.exterior and len(w.room_ids) == 1
                          and w.room_ids[0] in self.rooms
                          and self.rooms[w.room_ids[0]].zone == zone]
            for wall in sorted(candidates, key=rank):
                room_id = wall.room_ids[0]
                if self._add_door(wall, ENTRY_DOOR_WIDTH, (room_id,), is_entry=True):
                    if zone != Zone.PUBLIC:
                        logger.warning(f"No public room reaches the envelope; entry placed in {room_id}")
                    return room_id
        logger.warning("No exterior wall can take an entry door")
        return None

    def _place_adjacency_doors(self) -> None:
        connected: Set[Tuple[str, str]] = set()
        for edge in sorted(self.edges, key=lambda e: (-e.weight, e.key)):
            if edge.kind == AdjacencyKind.AVOID or edge.key in connected:
                continue
            for wall in self._shared_walls(edge.a, edge.b):
                if self._add_door(wall, self._door_width(edge.a, edge.b),
                                  self._door_rooms(edge.a, edge.b)):
                    connected.add(edge.key)
                    break

    def _repair_connectivity(self, entry_room: str) -> None:
        reached = reachable_rooms(self._openings, entry_room)
        progress = True
        while progress:
            progress = False
            for room_id in self.layout.room_ids:
                if room_id in reached:
                    continue
                candidates = [w for w in self.walls
                              if not w.exterior and len(w.room_ids) == 2 and room_id in w.room_ids
                              and self._other(w, room_id) in reached]
                candidates.sort(key=lambda w: (self._hub_rank(self._other(w, room_id)),
                                               -round(w.length, 6), w.id))
                for wall in candidates:
                    other = self._other(wall, room_id)
                    if self._add_door(wall, self._door_width(room_id, other),
                                      self._door_rooms(other, room_id)):
                        reached = reachable_rooms(self._openings, entry_room)
                        progress = True
                        break
        unreached = [rid for rid in self.layout.room_ids if rid not in reached]
        if unreached:
            logger.warning(f"Rooms unreachable from the entry: {', '.join(unreached)}")

    def _add_door(self, wall: WallSegment, width: float, room_ids: Tuple[str, ...],
                  is_entry: bool = False) -> bool:
        fit = self._fit(wall, width, MIN_DOOR_WIDTH)
        if fit is None:
            return False
        center, width = fit
        count = sum(1 for o in self._openings if o.is_door) + 1
        self._record(Opening(
            id=f"door_{count:02d}",
            kind=OpeningKind.DOOR,
            wall_id=wall.id,
            offset=center,
            width=width,
            rotation=wall.angle,
            is_entry=is_entry,
            room_ids=room_ids,
        ))
        return True

    def _shared_walls(self, a: str, b: str) -> List[WallSegment]:
        shared = [w for w in self.walls if not w.exterior and set(w.room_ids) == {a, b}]
        return sorted(shared, key=lambda w: (-round(w.length, 6), w.id))

    def _door_width(self, a: str, b: str) -> float:
        types = {self.rooms[a].room_type, self.rooms[b].room_type}
        if RoomType.LIVING in types:
            return WIDE_DOOR_WIDTH
        if RoomType.BATHROOM in types:
            return NARROW_DOOR_WIDTH
        return STANDARD_DOOR_WIDTH

    def _door_rooms(self, a: str, b: str) -> Tuple[str, str]:
        """Order a door's rooms as (from, into): into is the more private one."""
        if self.rooms[b].zone.privacy < self.rooms[a].zone.privacy:
            return (b, a)
        return (a, b)

    def _hub_rank(self, room_id: str) -> int:
        rtype = self.rooms[room_id].room_type
        return HUB_TYPES.index(rtype) if rtype in HUB_TYPES else len(HUB_TYPES)

    @staticmethod
    def _other(wall: WallSegment, room_id: str) -> str:
        a, b = wall.room_ids
        return b if a == room_id else a

    # ------------------------------------------------------------------
    # Windows
    # ------------------------------------------------------------------

    def _place_windows(self) -> None:
        count = 0
        for room_id in self.layout.room_ids:
            if not requires_window(self.rooms[room_id].room_type):
                continue
            for wall in qualifying_window_walls(self.walls, room_id):
                width = min(max(wall.length * WINDOW_FRACTION, MIN_WINDOW_WIDTH), MAX_WINDOW_WIDTH)
                fit = self._fit(wall, width, MIN_WINDOW_WIDTH)
                if fit is None:
                    continue
                center, width = fit
                count += 1
                self._record(Opening(
                    id=f"window_{count:02d}",
                    kind=OpeningKind.WINDOW,
                    wall_id=wall.id,
                    offset=center,
                    width=width,
                    rotation=wall.angle,
                    room_ids=(room_id,),
                ))

    # ------------------------------------------------------------------
    # Wall occupancy
    # ------------------------------------------------------------------

    def _record(self, opening: Opening) -> None:
        self._openings.append(opening)
        self._occupied.setdefault(opening.wall_id, []).append(opening.span)

    def _fit(self, wall: WallSegment, width: float,
             min_width: float) -> Optional[Tuple[float, float]]:
        """
        Find a center and width for an opening on *wall*.

        Prefers the wall midpoint, keeps OPENING_CLEARANCE from the wall
        ends and from openings already on the wall, and shrinks the
        opening down to *min_width* when the free span is short.
        """
        length = wall.length
        gaps = []
        cursor = OPENING_CLEARANCE
        for lo, hi in sorted(self._occupied.get(wall.id, [])):
            if lo - OPENING_CLEARANCE > cursor:
                gaps.append((cursor, lo - OPENING_CLEARANCE))
            cursor = max(cursor, hi + OPENING_CLEARANCE)
        if length - OPENING_CLEARANCE > cursor:
            gaps.append((cursor, length - OPENING_CLEARANCE))
        if not gaps:
            return None

        mid = length / 2.0
        containing = [g for g in gaps if g[0] <= mid <= g[1] and g[1] - g[0] >= width]
        lo, hi = containing[0] if containing else max(gaps, key=lambda g: (g[1] - g[0], -g[0]))
        width = min(width, hi - lo)
        if width < min_width - 1e-9:
            return None
        center = min(max(mid, lo + width / 2.0), hi - width / 2.0)
        return center, width

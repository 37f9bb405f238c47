"""
Multi-objective cost function for candidate layouts.

Seven weighted terms, all non-negative, zero meaning a perfect layout:

    overlap       sum of pairwise intersection areas
    adjacency     unmet must/should edges, violated avoid edges, isolated rooms
    compactness   perimeter/area deviation from the room type's ideal rectangle
    area_fit      squared relative deviation from target area
    envelope_fit  room area falling outside the envelope
    connectivity  extra components of the graph of walls wide enough for a door
    entry_access  1 when no public room has an envelope side that can take a door

The annealing loop calls ``score`` thousands of times per solve, so the
pairwise terms are computed as numpy matrices in one pass.
"""

from dataclasses import asdict, dataclass
from typing import Dict, Optional, Sequence

import networkx as nx
import numpy as np

from config import (
    CONTACT_TOLERANCE,
    MIN_DOOR_WIDTH,
    MIN_SHARED_WALL,
    OPENING_CLEARANCE,
    WEIGHT_ADJACENCY,
    WEIGHT_AREA_FIT,
    WEIGHT_COMPACTNESS,
    WEIGHT_CONNECTIVITY,
    WEIGHT_ENTRY_ACCESS,
    WEIGHT_ENVELOPE_FIT,
    WEIGHT_OVERLAP,
)
from .geometry import boundary_contact, outside_area
from .models import AdjacencyEdge, AdjacencyKind, BuildingEnvelope, Layout, RoomSpec, Zone

# Gap (m) beyond which an unmet adjacency gets no extra distance penalty
_GAP_SCALE = 5.0

# Shortest wall that still takes the narrowest door with its clearances
DOOR_WALL_LENGTH = MIN_DOOR_WIDTH + 2 * OPENING_CLEARANCE


@dataclass(frozen=True)
class ScoreWeights:
    overlap: float = WEIGHT_OVERLAP
    adjacency: float = WEIGHT_ADJACENCY
    compactness: float = WEIGHT_COMPACTNESS
    area_fit: float = WEIGHT_AREA_FIT
    envelope_fit: float = WEIGHT_ENVELOPE_FIT
    connectivity: float = WEIGHT_CONNECTIVITY
    entry_access: float = WEIGHT_ENTRY_ACCESS


@dataclass(frozen=True)
class ScoreBreakdown:
    """Raw term values plus the weighted total."""

    total: float
    overlap: float
    adjacency: float
    compactness: float
    area_fit: float
    envelope_fit: float
    connectivity: float = 0.0
    entry_access: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {k: round(v, 6) for k, v in asdict(self).items()}


class LayoutScorer:
    """
    Cost function bound to one specification.

    Parameters
    ----------
    rooms : sequence of RoomSpec
        Rooms being placed (targets and types).
    edges : sequence of AdjacencyEdge
        Resolved adjacency preferences between room ids.
    envelope : BuildingEnvelope
        Boundary for the envelope-fit term.
    weights : ScoreWeights, optional
        Term weights; defaults come from configuration.
    """

    def __init__(self, rooms: Sequence[RoomSpec], edges: Sequence[AdjacencyEdge],
                 envelope: BuildingEnvelope, weights: Optional[ScoreWeights] = None):
        self.rooms = {r.id: r for r in rooms}
        self.envelope = envelope
        self.weights = weights or ScoreWeights()

        self._index = {r.id: i for i, r in enumerate(rooms)}
        self._targets = np.array([r.target_area for r in rooms], dtype=float)
        self._optimal = np.array([r.standard.optimal_ratio for r in rooms], dtype=float)
        self._public = {r.id for r in rooms if r.zone == Zone.PUBLIC}

        usable = [e for e in edges if e.a in self._index and e.b in self._index]
        self._edge_a = np.array([self._index[e.a] for e in usable], dtype=int)
        self._edge_b = np.array([self._index[e.b] for e in usable], dtype=int)
        self._edge_avoid = np.array([e.kind == AdjacencyKind.AVOID for e in usable], dtype=bool)
        base = []
        for e in usable:
            if e.kind == AdjacencyKind.AVOID:
                base.append((10 - e.weight) / 10.0)
            elif e.kind == AdjacencyKind.MUST:
                base.append(2.0 * e.weight / 10.0)
            else:
                base.append(e.weight / 10.0)
        self._edge_base = np.array(base, dtype=float)

    def _arrays(self, layout: Layout):
        n = len(self._index)
        x0, y0 = np.zeros(n), np.zeros(n)
        w, h = np.zeros(n), np.zeros(n)
        for p in layout.placements:
            i = self._index[p.room_id]
            x0[i], y0[i], w[i], h[i] = p.x, p.y, p.width, p.height
        return x0, y0, w, h

    def shared_walls(self, layout: Layout) -> np.ndarray:
        """Symmetric matrix of shared wall length between every pair of rooms."""
        x0, y0, w, h = self._arrays(layout)
        return self._shared(x0, y0, x0 + w, y0 + h)[0]

    @staticmethod
    def _shared(x0, y0, x1, y1):
        ix = np.minimum(x1[:, None], x1[None, :]) - np.maximum(x0[:, None], x0[None, :])
        iy = np.minimum(y1[:, None], y1[None, :]) - np.maximum(y0[:, None], y0[None, :])
        touch_v = ((np.abs(x1[:, None] - x0[None, :]) <= CONTACT_TOLERANCE)
                   | (np.abs(x0[:, None] - x1[None, :]) <= CONTACT_TOLERANCE))
        touch_h = ((np.abs(y1[:, None] - y0[None, :]) <= CONTACT_TOLERANCE)
                   | (np.abs(y0[:, None] - y1[None, :]) <= CONTACT_TOLERANCE))
        shared = (np.where(touch_v, np.clip(iy, 0.0, None), 0.0)
                  + np.where(touch_h, np.clip(ix, 0.0, None), 0.0))
        np.fill_diagonal(shared, 0.0)
        return shared, ix, iy

    def score(self, layout: Layout) -> ScoreBreakdown:
        x0, y0, w, h = self._arrays(layout)
        x1, y1 = x0 + w, y0 + h
        n = len(x0)
        shared, ix, iy = self._shared(x0, y0, x1, y1)

        # 1. overlap
        inter = np.clip(ix, 0.0, None) * np.clip(iy, 0.0, None)
        overlap = float(np.triu(inter, 1).sum())

        # 2. adjacency
        adjacency = 0.0
        if len(self._edge_a):
            s = shared[self._edge_a, self._edge_b]
            gap = np.hypot(np.clip(-ix, 0.0, None), np.clip(-iy, 0.0, None))[self._edge_a, self._edge_b]
            missing = 1.0 - np.minimum(s, MIN_SHARED_WALL) / MIN_SHARED_WALL
            unmet = self._edge_base * (missing + 0.5 * np.minimum(gap / _GAP_SCALE, 1.0))
            violated = np.where(s > CONTACT_TOLERANCE, self._edge_base, 0.0)
            adjacency = float(np.where(self._edge_avoid, violated, unmet).sum())
        if n > 1:
            adjacency += float((shared.max(axis=1) < MIN_SHARED_WALL).sum())

        # 3. compactness
        area = w * h
        safe_area = np.where(area > 0, area, 1.0)
        actual = 2.0 * (w + h) / safe_area
        ideal_w = np.sqrt(safe_area * self._optimal)
        ideal = 2.0 * (ideal_w + safe_area / ideal_w) / safe_area
        compactness = float(np.where(area > 0, np.abs(actual - ideal) / ideal, 1.0).sum())

        # 4. area fit
        area_fit = float((((area - self._targets) / self._targets) ** 2).sum())

        # 5. envelope fit
        envelope_fit = float(sum(outside_area(p, self.envelope) for p in layout.placements))

        # 6. connectivity
        connectivity = 0.0
        if n > 1:
            graph = nx.from_numpy_array((shared >= DOOR_WALL_LENGTH - 1e-9).astype(int))
            connectivity = float(nx.number_connected_components(graph) - 1)

        # 7. entry access
        entry_access = 0.0
        if self._public and not self.entry_reachable(layout):
            entry_access = 1.0

        wt = self.weights
        total = (wt.overlap * overlap + wt.adjacency * adjacency
                 + wt.compactness * compactness + wt.area_fit * area_fit
                 + wt.envelope_fit * envelope_fit + wt.connectivity * connectivity
                 + wt.entry_access * entry_access)
        return ScoreBreakdown(total, overlap, adjacency, compactness, area_fit, envelope_fit,
                              connectivity, entry_access)

    def entry_reachable(self, layout: Layout) -> bool:
        """True when some public room has an envelope side long enough for a door."""
        return any(boundary_contact(p, self.envelope, CONTACT_TOLERANCE) >= DOOR_WALL_LENGTH - 1e-9
                   for p in layout.placements if p.room_id in self._public)

    def cost(self, layout: Layout) -> float:
        return self.score(layout).total

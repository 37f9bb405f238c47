"""Similarity between solved variations, so callers can tell near-duplicates apart."""

import math
from dataclasses import asdict, dataclass
from itertools import combinations
from typing import Dict

from config import CONTACT_TOLERANCE, MIN_SHARED_WALL
from .geometry import shared_edge_length
from .models import FloorPlan


@dataclass(frozen=True)
class DiversityScore:
    structural_similarity: float  # 0-1, shared-wall relations in common
    spatial_similarity: float     # 0-1, room centers close together
    layout_similarity: float      # 0-1, room proportions alike
    overall_diversity: float      # 0-100, higher is more diverse

    def to_dict(self) -> Dict[str, float]:
        return {k: round(v, 4) for k, v in asdict(self).items()}


def score_diversity(first: FloorPlan, second: FloorPlan) -> DiversityScore:
    a, b = first.layout.as_mapping(), second.layout.as_mapping()
    common = [rid for rid in first.layout.room_ids if rid in b]
    if not common:
        return DiversityScore(0.0, 0.0, 0.0, 100.0)

    matching = total = 0
    for x, y in combinations(common, 2):
        touch_a = shared_edge_length(a[x], a[y], CONTACT_TOLERANCE) >= MIN_SHARED_WALL
        touch_b = shared_edge_length(b[x], b[y], CONTACT_TOLERANCE) >= MIN_SHARED_WALL
        total += 1
        matching += touch_a == touch_b
    structural = matching / total if total else 1.0

    minx, miny, maxx, maxy = first.envelope.bounds
    diagonal = math.hypot(maxx - minx, maxy - miny) or 1.0
    spatial = sum(
        1.0 - min(math.dist(a[rid].center, b[rid].center) / diagonal, 1.0) for rid in common
    ) / len(common)

    def proportion(w: float, h: float) -> float:
        return min(w, h) / max(w, h) if max(w, h) > 0 else 0.0

    shape = sum(
        1.0 - abs(proportion(a[rid].width, a[rid].height) - proportion(b[rid].width, b[rid].height))
        for rid in common
    ) / len(common)

    mean = (structural + spatial + shape) / 3.0
    return DiversityScore(structural, spatial, shape, (1.0 - mean) * 100.0)

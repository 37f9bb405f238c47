"""
Architectural Rule Engine - single source of truth for room standards.

Exposes read-only constant tables and pure validation helpers for:
  - Room proportion standards (min/max/optimal area, min dimension, aspect range)
  - Adjacency rules (must / should / avoid) and their symmetric lookup
  - Zone classification (public / service / private)
  - Natural-light requirements
  - Building typology and the optimizer budget that goes with it
  - Entrance strategy

The tables are built once at import time and wrapped in MappingProxyType,
so concurrent solves can share them by reference.  Numeric thresholds
come from ``config`` and can be tuned through the environment.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from config import (
    AREA_OVERFLOW_RATIO,
    AREA_UNDERUTILIZATION_RATIO,
    CIRCULATION_FACTOR,
    DEFAULT_ADJACENCY_WEIGHT,
    MAX_MUST_ADJACENCIES,
    MIN_CORRIDOR_WIDTH,
)
from .models import AdjacencyEdge, AdjacencyKind, RoomSpec, RoomType, Severity, ValidationIssue, Zone

logger = logging.getLogger(__name__)

RoomTypeLike = Union[RoomType, str]


# ===========================================================================
# ROOM PROPORTION STANDARDS (metres / square metres)
# ===========================================================================

@dataclass(frozen=True)
class RoomStandard:
    min_area: float
    max_area: float
    optimal_area: float
    min_dimension: float
    optimal_ratio: float
    aspect_range: Tuple[float, float]


ROOM_STANDARDS: Mapping[RoomType, RoomStandard] = MappingProxyType({
    RoomType.BEDROOM:  RoomStandard(9.0, 25.0, 14.0, 3.0, 1.2, (0.9, 1.5)),
    RoomType.BATHROOM: RoomStandard(3.5, 8.0, 5.0, 1.8, 1.2, (0.7, 1.6)),
    RoomType.KITCHEN:  RoomStandard(8.0, 18.0, 12.0, 2.5, 1.4, (0.8, 2.0)),
    RoomType.LIVING:   RoomStandard(18.0, 40.0, 25.0, 4.0, 1.5, (1.0, 1.8)),
    RoomType.DINING:   RoomStandard(10.0, 25.0, 15.0, 3.0, 1.3, (0.9, 1.6)),
    RoomType.HALLWAY:  RoomStandard(2.0, 8.0, 5.0, 1.2, 0.4, (0.3, 0.8)),
    RoomType.STUDY:    RoomStandard(8.0, 15.0, 10.0, 2.5, 1.2, (0.8, 1.5)),
    RoomType.UTILITY:  RoomStandard(3.0, 8.0, 5.0, 1.8, 1.1, (0.7, 1.5)),
    RoomType.GARAGE:   RoomStandard(15.0, 40.0, 25.0, 3.5, 1.3, (0.9, 1.6)),
    RoomType.BALCONY:  RoomStandard(4.0, 15.0, 8.0, 2.0, 1.5, (0.7, 2.5)),
    RoomType.UNKNOWN:  RoomStandard(4.0, 30.0, 10.0, 1.5, 1.2, (0.5, 2.0)),
})


# ===========================================================================
# ZONES & FUNCTIONAL REQUIREMENTS
# ===========================================================================

ZONES: Mapping[RoomType, Zone] = MappingProxyType({
    RoomType.BEDROOM: Zone.PRIVATE,
    RoomType.BATHROOM: Zone.PRIVATE,
    RoomType.STUDY: Zone.PRIVATE,
    RoomType.KITCHEN: Zone.SERVICE,
    RoomType.UTILITY: Zone.SERVICE,
    RoomType.GARAGE: Zone.SERVICE,
    RoomType.LIVING: Zone.PUBLIC,
    RoomType.DINING: Zone.PUBLIC,
    RoomType.HALLWAY: Zone.PUBLIC,
    RoomType.BALCONY: Zone.PUBLIC,
    RoomType.UNKNOWN: Zone.PRIVATE,
})

# Rooms that must get daylight through at least one window
NATURAL_LIGHT: FrozenSet[RoomType] = frozenset({
    RoomType.BEDROOM, RoomType.BATHROOM, RoomType.KITCHEN, RoomType.LIVING,
    RoomType.DINING, RoomType.STUDY, RoomType.UNKNOWN,
})

# Circulation hubs, preferred when a room needs a door for access
HUB_TYPES: Tuple[RoomType, ...] = (RoomType.HALLWAY, RoomType.LIVING, RoomType.DINING)


def standard_for(room_type: RoomTypeLike) -> RoomStandard:
    return ROOM_STANDARDS[RoomType.parse(room_type)]


def zone_for(room_type: RoomTypeLike) -> Zone:
    return ZONES[RoomType.parse(room_type)]


def requires_window(room_type: RoomTypeLike) -> bool:
    return RoomType.parse(room_type) in NATURAL_LIGHT


# ===========================================================================
# ADJACENCY RULES
# ===========================================================================

@dataclass(frozen=True)
class AdjacencyRule:
    first: RoomType
    second: RoomType
    weight: int
    kind: AdjacencyKind
    justification: str


ADJACENCY_RULES: Tuple[AdjacencyRule, ...] = (
    AdjacencyRule(RoomType.KITCHEN, RoomType.DINING, 10, AdjacencyKind.MUST,
                  "Functional workflow for food service"),
    AdjacencyRule(RoomType.BEDROOM, RoomType.BATHROOM, 10, AdjacencyKind.MUST,
                  "Ensuite connection"),
    AdjacencyRule(RoomType.BATHROOM, RoomType.HALLWAY, 8, AdjacencyKind.SHOULD,
                  "Privacy buffer from direct room access"),
    AdjacencyRule(RoomType.KITCHEN, RoomType.LIVING, 7, AdjacencyKind.SHOULD,
                  "Visual connection and social interaction"),
    AdjacencyRule(RoomType.UTILITY, RoomType.KITCHEN, 7, AdjacencyKind.SHOULD,
                  "Service zone efficiency"),
    AdjacencyRule(RoomType.BEDROOM, RoomType.LIVING, 2, AdjacencyKind.AVOID,
                  "Privacy zoning separation"),
    AdjacencyRule(RoomType.BATHROOM, RoomType.KITCHEN, 1, AdjacencyKind.AVOID,
                  "Hygiene and building code separation"),
)

_RULE_INDEX: Mapping[FrozenSet[RoomType], AdjacencyRule] = MappingProxyType({
    frozenset((r.first, r.second)): r for r in ADJACENCY_RULES
})


def _rule(a: RoomTypeLike, b: RoomTypeLike) -> Optional[AdjacencyRule]:
    return _RULE_INDEX.get(frozenset((RoomType.parse(a), RoomType.parse(b))))


def get_adjacency_weight(a: RoomTypeLike, b: RoomTypeLike) -> int:
    """Symmetric weight lookup; pairs without a rule get the default weight."""
    rule = _rule(a, b)
    return rule.weight if rule else DEFAULT_ADJACENCY_WEIGHT


def get_adjacency_kind(a: RoomTypeLike, b: RoomTypeLike) -> Optional[AdjacencyKind]:
    rule = _rule(a, b)
    return rule.kind if rule else None


def default_adjacencies(rooms: Sequence[RoomSpec]) -> List[AdjacencyEdge]:
    """
    Instantiate the type-level rules as edges between concrete rooms.

    Must/should rules give each room of the first type at most one
    partner of the second type, handed out round robin, so two bedrooms
    and one bathroom produce two edges rather than a clique.  Avoid
    rules apply to every instance pair.
    """
    by_type: Dict[RoomType, List[RoomSpec]] = defaultdict(list)
    for room in rooms:
        by_type[room.room_type].append(room)

    edges: Dict[Tuple[str, str], AdjacencyEdge] = {}
    for rule in ADJACENCY_RULES:
        firsts, seconds = by_type.get(rule.first, []), by_type.get(rule.second, [])
        if not firsts or not seconds:
            continue
        if rule.kind == AdjacencyKind.AVOID:
            pairs = [(f, s) for f in firsts for s in seconds]
        else:
            # pair the larger group against the smaller one
            many, few = (firsts, seconds) if len(firsts) >= len(seconds) else (seconds, firsts)
            pairs = [(room, few[i % len(few)]) for i, room in enumerate(many)]
        for f, s in pairs:
            edge = AdjacencyEdge(f.id, s.id, rule.weight, rule.kind)
            edges.setdefault(edge.key, edge)
    return list(edges.values())


def merge_adjacencies(defaults: Iterable[AdjacencyEdge],
                      hints: Iterable[AdjacencyEdge]) -> List[AdjacencyEdge]:
    """Caller hints replace the default edge for the same room pair."""
    merged = {e.key: e for e in defaults}
    for hint in hints:
        merged[hint.key] = hint
    return sorted(merged.values(), key=lambda e: (-e.weight, e.key))


# ===========================================================================
# VALIDATION
# ===========================================================================

def _within(ratio: float, lo: float, hi: float) -> bool:
    return lo - 1e-9 <= ratio <= hi + 1e-9


def aspect_ok(room_type: RoomTypeLike, width: float, height: float) -> bool:
    """Aspect check that ignores orientation: a rotated room is the same room."""
    if width <= 0 or height <= 0:
        return False
    lo, hi = standard_for(room_type).aspect_range
    ratio = width / height
    return _within(ratio, lo, hi) or _within(1.0 / ratio, lo, hi)


def clamp_aspect(room_type: RoomTypeLike, ratio: float) -> float:
    """Clamp a width/height ratio into the acceptable range, keeping its orientation."""
    lo, hi = standard_for(room_type).aspect_range
    if _within(ratio, lo, hi) or _within(1.0 / ratio, lo, hi):
        return ratio
    direct = min(max(ratio, lo), hi)
    flipped = 1.0 / min(max(1.0 / ratio, lo), hi)
    return direct if abs(direct - ratio) <= abs(flipped - ratio) else flipped


def validate_room(room_type: RoomTypeLike, area: float,
                  dims: Optional[Tuple[float, float]] = None,
                  subject: Optional[str] = None) -> List[ValidationIssue]:
    """Check a single room against its type's standard."""
    rtype = RoomType.parse(room_type)
    std = ROOM_STANDARDS[rtype]
    name = rtype.value
    issues = []

    if area < std.min_area - 1e-9:
        issues.append(ValidationIssue(
            Severity.ERROR, "MIN_AREA",
            f"{name} area {area:.1f}m² is below minimum {std.min_area}m²",
            f"Increase area to at least {std.min_area}m²", subject))
    if area > std.max_area + 1e-9:
        issues.append(ValidationIssue(
            Severity.WARNING, "MAX_AREA",
            f"{name} area {area:.1f}m² exceeds typical maximum {std.max_area}m²",
            f"Consider reducing to {std.max_area}m² or splitting the room", subject))

    if dims is not None:
        width, height = dims
        min_dim = min(width, height)
        if min_dim < std.min_dimension - 1e-9:
            issues.append(ValidationIssue(
                Severity.ERROR, "MIN_DIMENSION",
                f"{name} minimum dimension {min_dim:.2f}m is below required {std.min_dimension}m",
                f"Ensure both sides are at least {std.min_dimension}m", subject))
        if not aspect_ok(rtype, width, height):
            ratio = width / height if height > 0 else float("inf")
            lo, hi = std.aspect_range
            issues.append(ValidationIssue(
                Severity.WARNING, "ASPECT_RATIO",
                f"{name} aspect ratio {ratio:.2f} outside acceptable range {lo}-{hi}",
                f"Adjust proportions closer to {std.optimal_ratio}", subject))
    return issues


def validate_area_distribution(total_area: float,
                               room_areas: Mapping[str, float]) -> List[ValidationIssue]:
    """Compare the requested room areas with what the envelope offers after circulation."""
    issues = []
    room_sum = sum(room_areas.values())
    effective = total_area * (1.0 - CIRCULATION_FACTOR)

    if room_sum > effective * AREA_OVERFLOW_RATIO:
        issues.append(ValidationIssue(
            Severity.ERROR, "AREA_OVERFLOW",
            f"Rooms need {room_sum:.1f}m² but only {effective:.1f}m² remain "
            f"after {CIRCULATION_FACTOR:.0%} circulation",
            "Reduce room sizes or enlarge the envelope"))
    elif room_sum < effective * AREA_UNDERUTILIZATION_RATIO:
        issues.append(ValidationIssue(
            Severity.WARNING, "AREA_UNDERUTILIZATION",
            f"Rooms use {room_sum:.1f}m² of {effective:.1f}m² usable area",
            "Enlarge rooms or add spaces"))
    return issues


def validate_adjacency_feasibility(edges: Iterable[AdjacencyEdge]) -> List[ValidationIssue]:
    """A rectangle has four faces, so only so many rooms can be glued to it."""
    counts: Counter = Counter()
    for edge in edges:
        if edge.is_must:
            counts[edge.a] += 1
            counts[edge.b] += 1

    issues = []
    for room_id in sorted(counts):
        if counts[room_id] > MAX_MUST_ADJACENCIES:
            issues.append(ValidationIssue(
                Severity.ERROR, "EXCESS_MUST_ADJACENCIES",
                f"{room_id} has {counts[room_id]} must-adjacencies; at most "
                f"{MAX_MUST_ADJACENCIES} can share a wall",
                "Downgrade some must-adjacencies to should", room_id))
    return issues


def validate_corridor_width(room_type: RoomTypeLike, width: float, height: float,
                            subject: Optional[str] = None) -> List[ValidationIssue]:
    if RoomType.parse(room_type) != RoomType.HALLWAY:
        return []
    if min(width, height) < MIN_CORRIDOR_WIDTH - 1e-9:
        return [ValidationIssue(
            Severity.ERROR, "CORRIDOR_WIDTH",
            f"Corridor width {min(width, height):.2f}m is below {MIN_CORRIDOR_WIDTH}m",
            "Widen the hallway", subject)]
    return []


# ===========================================================================
# BUILDING TYPOLOGY
# ===========================================================================

TYPOLOGIES = ("studio", "apartment", "townhouse", "villa", "mansion")


@dataclass(frozen=True)
class TypologyProfile:
    iteration_budget: int
    zoned: bool


TYPOLOGY_PROFILES: Mapping[str, TypologyProfile] = MappingProxyType({
    "studio": TypologyProfile(800, False),
    "apartment": TypologyProfile(1500, True),
    "townhouse": TypologyProfile(2500, True),
    "villa": TypologyProfile(3500, True),
    "mansion": TypologyProfile(5000, True),
})


def classify_building_typology(total_area: float, room_count: int) -> str:
    if total_area < 35:
        return "studio"
    if total_area < 100 and room_count <= 5:
        return "apartment"
    if total_area < 200 and room_count <= 8:
        return "townhouse"
    if total_area < 400:
        return "villa"
    return "mansion"


# ===========================================================================
# ENTRANCE STRATEGY
# ===========================================================================

@dataclass(frozen=True)
class EntranceStrategy:
    entrance_type: str
    preferred_rooms: Tuple[RoomType, ...]
    clearance: float


def determine_entrance_strategy(total_area: float, room_types: Iterable[RoomTypeLike],
                                typology: str) -> EntranceStrategy:
    types = {RoomType.parse(t) for t in room_types}
    has_living = RoomType.LIVING in types
    has_hallway = RoomType.HALLWAY in types
    has_utility = RoomType.UTILITY in types

    if typology == "studio" or total_area < 50:
        entrance_type = "direct_to_living"
    elif typology == "mansion" or total_area > 300:
        entrance_type = "foyer"
    elif has_utility or typology == "townhouse":
        entrance_type = "mudroom"
    else:
        entrance_type = "hallway" if has_hallway else "direct_to_living"

    preferred: List[RoomType] = []
    if entrance_type in ("hallway", "foyer") and has_hallway:
        preferred.append(RoomType.HALLWAY)
    if entrance_type == "direct_to_living" and has_living:
        preferred.append(RoomType.LIVING)
    if entrance_type == "mudroom" and has_utility:
        preferred.append(RoomType.UTILITY)
    for fallback in (RoomType.LIVING, RoomType.HALLWAY, RoomType.DINING):
        if fallback in types and fallback not in preferred:
            preferred.append(fallback)

    clearance = {"mansion": 2.5, "villa": 2.0}.get(typology, 1.5)
    return EntranceStrategy(entrance_type, tuple(preferred), clearance)

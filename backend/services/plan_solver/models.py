"""
Value types shared by every stage of the layout core.

Everything here is a frozen dataclass: stages hand new values to each
other instead of editing shared structures.  ``to_dict`` produces the
JSON shape used by the HTTP layer and ``from_dict`` rebuilds the values a
client sends back for re-validation.
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from typing import Dict, Iterable, List, Optional, Tuple

from shapely.geometry import Polygon, box

Point = Tuple[float, float]


# ============================================================================
# ENUMERATIONS
# ============================================================================

class RoomType(str, Enum):
    BEDROOM = "bedroom"
    BATHROOM = "bathroom"
    KITCHEN = "kitchen"
    LIVING = "living"
    DINING = "dining"
    HALLWAY = "hallway"
    STUDY = "study"
    UTILITY = "utility"
    GARAGE = "garage"
    BALCONY = "balcony"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value) -> "RoomType":
        """Map any string (or RoomType) onto the closed set; unknown names fall back to UNKNOWN."""
        if isinstance(value, RoomType):
            return value
        key = str(value or "").strip().lower().replace(" ", "_")
        aliases = {"living_room": "living", "lounge": "living", "bed": "bedroom",
                   "bath": "bathroom", "toilet": "bathroom", "corridor": "hallway",
                   "foyer": "hallway", "laundry": "utility", "office": "study"}
        key = aliases.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN


class Zone(str, Enum):
    PUBLIC = "public"
    SERVICE = "service"
    PRIVATE = "private"

    @property
    def privacy(self) -> int:
        """0 for the most public zone, 2 for the most private."""
        return {Zone.PUBLIC: 0, Zone.SERVICE: 1, Zone.PRIVATE: 2}[self]


class AdjacencyKind(str, Enum):
    MUST = "must"
    SHOULD = "should"
    AVOID = "avoid"


class OpeningKind(str, Enum):
    DOOR = "door"
    WINDOW = "window"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


# ============================================================================
# INPUT
# ============================================================================

@dataclass(frozen=True)
class BuildingEnvelope:
    """Outer boundary all rooms must fit inside."""

    outline: Tuple[Point, ...]
    total_area: Optional[float] = None
    floor: int = 0
    entry_face: str = "south"

    def __post_init__(self):
        pts = tuple((float(x), float(y)) for x, y in self.outline)
        if len(pts) > 1 and pts[0] == pts[-1]:
            pts = pts[:-1]
        if len(pts) < 4:
            raise ValueError("Envelope outline needs at least four vertices")
        for (x1, y1), (x2, y2) in zip(pts, pts[1:] + pts[:1]):
            if abs(x1 - x2) > 1e-9 and abs(y1 - y2) > 1e-9:
                raise ValueError("Envelope outline must be rectilinear")
        if not Polygon(pts).exterior.is_ccw:
            pts = tuple(reversed(pts))
        object.__setattr__(self, "outline", pts)
        if self.entry_face not in ("south", "north", "east", "west"):
            raise ValueError(f"Unknown entry face: {self.entry_face}")

    @classmethod
    def rectangle(cls, width: float, height: float, total_area: Optional[float] = None,
                  entry_face: str = "south", floor: int = 0) -> "BuildingEnvelope":
        return cls(
            outline=((0.0, 0.0), (width, 0.0), (width, height), (0.0, height)),
            total_area=total_area,
            floor=floor,
            entry_face=entry_face,
        )

    @cached_property
    def polygon(self) -> Polygon:
        return Polygon(self.outline)

    @property
    def area(self) -> float:
        return self.polygon.area

    @property
    def target_area(self) -> float:
        return self.total_area if self.total_area is not None else self.area

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return self.polygon.bounds

    @property
    def is_rectangle(self) -> bool:
        minx, miny, maxx, maxy = self.bounds
        return abs((maxx - minx) * (maxy - miny) - self.area) < 1e-9

    def edges(self) -> List[Tuple[Point, Point]]:
        pts = self.outline
        return list(zip(pts, pts[1:] + pts[:1]))

    def to_dict(self) -> dict:
        return {
            "outline": [list(p) for p in self.outline],
            "total_area": self.target_area,
            "floor": self.floor,
            "entry_face": self.entry_face,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BuildingEnvelope":
        if "outline" not in data and "width" in data:
            return cls.rectangle(data["width"], data["height"], data.get("total_area"),
                                 data.get("entry_face", "south"), data.get("floor", 0))
        return cls(
            outline=tuple(tuple(p) for p in data["outline"]),
            total_area=data.get("total_area"),
            floor=data.get("floor", 0),
            entry_face=data.get("entry_face", "south"),
        )


@dataclass(frozen=True)
class RoomSpec:
    id: str
    room_type: RoomType
    target_area: Optional[float] = None
    label: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "room_type", RoomType.parse(self.room_type))
        if self.target_area is None:
            object.__setattr__(self, "target_area", self.standard.optimal_area)
        elif self.target_area <= 0:
            raise ValueError(f"Room {self.id} needs a positive target area")

    @property
    def standard(self):
        from .rules import standard_for
        return standard_for(self.room_type)

    @property
    def zone(self) -> Zone:
        from .rules import zone_for
        return zone_for(self.room_type)

    @property
    def min_area(self) -> float:
        return self.standard.min_area

    @property
    def min_dimension(self) -> float:
        return self.standard.min_dimension

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "room_type": self.room_type.value,
            "target_area": self.target_area,
            "label": self.label,
            "zone": self.zone.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RoomSpec":
        return cls(
            id=data["id"],
            room_type=RoomType.parse(data.get("room_type", data.get("type"))),
            target_area=data.get("target_area"),
            label=data.get("label"),
        )


@dataclass(frozen=True)
class AdjacencyEdge:
    """Symmetric preference between two rooms; ``a``/``b`` are stored sorted."""

    a: str
    b: str
    weight: int
    kind: AdjacencyKind

    def __post_init__(self):
        if self.a == self.b:
            raise ValueError(f"Adjacency edge needs two distinct rooms, got {self.a!r} twice")
        if not 0 <= int(self.weight) <= 10:
            raise ValueError(f"Adjacency weight must lie in 0-10, got {self.weight}")
        a, b = sorted((self.a, self.b))
        object.__setattr__(self, "a", a)
        object.__setattr__(self, "b", b)
        object.__setattr__(self, "weight", int(self.weight))
        object.__setattr__(self, "kind", AdjacencyKind(self.kind))

    @property
    def key(self) -> Tuple[str, str]:
        return (self.a, self.b)

    @property
    def is_must(self) -> bool:
        return self.kind == AdjacencyKind.MUST or self.weight >= 9

    def to_dict(self) -> dict:
        return {"a": self.a, "b": self.b, "weight": self.weight, "kind": self.kind.value}

    @classmethod
    def from_dict(cls, data: dict) -> "AdjacencyEdge":
        return cls(data["a"], data["b"], data.get("weight", 5), data.get("kind", "should"))


@dataclass(frozen=True)
class FloorPlanSpec:
    """Structured request handed over by the upstream specification stage."""

    rooms: Tuple[RoomSpec, ...]
    adjacencies: Tuple[AdjacencyEdge, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "rooms", tuple(self.rooms))
        object.__setattr__(self, "adjacencies", tuple(self.adjacencies))
        ids = [r.id for r in self.rooms]
        if not ids:
            raise ValueError("A floor plan needs at least one room")
        if len(set(ids)) != len(ids):
            raise ValueError("Room ids must be unique")
        known = set(ids)
        for edge in self.adjacencies:
            if edge.a not in known or edge.b not in known:
                raise ValueError(f"Adjacency {edge.a}-{edge.b} references an unknown room")

    def room(self, room_id: str) -> RoomSpec:
        for r in self.rooms:
            if r.id == room_id:
                return r
        raise KeyError(room_id)


@dataclass(frozen=True)
class SolveOptions:
    iteration_budget: Optional[int] = None
    random_seed: Optional[int] = None
    time_budget: Optional[float] = None  # seconds
    cooling_rate: Optional[float] = None


# ============================================================================
# LAYOUT
# ============================================================================

@dataclass(frozen=True)
class RoomPlacement:
    room_id: str
    x: float
    y: float
    width: float
    height: float

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.x2, self.y2)

    @property
    def polygon(self) -> Polygon:
        return box(self.x, self.y, self.x2, self.y2)

    def edges(self) -> List[Tuple[Point, Point]]:
        """Counter-clockwise boundary edges: bottom, right, top, left."""
        return [
            ((self.x, self.y), (self.x2, self.y)),
            ((self.x2, self.y), (self.x2, self.y2)),
            ((self.x2, self.y2), (self.x, self.y2)),
            ((self.x, self.y2), (self.x, self.y)),
        ]

    def moved_to(self, x: float, y: float) -> "RoomPlacement":
        return replace(self, x=x, y=y)

    def to_dict(self) -> dict:
        return {
            "room_id": self.room_id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "area": round(self.area, 3),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RoomPlacement":
        return cls(data["room_id"], float(data["x"]), float(data["y"]),
                   float(data["width"]), float(data["height"]))


@dataclass(frozen=True)
class Layout:
    """Immutable set of placements; every edit returns a new Layout."""

    placements: Tuple[RoomPlacement, ...]
    cost: float = 0.0
    generation: int = 0

    def __post_init__(self):
        object.__setattr__(self, "placements", tuple(self.placements))

    @property
    def room_ids(self) -> List[str]:
        return [p.room_id for p in self.placements]

    def placement(self, room_id: str) -> RoomPlacement:
        for p in self.placements:
            if p.room_id == room_id:
                return p
        raise KeyError(room_id)

    def as_mapping(self) -> Dict[str, RoomPlacement]:
        return {p.room_id: p for p in self.placements}

    def with_placement(self, placement: RoomPlacement) -> "Layout":
        return self.with_placements([placement])

    def with_placements(self, updated: Iterable[RoomPlacement]) -> "Layout":
        by_id = {p.room_id: p for p in updated}
        return replace(self, placements=tuple(by_id.get(p.room_id, p) for p in self.placements))

    def with_cost(self, cost: float, generation: Optional[int] = None) -> "Layout":
        return replace(self, cost=cost,
                       generation=self.generation if generation is None else generation)

    def to_dict(self) -> dict:
        return {
            "placements": [p.to_dict() for p in self.placements],
            "cost": round(self.cost, 6),
            "generation": self.generation,
        }


# ============================================================================
# WALLS & OPENINGS
# ============================================================================

@dataclass(frozen=True)
class WallSegment:
    id: str
    start: Point
    end: Point
    thickness: float
    exterior: bool
    room_ids: Tuple[str, ...] = ()

    @property
    def length(self) -> float:
        return math.hypot(self.end[0] - self.start[0], self.end[1] - self.start[1])

    @property
    def angle(self) -> float:
        """Direction angle in degrees, start to end."""
        return math.degrees(math.atan2(self.end[1] - self.start[1], self.end[0] - self.start[0]))

    @property
    def is_horizontal(self) -> bool:
        return abs(self.end[1] - self.start[1]) < 1e-9

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "start": [round(self.start[0], 4), round(self.start[1], 4)],
            "end": [round(self.end[0], 4), round(self.end[1], 4)],
            "thickness": self.thickness,
            "exterior": self.exterior,
            "room_ids": list(self.room_ids),
            "length": round(self.length, 4),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WallSegment":
        return cls(data["id"], tuple(data["start"]), tuple(data["end"]),
                   float(data["thickness"]), bool(data["exterior"]),
                   tuple(data.get("room_ids", ())))


@dataclass(frozen=True)
class DoorArcGeometry:
    hinge: Point
    closed_end: Point
    sweep_end: Point
    radius: float
    start_angle: float
    end_angle: float
    clockwise: bool
    hinge_side: str

    def to_dict(self) -> dict:
        return {
            "hinge": [round(v, 4) for v in self.hinge],
            "closed_end": [round(v, 4) for v in self.closed_end],
            "sweep_end": [round(v, 4) for v in self.sweep_end],
            "radius": self.radius,
            "start_angle": round(self.start_angle, 3),
            "end_angle": round(self.end_angle, 3),
            "clockwise": self.clockwise,
            "hinge_side": self.hinge_side,
        }


@dataclass(frozen=True)
class Opening:
    id: str
    kind: OpeningKind
    wall_id: str
    offset: float
    width: float
    rotation: float = 0.0
    is_entry: bool = False
    room_ids: Tuple[str, ...] = ()
    hinge_side: Optional[str] = None
    arc: Optional[DoorArcGeometry] = None

    @property
    def is_door(self) -> bool:
        return self.kind == OpeningKind.DOOR

    @property
    def span(self) -> Tuple[float, float]:
        return (self.offset - self.width / 2, self.offset + self.width / 2)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "kind": self.kind.value,
            "wall_id": self.wall_id,
            "offset": round(self.offset, 4),
            "width": round(self.width, 4),
            "rotation": round(self.rotation, 3),
            "room_ids": list(self.room_ids),
        }
        if self.is_door:
            data["is_entry"] = self.is_entry
            data["hinge_side"] = self.hinge_side
            data["arc"] = self.arc.to_dict() if self.arc else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Opening":
        # arcs are derived; the validator recomputes them when it needs them
        return cls(
            id=data["id"],
            kind=OpeningKind(data["kind"]),
            wall_id=data["wall_id"],
            offset=float(data["offset"]),
            width=float(data["width"]),
            rotation=float(data.get("rotation", 0.0)),
            is_entry=bool(data.get("is_entry", False)),
            room_ids=tuple(data.get("room_ids", ())),
            hinge_side=data.get("hinge_side"),
        )


# ============================================================================
# VALIDATION
# ============================================================================

@dataclass(frozen=True)
class ValidationIssue:
    severity: Severity
    rule: str
    message: str
    suggestion: Optional[str] = None
    subject: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "rule": self.rule,
            "message": self.message,
            "suggestion": self.suggestion,
            "subject": self.subject,
        }


@dataclass(frozen=True)
class PassResult:
    name: str
    issues: Tuple[ValidationIssue, ...] = ()
    corrections: Tuple[str, ...] = ()

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def passed(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "passed": self.passed,
            "issues": [i.to_dict() for i in self.issues],
            "corrections": list(self.corrections),
        }


@dataclass(frozen=True)
class ValidationReport:
    passes: Tuple[PassResult, ...]
    corrected_placements: Optional[Tuple[RoomPlacement, ...]] = None
    corrected_openings: Optional[Tuple[Opening, ...]] = None

    @property
    def issues(self) -> List[ValidationIssue]:
        return [i for p in self.passes for i in p.issues]

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def final_valid(self) -> bool:
        return all(p.passed for p in self.passes)

    @property
    def has_corrections(self) -> bool:
        return self.corrected_placements is not None or self.corrected_openings is not None

    def pass_result(self, name: str) -> PassResult:
        for p in self.passes:
            if p.name == name:
                return p
        raise KeyError(name)

    def summary(self) -> str:
        lines = [f"Validation: {'VALID' if self.final_valid else 'INVALID'} "
                 f"({len(self.errors)} errors, {len(self.warnings)} warnings)"]
        for p in self.passes:
            lines.append(f"  [{'PASS' if p.passed else 'FAIL'}] {p.name}")
            for issue in p.issues:
                lines.append(f"      {issue.severity.value.upper()} {issue.rule}: {issue.message}")
            for note in p.corrections:
                lines.append(f"      corrected: {note}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "final_valid": self.final_valid,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "passes": [p.to_dict() for p in self.passes],
        }


# ============================================================================
# OUTPUT
# ============================================================================

@dataclass(frozen=True)
class FloorPlan:
    """Solved floor plan: placements, derived walls/openings and the quality report."""

    envelope: BuildingEnvelope
    rooms: Tuple[RoomSpec, ...]
    layout: Layout
    walls: Tuple[WallSegment, ...] = ()
    openings: Tuple[Opening, ...] = ()
    adjacencies: Tuple[AdjacencyEdge, ...] = ()
    report: Optional[ValidationReport] = None
    spec_issues: Tuple[ValidationIssue, ...] = ()
    typology: Optional[str] = None
    seed: Optional[int] = None
    score: Dict[str, float] = field(default_factory=dict)
    stats: Dict[str, float] = field(default_factory=dict)
    timed_out: bool = False

    @property
    def cost(self) -> float:
        return self.layout.cost

    @property
    def doors(self) -> List[Opening]:
        return [o for o in self.openings if o.is_door]

    @property
    def windows(self) -> List[Opening]:
        return [o for o in self.openings if not o.is_door]

    @property
    def entry_door(self) -> Optional[Opening]:
        for o in self.openings:
            if o.is_door and o.is_entry:
                return o
        return None

    def room(self, room_id: str) -> RoomSpec:
        for r in self.rooms:
            if r.id == room_id:
                return r
        raise KeyError(room_id)

    def wall(self, wall_id: str) -> WallSegment:
        for w in self.walls:
            if w.id == wall_id:
                return w
        raise KeyError(wall_id)

    def raise_for_validity(self) -> None:
        from .errors import ValidationFailure
        if self.report is not None and not self.report.final_valid:
            raise ValidationFailure(self.report)

    def to_dict(self) -> dict:
        return {
            "envelope": self.envelope.to_dict(),
            "rooms": [r.to_dict() for r in self.rooms],
            "adjacencies": [e.to_dict() for e in self.adjacencies],
            "layout": self.layout.to_dict(),
            "walls": [w.to_dict() for w in self.walls],
            "openings": [o.to_dict() for o in self.openings],
            "report": self.report.to_dict() if self.report else None,
            "spec_issues": [i.to_dict() for i in self.spec_issues],
            "typology": self.typology,
            "seed": self.seed,
            "score": dict(self.score),
            "stats": dict(self.stats),
            "timed_out": self.timed_out,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FloorPlan":
        layout_data = data["layout"]
        return cls(
            envelope=BuildingEnvelope.from_dict(data["envelope"]),
            rooms=tuple(RoomSpec.from_dict(r) for r in data["rooms"]),
            layout=Layout(
                placements=tuple(RoomPlacement.from_dict(p) for p in layout_data["placements"]),
                cost=float(layout_data.get("cost", 0.0)),
                generation=int(layout_data.get("generation", 0)),
            ),
            walls=tuple(WallSegment.from_dict(w) for w in data.get("walls", ())),
            openings=tuple(Opening.from_dict(o) for o in data.get("openings", ())),
            adjacencies=tuple(AdjacencyEdge.from_dict(e) for e in data.get("adjacencies", ())),
            typology=data.get("typology"),
            seed=data.get("seed"),
        )

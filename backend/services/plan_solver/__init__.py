"""
Floor-plan layout core.

Turns a structured room specification and a building envelope into a
validated, non-overlapping layout: room rectangles, walls, doors and
windows with resolved swing geometry.  All geometry is in metres.
"""

from .errors import InfeasibleSpec, SolveError, ValidationFailure
from .models import (
    AdjacencyEdge,
    AdjacencyKind,
    BuildingEnvelope,
    FloorPlan,
    FloorPlanSpec,
    Layout,
    Opening,
    RoomPlacement,
    RoomSpec,
    RoomType,
    SolveOptions,
    ValidationReport,
    WallSegment,
    Zone,
)
from .pipeline import solve, solve_variations, validate

__all__ = [
    "AdjacencyEdge",
    "AdjacencyKind",
    "BuildingEnvelope",
    "FloorPlan",
    "FloorPlanSpec",
    "InfeasibleSpec",
    "Layout",
    "Opening",
    "RoomPlacement",
    "RoomSpec",
    "RoomType",
    "SolveError",
    "SolveOptions",
    "ValidationFailure",
    "ValidationReport",
    "WallSegment",
    "Zone",
    "solve",
    "solve_variations",
    "validate",
]

"""Application configuration via environment variables."""

import os
from dotenv import load_dotenv

load_dotenv()


def _float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# CORS
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")

# Optimizer
DEFAULT_SEED = _int("LAYOUT_DEFAULT_SEED", 42)
COOLING_RATE = _float("LAYOUT_COOLING_RATE", 0.995)
INITIAL_ACCEPTANCE = _float("LAYOUT_INITIAL_ACCEPTANCE", 0.8)
CALIBRATION_SAMPLES = _int("LAYOUT_CALIBRATION_SAMPLES", 40)
DEADLINE_CHECK_INTERVAL = _int("LAYOUT_DEADLINE_CHECK_INTERVAL", 25)
SNAP_DISTANCE = _float("LAYOUT_SNAP_DISTANCE", 0.3)
VARIATION_COUNT = _int("LAYOUT_VARIATION_COUNT", 3)

# Area rules
CIRCULATION_FACTOR = _float("LAYOUT_CIRCULATION_FACTOR", 0.15)
AREA_OVERFLOW_RATIO = _float("LAYOUT_AREA_OVERFLOW_RATIO", 1.1)
AREA_UNDERUTILIZATION_RATIO = _float("LAYOUT_AREA_UNDERUTILIZATION_RATIO", 0.7)
INFEASIBILITY_MARGIN = _float("LAYOUT_INFEASIBILITY_MARGIN", 1.1)
MAX_MUST_ADJACENCIES = _int("LAYOUT_MAX_MUST_ADJACENCIES", 4)
DEFAULT_ADJACENCY_WEIGHT = _int("LAYOUT_DEFAULT_ADJACENCY_WEIGHT", 3)

# Walls
EXTERIOR_WALL_THICKNESS = _float("LAYOUT_EXTERIOR_WALL_THICKNESS", 0.15)
INTERIOR_WALL_THICKNESS = _float("LAYOUT_INTERIOR_WALL_THICKNESS", 0.10)
CONTACT_TOLERANCE = _float("LAYOUT_CONTACT_TOLERANCE", 0.02)
MIN_SHARED_WALL = _float("LAYOUT_MIN_SHARED_WALL", 1.0)

# Openings
ENTRY_DOOR_WIDTH = _float("LAYOUT_ENTRY_DOOR_WIDTH", 1.2)
STANDARD_DOOR_WIDTH = _float("LAYOUT_STANDARD_DOOR_WIDTH", 0.9)
WIDE_DOOR_WIDTH = _float("LAYOUT_WIDE_DOOR_WIDTH", 1.0)
NARROW_DOOR_WIDTH = _float("LAYOUT_NARROW_DOOR_WIDTH", 0.8)
MIN_DOOR_WIDTH = _float("LAYOUT_MIN_DOOR_WIDTH", 0.7)
MAX_DOOR_WIDTH = _float("LAYOUT_MAX_DOOR_WIDTH", 1.3)
OPENING_CLEARANCE = _float("LAYOUT_OPENING_CLEARANCE", 0.3)
WINDOW_FRACTION = _float("LAYOUT_WINDOW_FRACTION", 0.25)
MIN_WINDOW_WIDTH = _float("LAYOUT_MIN_WINDOW_WIDTH", 0.6)
MAX_WINDOW_WIDTH = _float("LAYOUT_MAX_WINDOW_WIDTH", 2.4)
MIN_WINDOW_COVERAGE = _float("LAYOUT_MIN_WINDOW_COVERAGE", 0.10)

# Validation
MIN_CORRIDOR_WIDTH = _float("LAYOUT_MIN_CORRIDOR_WIDTH", 1.2)
OVERLAP_EPSILON = _float("LAYOUT_OVERLAP_EPSILON", 1e-4)
CONTAINMENT_TOLERANCE = _float("LAYOUT_CONTAINMENT_TOLERANCE", 0.01)
CORRECTION_LIMIT = _float("LAYOUT_CORRECTION_LIMIT", 0.05)
AREA_TOLERANCE = _float("LAYOUT_AREA_TOLERANCE", 0.15)

# Scorer weights
WEIGHT_OVERLAP = _float("LAYOUT_WEIGHT_OVERLAP", 100.0)
WEIGHT_ADJACENCY = _float("LAYOUT_WEIGHT_ADJACENCY", 1.0)
WEIGHT_COMPACTNESS = _float("LAYOUT_WEIGHT_COMPACTNESS", 1.0)
WEIGHT_AREA_FIT = _float("LAYOUT_WEIGHT_AREA_FIT", 5.0)
WEIGHT_ENVELOPE_FIT = _float("LAYOUT_WEIGHT_ENVELOPE_FIT", 100.0)
WEIGHT_CONNECTIVITY = _float("LAYOUT_WEIGHT_CONNECTIVITY", 50.0)
WEIGHT_ENTRY_ACCESS = _float("LAYOUT_WEIGHT_ENTRY_ACCESS", 50.0)

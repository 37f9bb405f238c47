"""
Tests for door swing geometry.

Run: python -m pytest test_door_arc.py
"""

import math
import os
import sys
sys.path.insert(0, os.path.dirname(__file__) or ".")

import pytest

from services.plan_solver.door_arc import calculate_arc, determine_hinge_side, door_opening
from services.plan_solver.models import Zone


def test_arc_at_wall_start():
    arc = calculate_arc((0, 0), (10, 0), 0.05, 1.0, "start")
    assert arc.hinge == pytest.approx((0.0, 0.0))
    assert arc.closed_end == pytest.approx((1.0, 0.0))
    assert arc.sweep_end == pytest.approx((0.0, 1.0))
    assert arc.radius == 1.0
    assert arc.start_angle == pytest.approx(0.0)
    assert arc.end_angle == pytest.approx(90.0)
    assert arc.clockwise


def test_arc_hinged_at_end_jamb():
    arc = calculate_arc((0, 0), (10, 0), 0.5, 1.0, "end")
    assert arc.hinge == pytest.approx((5.5, 0.0))
    assert arc.sweep_end == pytest.approx((5.5, 1.0))
    assert arc.start_angle == pytest.approx(90.0)
    assert arc.end_angle == pytest.approx(180.0)
    assert not arc.clockwise


def test_arc_on_vertical_wall():
    arc = calculate_arc((0, 0), (0, 4), 0.5, 0.8, "start")
    assert arc.hinge == pytest.approx((0.0, 1.6))
    # left of an upward wall is -x
    assert arc.sweep_end == pytest.approx((-0.8, 1.6))
    assert arc.start_angle == pytest.approx(90.0)


def test_arc_radius_matches_leaf():
    arc = calculate_arc((2, 3), (2, 9), 0.3, 0.9, "end")
    assert math.dist(arc.hinge, arc.sweep_end) == pytest.approx(0.9)
    assert math.dist(arc.hinge, arc.closed_end) == pytest.approx(0.9)


def test_door_opening_jambs():
    opening = door_opening((0, 0), (4, 0), 0.5, 1.0)
    assert opening.start == pytest.approx((1.5, 0.0))
    assert opening.center == pytest.approx((2.0, 0.0))
    assert opening.end == pytest.approx((2.5, 0.0))


def test_invalid_inputs():
    with pytest.raises(ValueError):
        calculate_arc((0, 0), (4, 0), 0.5, 1.0, "middle")
    with pytest.raises(ValueError):
        calculate_arc((1, 1), (1, 1), 0.5, 1.0)


def test_hinge_side_rules():
    assert determine_hinge_side(True, Zone.PUBLIC, Zone.PRIVATE) == "start"
    assert determine_hinge_side(False, Zone.PUBLIC, Zone.PRIVATE) == "end"
    assert determine_hinge_side(False, Zone.PRIVATE, Zone.PUBLIC) == "start"
    assert determine_hinge_side(False, Zone.PRIVATE, Zone.PRIVATE) == "start"
    assert determine_hinge_side(False) == "start"


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))

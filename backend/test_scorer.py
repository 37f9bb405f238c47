"""
Tests for the layout cost function.

Run: python -m pytest test_scorer.py
"""

import os
import sys
sys.path.insert(0, os.path.dirname(__file__) or ".")

import pytest

from services.plan_solver.geometry import boundary_contact
from services.plan_solver.models import AdjacencyEdge, BuildingEnvelope, Layout, RoomPlacement, RoomSpec
from services.plan_solver.scorer import DOOR_WALL_LENGTH, LayoutScorer, ScoreWeights


ENVELOPE = BuildingEnvelope.rectangle(10.0, 6.0)
ROOMS = [RoomSpec("kitchen", "kitchen", 12.0), RoomSpec("dining", "dining", 15.0)]
MUST = [AdjacencyEdge("kitchen", "dining", 10, "must")]


def _layout(*placements):
    return Layout(placements=tuple(placements))


def test_touching_rooms_satisfy_must_edge():
    scorer = LayoutScorer(ROOMS, MUST, ENVELOPE)
    touching = _layout(RoomPlacement("kitchen", 0, 0, 4, 3), RoomPlacement("dining", 4, 0, 5, 3))
    apart = _layout(RoomPlacement("kitchen", 0, 0, 4, 3), RoomPlacement("dining", 5, 3, 5, 3))

    near = scorer.score(touching)
    far = scorer.score(apart)
    assert near.adjacency == pytest.approx(0.0)
    assert far.adjacency > near.adjacency
    assert far.total > near.total


def test_shared_walls_matrix():
    scorer = LayoutScorer(ROOMS, MUST, ENVELOPE)
    shared = scorer.shared_walls(
        _layout(RoomPlacement("kitchen", 0, 0, 4, 3), RoomPlacement("dining", 4, 1, 5, 3)))
    assert shared[0, 1] == pytest.approx(2.0)
    assert shared[1, 0] == pytest.approx(2.0)
    assert shared[0, 0] == 0.0


def test_avoid_edge_penalized_when_touching():
    avoid = [AdjacencyEdge("kitchen", "dining", 1, "avoid")]
    scorer = LayoutScorer(ROOMS, avoid, ENVELOPE)
    touching = scorer.score(
        _layout(RoomPlacement("kitchen", 0, 0, 4, 3), RoomPlacement("dining", 4, 0, 5, 3)))
    # 0.9 for the violated avoid edge, no isolation penalty
    assert touching.adjacency == pytest.approx(0.9)


def test_overlap_and_envelope_terms():
    scorer = LayoutScorer(ROOMS, [], ENVELOPE)
    breakdown = scorer.score(
        _layout(RoomPlacement("kitchen", 0, 0, 4, 3), RoomPlacement("dining", 3, 2, 5, 3)))
    assert breakdown.overlap == pytest.approx(1.0)
    assert breakdown.envelope_fit == pytest.approx(0.0)

    outside = scorer.score(
        _layout(RoomPlacement("kitchen", 8, 0, 4, 3), RoomPlacement("dining", 0, 3, 5, 3)))
    assert outside.envelope_fit == pytest.approx(6.0)
    assert outside.overlap == pytest.approx(0.0)


def test_area_fit_zero_on_target():
    scorer = LayoutScorer(ROOMS, [], ENVELOPE)
    breakdown = scorer.score(
        _layout(RoomPlacement("kitchen", 0, 0, 4, 3), RoomPlacement("dining", 4, 0, 5, 3)))
    assert breakdown.area_fit == pytest.approx(0.0)


def test_total_is_weighted_sum():
    weights = ScoreWeights(overlap=2.0, adjacency=3.0, compactness=0.5, area_fit=7.0, envelope_fit=11.0,
                           connectivity=13.0, entry_access=17.0)
    scorer = LayoutScorer(ROOMS, MUST, ENVELOPE, weights)
    b = scorer.score(
        _layout(RoomPlacement("kitchen", 0, 0, 3, 3), RoomPlacement("dining", 2, 4, 5, 3)))
    expected = (2.0 * b.overlap + 3.0 * b.adjacency + 0.5 * b.compactness
                + 7.0 * b.area_fit + 11.0 * b.envelope_fit
                + 13.0 * b.connectivity + 17.0 * b.entry_access)
    assert b.connectivity == 1.0
    assert b.entry_access == 1.0
    assert b.total == pytest.approx(expected)
    assert scorer.cost(_layout(RoomPlacement("kitchen", 0, 0, 3, 3),
                               RoomPlacement("dining", 2, 4, 5, 3))) == pytest.approx(b.total)


def test_connectivity_counts_door_wide_contacts():
    scorer = LayoutScorer(ROOMS, [], ENVELOPE)
    joined = scorer.score(
        _layout(RoomPlacement("kitchen", 0, 0, 4, 3), RoomPlacement("dining", 4, 0, 5, 3)))
    assert joined.connectivity == 0.0

    apart = scorer.score(
        _layout(RoomPlacement("kitchen", 0, 0, 4, 3), RoomPlacement("dining", 5, 3, 5, 3)))
    assert apart.connectivity == 1.0

    # touching, but the shared wall is too short for a door
    narrow = scorer.score(
        _layout(RoomPlacement("kitchen", 0, 0, 4, 3), RoomPlacement("dining", 4, 2, 5, 3)))
    assert 1.0 < DOOR_WALL_LENGTH
    assert narrow.connectivity == 1.0


def test_entry_access_needs_public_room_on_envelope():
    scorer = LayoutScorer(ROOMS, [], ENVELOPE)
    on_edge = _layout(RoomPlacement("kitchen", 0, 0, 4, 3), RoomPlacement("dining", 4, 0, 5, 3))
    assert scorer.score(on_edge).entry_access == 0.0
    assert scorer.entry_reachable(on_edge)

    inside = _layout(RoomPlacement("kitchen", 0, 0, 4, 3), RoomPlacement("dining", 4, 1, 5, 3))
    assert scorer.score(inside).entry_access == 1.0

    no_public = LayoutScorer([RoomSpec("kitchen", "kitchen"), RoomSpec("bath", "bathroom")], [], ENVELOPE)
    assert no_public.score(_layout(RoomPlacement("kitchen", 2, 2, 4, 3),
                                   RoomPlacement("bath", 6, 2, 2, 2))).entry_access == 0.0


def test_boundary_contact():
    assert boundary_contact(RoomPlacement("a", 0, 0, 4, 3), ENVELOPE, 0.02) == pytest.approx(4.0)
    assert boundary_contact(RoomPlacement("a", 8, 1, 2, 3), ENVELOPE, 0.02) == pytest.approx(3.0)
    assert boundary_contact(RoomPlacement("a", 2, 2, 2, 2), ENVELOPE, 0.02) == 0.0

    l_shape = BuildingEnvelope(outline=((0, 0), (12, 0), (12, 6), (6, 6), (6, 10), (0, 10)))
    assert boundary_contact(RoomPlacement("a", 2, 6, 4, 4), l_shape, 0.02) == pytest.approx(4.0, abs=1e-3)
    assert boundary_contact(RoomPlacement("a", 2, 2, 3, 3), l_shape, 0.02) == pytest.approx(0.0, abs=1e-9)


def test_terms_non_negative():
    scorer = LayoutScorer(ROOMS, MUST, ENVELOPE)
    b = scorer.score(
        _layout(RoomPlacement("kitchen", 1, 1, 2, 6), RoomPlacement("dining", 0, 0, 9, 1)))
    for value in b.to_dict().values():
        assert value >= 0.0


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))

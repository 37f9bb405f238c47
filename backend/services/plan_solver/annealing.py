"""
Simulated annealing over room placements.

The optimizer is strictly sequential and fully driven by the
``random.Random`` instance it is given: the same seed, spec and budget
replay the same perturbations and the same accept/reject decisions.
The only outside input is the optional wall-clock deadline.
"""

import logging
import math
import random
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

from config import (
    CALIBRATION_SAMPLES,
    COOLING_RATE,
    DEADLINE_CHECK_INTERVAL,
    INITIAL_ACCEPTANCE,
    SNAP_DISTANCE,
)
from .models import Layout, RoomPlacement
from .rules import clamp_aspect
from .scorer import LayoutScorer, ScoreBreakdown

logger = logging.getLogger(__name__)

PERTURBATIONS = ("translate", "resize", "swap", "aspect")

# Feasibility comparisons tolerate float noise from coordinate arithmetic
_FEASIBILITY_SLACK = 1e-9


@dataclass(frozen=True)
class AnnealingResult:
    best: Layout
    breakdown: ScoreBreakdown
    seed_cost: float
    iterations: int
    accepted: int
    rejected: int
    infeasible: int
    decisions: Tuple[bool, ...]
    initial_temperature: float
    final_temperature: float
    timed_out: bool

    def stats(self) -> dict:
        return {
            "seed_cost": round(self.seed_cost, 6),
            "best_cost": round(self.best.cost, 6),
            "iterations": self.iterations,
            "accepted": self.accepted,
            "rejected": self.rejected,
            "infeasible": self.infeasible,
            "initial_temperature": round(self.initial_temperature, 6),
            "final_temperature": round(self.final_temperature, 9),
        }


class AnnealingOptimizer:
    """
    Refine a seed Layout by Metropolis-driven local search.

    Parameters
    ----------
    scorer : LayoutScorer
        Cost function; also provides the envelope and room standards.
    rng : random.Random
        Seeded generator; the optimizer never touches global randomness.
    iteration_budget : int
        Maximum number of perturbations.
    cooling_rate : float
        Geometric cooling factor alpha in T_k = T0 * alpha**k.
    deadline : float, optional
        ``time.monotonic()`` value after which the search stops early.
    """

    def __init__(self, scorer: LayoutScorer, rng: random.Random, iteration_budget: int,
                 cooling_rate: float = COOLING_RATE, deadline: Optional[float] = None):
        self.scorer = scorer
        self.rng = rng
        self.iteration_budget = max(0, int(iteration_budget))
        self.cooling_rate = cooling_rate
        self.deadline = deadline
        self.bounds = scorer.envelope.bounds
        minx, miny, maxx, maxy = self.bounds
        self.max_step = 0.25 * min(maxx - minx, maxy - miny)

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def optimize(self, seed: Layout) -> AnnealingResult:
        seed_score = self.scorer.score(seed)
        current, current_score = seed.with_cost(seed_score.total, 0), seed_score
        best, best_score = current, current_score

        t0 = self._initial_temperature(current, current_score)
        temperature = t0
        decisions: List[bool] = []
        accepted = rejected = infeasible = 0
        timed_out = False

        for k in range(self.iteration_budget):
            if best_score.total <= 0.0:
                break
            if (self.deadline is not None and k % DEADLINE_CHECK_INTERVAL == 0
                    and time.monotonic() > self.deadline):
                timed_out = True
                break

            temperature = max(t0 * self.cooling_rate ** k, 1e-12)
            kind = self.rng.choice(PERTURBATIONS)
            candidate = self._perturb(kind, current, temperature / t0)
            if candidate is None:
                decisions.append(False)
                rejected += 1
                continue

            cand_score = self.scorer.score(candidate)
            if not self._feasible(cand_score, current_score):
                decisions.append(False)
                rejected += 1
                infeasible += 1
                continue

            delta = cand_score.total - current_score.total
            if delta <= 0 or self.rng.random() < math.exp(-delta / temperature):
                current = candidate.with_cost(cand_score.total, k + 1)
                current_score = cand_score
                decisions.append(True)
                accepted += 1
                if cand_score.total < best_score.total:
                    best, best_score = current, cand_score
            else:
                decisions.append(False)
                rejected += 1

        iterations = len(decisions)
        if timed_out:
            logger.warning(
                f"Annealing deadline reached after {iterations} iterations; "
                f"returning best cost {best_score.total:.4f}"
            )
        logger.debug(
            f"Annealing: {iterations} iterations, {accepted} accepted, "
            f"cost {seed_score.total:.4f} -> {best_score.total:.4f}"
        )
        return AnnealingResult(
            best=best,
            breakdown=best_score,
            seed_cost=seed_score.total,
            iterations=iterations,
            accepted=accepted,
            rejected=rejected,
            infeasible=infeasible,
            decisions=tuple(decisions),
            initial_temperature=t0,
            final_temperature=temperature,
            timed_out=timed_out,
        )

    @staticmethod
    def _feasible(candidate: ScoreBreakdown, current: ScoreBreakdown) -> bool:
        """
        Never trade into more overlap, more area outside the envelope, a
        room graph split into more pieces, or a plan with no public room
        on the envelope.
        """
        return (candidate.overlap <= current.overlap + _FEASIBILITY_SLACK
                and candidate.envelope_fit <= current.envelope_fit + _FEASIBILITY_SLACK
                and candidate.connectivity <= current.connectivity
                and candidate.entry_access <= current.entry_access)

    def _initial_temperature(self, layout: Layout, score: ScoreBreakdown) -> float:
        """Pick T0 so that the average uphill move is accepted with INITIAL_ACCEPTANCE."""
        uphill = []
        for _ in range(CALIBRATION_SAMPLES):
            candidate = self._perturb(self.rng.choice(PERTURBATIONS), layout, 1.0)
            if candidate is None:
                continue
            cand_score = self.scorer.score(candidate)
            if not self._feasible(cand_score, score):
                continue
            delta = cand_score.total - score.total
            if delta > 0:
                uphill.append(delta)
        if not uphill:
            return max(score.total * 0.1, 1e-3)
        return -(sum(uphill) / len(uphill)) / math.log(INITIAL_ACCEPTANCE)

    # ------------------------------------------------------------------
    # Perturbations
    # ------------------------------------------------------------------

    def _perturb(self, kind: str, layout: Layout, heat: float) -> Optional[Layout]:
        placements = layout.placements
        if not placements:
            return None
        if kind == "swap":
            if len(placements) < 2:
                return None
            i, j = self.rng.sample(range(len(placements)), 2)
            return self._swap(layout, placements[i], placements[j])

        target = placements[self.rng.randrange(len(placements))]
        if kind == "translate":
            moved = self._translate(layout, target, heat)
        elif kind == "resize":
            moved = self._resize(target)
        else:
            moved = self._reshape(target)
        if moved is None:
            return None
        return layout.with_placement(moved)

    def _translate(self, layout: Layout, p: RoomPlacement, heat: float) -> RoomPlacement:
        step = max(0.1, self.max_step * math.sqrt(heat))
        x = p.x + self.rng.uniform(-step, step)
        y = p.y + self.rng.uniform(-step, step)
        moved = self._clamp(p.moved_to(x, y))
        return self._snap(moved, layout)

    def _resize(self, p: RoomPlacement) -> Optional[RoomPlacement]:
        spec = self.scorer.rooms[p.room_id]
        std = spec.standard
        area = p.area + (spec.target_area - p.area) * self.rng.uniform(0.3, 1.0)
        area *= self.rng.uniform(0.95, 1.05)
        area = min(max(area, std.min_area), std.max_area)
        ratio = p.width / p.height if p.height > 0 else 1.0
        return self._reshaped(p, area, ratio)

    def _reshape(self, p: RoomPlacement) -> Optional[RoomPlacement]:
        spec = self.scorer.rooms[p.room_id]
        ratio = p.width / p.height if p.height > 0 else 1.0
        ratio = clamp_aspect(spec.room_type, ratio * math.exp(self.rng.uniform(-0.2, 0.2)))
        return self._reshaped(p, p.area, ratio)

    def _reshaped(self, p: RoomPlacement, area: float, ratio: float) -> Optional[RoomPlacement]:
        """Resize *p* to *area* at *ratio*, anchored at a random corner."""
        minx, miny, maxx, maxy = self.bounds
        min_dim = self.scorer.rooms[p.room_id].min_dimension
        width = math.sqrt(area * ratio)
        height = area / width
        width = min(max(width, min_dim), maxx - minx)
        height = min(max(height, min_dim), maxy - miny)
        if width <= 0 or height <= 0:
            return None

        corner = self.rng.randrange(4)
        x = p.x if corner in (0, 3) else p.x2 - width
        y = p.y if corner in (0, 1) else p.y2 - height
        return self._clamp(RoomPlacement(p.room_id, x, y, width, height))

    def _swap(self, layout: Layout, a: RoomPlacement, b: RoomPlacement) -> Layout:
        (acx, acy), (bcx, bcy) = a.center, b.center
        new_a = self._clamp(a.moved_to(bcx - a.width / 2, bcy - a.height / 2))
        new_b = self._clamp(b.moved_to(acx - b.width / 2, acy - b.height / 2))
        swapped = layout.with_placements([new_a, new_b])
        new_a = self._snap(new_a, swapped)
        new_b = self._snap(new_b, swapped.with_placement(new_a))
        return swapped.with_placements([new_a, new_b])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _clamp(self, p: RoomPlacement) -> RoomPlacement:
        minx, miny, maxx, maxy = self.bounds
        x = min(max(p.x, minx), maxx - p.width)
        y = min(max(p.y, miny), maxy - p.height)
        return p.moved_to(x, y)

    def _snap(self, p: RoomPlacement, layout: Layout) -> RoomPlacement:
        """Pull *p* onto a nearby room or envelope edge so walls can be shared."""
        minx, miny, maxx, maxy = self.bounds
        xs = [minx, maxx - p.width]
        ys = [miny, maxy - p.height]
        for other in layout.placements:
            if other.room_id == p.room_id:
                continue
            xs.extend((other.x2, other.x - p.width, other.x, other.x2 - p.width))
            ys.extend((other.y2, other.y - p.height, other.y, other.y2 - p.height))

        def nearest(value: float, options: List[float]) -> float:
            best = min(options, key=lambda o: (abs(o - value), o))
            return best if abs(best - value) <= SNAP_DISTANCE else value

        return self._clamp(p.moved_to(nearest(p.x, xs), nearest(p.y, ys)))

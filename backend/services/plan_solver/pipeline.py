"""
Public API of the layout core.

    solve(spec, envelope, options)       -> FloorPlan   (raises InfeasibleSpec)
    validate(plan)                       -> ValidationReport
    solve_variations(spec, envelope, …)  -> list[FloorPlan], cheapest first

A solve runs: rule checks -> zone seed -> annealing -> walls -> openings
-> door arcs -> validation (plus one correction round).  Every stage
returns new values, so plans can be handed to other threads or processes
without copying.
"""

import logging
import random
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from config import COOLING_RATE, DEFAULT_SEED, VARIATION_COUNT
from .annealing import AnnealingOptimizer
from .door_arc import resolve_door_arcs
from .diversity import score_diversity
from .errors import InfeasibleSpec
from .models import (
    AdjacencyEdge,
    BuildingEnvelope,
    FloorPlan,
    FloorPlanSpec,
    Layout,
    SolveOptions,
    ValidationIssue,
    ValidationReport,
)
from .openings import OpeningPlacer
from .rules import (
    TYPOLOGY_PROFILES,
    EntranceStrategy,
    classify_building_typology,
    default_adjacencies,
    determine_entrance_strategy,
    merge_adjacencies,
    validate_adjacency_feasibility,
    validate_area_distribution,
    validate_room,
)
from .scorer import LayoutScorer
from .validator import validate_plan
from .walls import synthesize_walls
from .zone_placer import ZonePlacer, check_feasibility

logger = logging.getLogger(__name__)

# Seeds of successive variations are spread by a prime stride
VARIATION_SEED_STRIDE = 7919


def resolve_adjacencies(spec: FloorPlanSpec) -> List[AdjacencyEdge]:
    return merge_adjacencies(default_adjacencies(spec.rooms), spec.adjacencies)


def check_spec(spec: FloorPlanSpec, envelope: BuildingEnvelope,
               edges: Sequence[AdjacencyEdge]) -> List[ValidationIssue]:
    """Re-validate the incoming specification; findings are reported, not raised."""
    issues = validate_area_distribution(
        envelope.target_area, {r.id: r.target_area for r in spec.rooms})
    issues += validate_adjacency_feasibility(edges)
    for room in spec.rooms:
        issues += validate_room(room.room_type, room.target_area, subject=room.id)
    return issues


def solve(spec: FloorPlanSpec, envelope: BuildingEnvelope,
          options: Optional[SolveOptions] = None) -> FloorPlan:
    """
    Lay out *spec* inside *envelope*.

    Raises
    ------
    InfeasibleSpec
        When the rooms cannot fit even at their minimum sizes.

    Returns
    -------
    FloorPlan
        Always a plan, possibly with ``report.final_valid == False`` or
        ``timed_out == True``.
    """
    options = options or SolveOptions()
    seed = DEFAULT_SEED if options.random_seed is None else options.random_seed
    started = time.monotonic()

    try:
        check_feasibility(spec.rooms, envelope)
    except InfeasibleSpec as e:
        logger.warning(f"Infeasible specification: {e}")
        raise

    edges = resolve_adjacencies(spec)
    spec_issues = check_spec(spec, envelope, edges)
    typology = classify_building_typology(envelope.target_area, len(spec.rooms))
    budget = options.iteration_budget
    if budget is None:
        budget = TYPOLOGY_PROFILES[typology].iteration_budget
    logger.info(
        f"Solving {len(spec.rooms)} rooms in {envelope.area:.1f}m² "
        f"({typology}, seed={seed}, budget={budget})"
    )

    seed_layout = ZonePlacer(envelope, typology).place(spec.rooms)
    scorer = LayoutScorer(spec.rooms, edges, envelope)
    deadline = started + options.time_budget if options.time_budget else None
    optimizer = AnnealingOptimizer(
        scorer,
        random.Random(seed),
        budget,
        cooling_rate=options.cooling_rate or COOLING_RATE,
        deadline=deadline,
    )
    result = optimizer.optimize(seed_layout)

    strategy = determine_entrance_strategy(
        envelope.target_area, [r.room_type for r in spec.rooms], typology)
    plan = FloorPlan(
        envelope=envelope,
        rooms=tuple(spec.rooms),
        layout=result.best,
        adjacencies=tuple(edges),
        spec_issues=tuple(spec_issues),
        typology=typology,
        seed=seed,
        score=result.breakdown.to_dict(),
        stats=result.stats(),
        timed_out=result.timed_out,
    )
    plan = _derive(plan, strategy)
    plan = _apply_corrections(plan, strategy, scorer)

    elapsed = time.monotonic() - started
    if plan.report.final_valid:
        logger.info(f"Solved in {elapsed:.2f}s, cost {plan.cost:.4f}")
    else:
        logger.warning(
            f"Solved in {elapsed:.2f}s with {len(plan.report.errors)} validation errors"
        )
    return plan


def _derive(plan: FloorPlan, strategy: EntranceStrategy) -> FloorPlan:
    """Walls, openings, arcs and report for the plan's frozen layout."""
    rooms = {r.id: r for r in plan.rooms}
    walls = synthesize_walls(plan.layout, plan.envelope)
    openings = OpeningPlacer(plan.layout, walls, plan.rooms, plan.adjacencies, strategy).place()
    openings = resolve_door_arcs(openings, walls, plan.layout, rooms)
    plan = replace(plan, walls=tuple(walls), openings=tuple(openings))
    return replace(plan, report=validate_plan(plan))


def _apply_corrections(plan: FloorPlan, strategy: EntranceStrategy, scorer: LayoutScorer) -> FloorPlan:
    """Re-derive and re-validate from the validator's corrections; keep them only if they help."""
    report = plan.report
    if not report.has_corrections:
        return plan

    if report.corrected_placements is not None:
        layout = Layout(report.corrected_placements, generation=plan.layout.generation)
        breakdown = scorer.score(layout)
        candidate = replace(plan, layout=layout.with_cost(breakdown.total),
                            score=breakdown.to_dict())
        candidate = _derive(candidate, strategy)
    else:
        candidate = replace(plan, openings=report.corrected_openings)
        candidate = replace(candidate, report=validate_plan(candidate))

    if len(candidate.report.errors) < len(report.errors):
        logger.info(
            f"Validator corrections reduced errors {len(report.errors)} -> "
            f"{len(candidate.report.errors)}"
        )
        return candidate
    logger.debug("Validator corrections did not reduce errors; keeping the optimized plan")
    return plan


def validate(plan: FloorPlan) -> ValidationReport:
    """Re-check a plan, including one built elsewhere and loaded with FloorPlan.from_dict."""
    return validate_plan(plan)


# ----------------------------------------------------------------------
# Variations
# ----------------------------------------------------------------------

def _solve_variation(args: Tuple[FloorPlanSpec, BuildingEnvelope, SolveOptions]) -> FloorPlan:
    spec, envelope, options = args
    return solve(spec, envelope, options)


def solve_variations(spec: FloorPlanSpec, envelope: BuildingEnvelope,
                     options: Optional[SolveOptions] = None,
                     count: int = VARIATION_COUNT,
                     max_workers: Optional[int] = None,
                     parallel: bool = True) -> List[FloorPlan]:
    """
    Solve *count* independent variations and return them cheapest first.

    Each variation gets its own seed (base seed + i * stride).  A failed
    variation is logged and dropped; the others are unaffected.
    """
    options = options or SolveOptions()
    base = DEFAULT_SEED if options.random_seed is None else options.random_seed
    check_feasibility(spec.rooms, envelope)

    jobs = [(spec, envelope, replace(options, random_seed=base + i * VARIATION_SEED_STRIDE))
            for i in range(count)]
    plans: List[FloorPlan] = []
    if parallel and count > 1:
        with ProcessPoolExecutor(max_workers=max_workers) as pool:
            futures = {pool.submit(_solve_variation, job): job[2].random_seed for job in jobs}
            for future in as_completed(futures):
                try:
                    plans.append(future.result())
                except Exception as e:
                    logger.warning(f"Variation with seed {futures[future]} failed: {e}")
    else:
        for job in jobs:
            try:
                plans.append(_solve_variation(job))
            except Exception as e:
                logger.warning(f"Variation with seed {job[2].random_seed} failed: {e}")

    plans.sort(key=lambda p: (p.cost, p.seed))
    ranked = []
    for i, plan in enumerate(plans):
        diversity = min((score_diversity(plan, better).overall_diversity for better in plans[:i]),
                        default=100.0)
        ranked.append(replace(plan, stats={**plan.stats, "diversity": round(diversity, 2)}))
    logger.info(f"Solved {len(ranked)}/{count} variations")
    return ranked

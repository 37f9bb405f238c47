"""
Floor-plan layout API routes.

Endpoints:
  POST /api/layout/solve       - Solve one layout for a room specification
  POST /api/layout/variations  - Solve several independent variations
  POST /api/layout/validate    - Re-validate a plan produced elsewhere
  GET  /api/layout/standards   - Room standards and adjacency rules
"""

import logging
from fastapi import APIRouter, HTTPException
from fastapi.concurrency import run_in_threadpool

from schemas import (
    SolveRequest,
    SolveResponse,
    ValidateRequest,
    ValidateResponse,
    VariationsRequest,
    VariationsResponse,
)
from services.plan_solver import (
    AdjacencyEdge,
    BuildingEnvelope,
    FloorPlan,
    FloorPlanSpec,
    InfeasibleSpec,
    RoomSpec,
    SolveOptions,
    solve,
    solve_variations,
    validate,
)
from services.plan_solver.rules import ADJACENCY_RULES, ROOM_STANDARDS, ZONES

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/layout", tags=["layout"])


def _to_core(req: SolveRequest):
    """Convert a request body into core values; malformed input becomes a 422."""
    try:
        spec = FloorPlanSpec(
            rooms=tuple(RoomSpec(r.id, r.room_type, r.target_area, r.label) for r in req.rooms),
            adjacencies=tuple(AdjacencyEdge(a.a, a.b, a.weight, a.kind) for a in req.adjacencies),
        )
        envelope = BuildingEnvelope.from_dict(req.envelope.model_dump(exclude_none=True))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    options = SolveOptions(
        iteration_budget=req.options.iteration_budget,
        random_seed=req.options.random_seed,
        time_budget=req.options.time_budget,
    )
    return spec, envelope, options


@router.post("/solve", response_model=SolveResponse)
async def solve_layout(req: SolveRequest):
    """Solve a single floor plan."""
    spec, envelope, options = _to_core(req)
    try:
        plan = await run_in_threadpool(solve, spec, envelope, options)
    except InfeasibleSpec as e:
        logger.warning(f"Rejected infeasible request: {e}")
        raise HTTPException(status_code=422, detail=e.to_dict())

    return SolveResponse(
        status="valid" if plan.report.final_valid else "invalid",
        final_valid=plan.report.final_valid,
        timed_out=plan.timed_out,
        plan=plan.to_dict(),
    )


@router.post("/variations", response_model=VariationsResponse)
async def solve_layout_variations(req: VariationsRequest):
    """Solve several variations with independent seeds, cheapest first."""
    spec, envelope, options = _to_core(req)
    try:
        plans = await run_in_threadpool(solve_variations, spec, envelope, options, req.count)
    except InfeasibleSpec as e:
        raise HTTPException(status_code=422, detail=e.to_dict())

    return VariationsResponse(
        status="success" if plans else "failed",
        count=len(plans),
        plans=[p.to_dict() for p in plans],
    )


@router.post("/validate", response_model=ValidateResponse)
async def validate_layout(req: ValidateRequest):
    """Re-run the validation passes on a plan (e.g. after editing it client-side)."""
    try:
        plan = FloorPlan.from_dict(req.plan)
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Malformed plan: {e}")

    report = validate(plan)
    return ValidateResponse(
        final_valid=report.final_valid,
        report=report.to_dict(),
        summary=report.summary(),
    )


@router.get("/standards")
async def get_standards():
    """Room standards, zones and adjacency rules used by the solver."""
    return {
        "rooms": {
            rtype.value: {
                "min_area": std.min_area,
                "max_area": std.max_area,
                "optimal_area": std.optimal_area,
                "min_dimension": std.min_dimension,
                "optimal_ratio": std.optimal_ratio,
                "aspect_range": list(std.aspect_range),
                "zone": ZONES[rtype].value,
            }
            for rtype, std in ROOM_STANDARDS.items()
        },
        "adjacency_rules": [
            {
                "first": r.first.value,
                "second": r.second.value,
                "weight": r.weight,
                "kind": r.kind.value,
                "justification": r.justification,
            }
            for r in ADJACENCY_RULES
        ],
    }

"""Exceptions raised by the layout core."""


class SolveError(Exception):
    """Base class for failures surfaced by ``solve``."""


class InfeasibleSpec(SolveError):
    """The requested rooms cannot fit the envelope, even at their minimum sizes."""

    def __init__(self, message: str, required_area: float = 0.0, available_area: float = 0.0):
        super().__init__(message)
        self.required_area = required_area
        self.available_area = available_area

    def to_dict(self) -> dict:
        return {
            "error": "infeasible_spec",
            "message": str(self),
            "required_area": round(self.required_area, 2),
            "available_area": round(self.available_area, 2),
        }


class ValidationFailure(SolveError):
    """Raised on request by callers that refuse a plan with validation errors."""

    def __init__(self, report):
        errors = report.errors
        rules = ", ".join(sorted({e.rule for e in errors}))
        super().__init__(f"Floor plan failed validation with {len(errors)} error(s): {rules}")
        self.report = report

"""Pydantic schemas for API request/response validation."""

from pydantic import BaseModel, Field, model_validator
from typing import Optional


# ---------- Rooms ----------
class RoomIn(BaseModel):
    id: str
    room_type: str = Field(..., description="bedroom, bathroom, kitchen, living, dining, hallway, ...")
    target_area: Optional[float] = Field(default=None, gt=0, description="Target area in m²")
    label: Optional[str] = None


class AdjacencyIn(BaseModel):
    a: str
    b: str
    weight: int = Field(default=5, ge=0, le=10)
    kind: str = Field(default="should", pattern="^(must|should|avoid)$")


# ---------- Envelope ----------
class EnvelopeIn(BaseModel):
    outline: Optional[list[list[float]]] = Field(
        default=None, description="Rectilinear outline [[x, y], ...] in metres"
    )
    width: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)
    total_area: Optional[float] = Field(default=None, gt=0)
    floor: int = 0
    entry_face: str = Field(default="south", pattern="^(south|north|east|west)$")

    @model_validator(mode="after")
    def check_shape(self):
        if self.outline is None and (self.width is None or self.height is None):
            raise ValueError("Provide either an outline or width and height")
        return self


# ---------- Solve ----------
class SolveOptionsIn(BaseModel):
    iteration_budget: Optional[int] = Field(default=None, ge=0, le=100000)
    random_seed: Optional[int] = None
    time_budget: Optional[float] = Field(default=None, gt=0, description="Seconds")


class SolveRequest(BaseModel):
    rooms: list[RoomIn] = Field(..., min_length=1)
    adjacencies: list[AdjacencyIn] = []
    envelope: EnvelopeIn
    options: SolveOptionsIn = SolveOptionsIn()


class VariationsRequest(SolveRequest):
    count: int = Field(default=3, ge=1, le=10)


class SolveResponse(BaseModel):
    status: str
    final_valid: bool
    timed_out: bool = False
    plan: Optional[dict] = None


class VariationsResponse(BaseModel):
    status: str
    count: int
    plans: list[dict] = []


# ---------- Validate ----------
class ValidateRequest(BaseModel):
    plan: dict = Field(..., description="Plan as returned by /solve")


class ValidateResponse(BaseModel):
    final_valid: bool
    report: dict
    summary: str

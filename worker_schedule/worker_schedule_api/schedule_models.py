"""
Request/response contracts shared between the schedule engine and its callers.

Requests are tagged by `kind`, results by `status`. Field aliases match the JSON
shapes the UI layer sends and renders, so dump with `by_alias=True`.
"""
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ErrorDetail(BaseModel):
    code: str
    message: str


class ScheduleNode(BaseModel):
    id: str = Field(..., min_length=1)
    duration: float = Field(default=0.0, ge=0, allow_inf_nan=False)


class ScheduleEdge(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_id: str = Field(..., alias="from")
    to: str


class ScheduleRequest(BaseModel):
    kind: Literal["schedule"] = "schedule"
    nodes: list[ScheduleNode] = Field(default_factory=list)
    edges: list[ScheduleEdge] = Field(default_factory=list)
    strict: bool = Field(
        default=False,
        description="Reject edges that reference unknown tasks instead of ignoring them.",
    )


class SimulationTask(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    base_duration: float = Field(default=1.0, ge=0, allow_inf_nan=False, alias="baseDuration")
    distribution: str | None = Field(
        default=None,
        description="triangular(a,m,b) or pert(a,m,b). Unparsable text falls back to baseDuration.",
    )
    predecessors: list[str] = Field(default_factory=list)


class SimulateRequest(BaseModel):
    kind: Literal["simulate"] = "simulate"
    iterations: int = Field(..., ge=1)
    tasks: list[SimulationTask] = Field(default_factory=list)
    seed: int | None = Field(
        default=None,
        ge=0,
        description="Fixed seed for a reproducible run. Omit for a non-deterministic run.",
    )
    strict: bool = False


ComputeRequest = Annotated[Union[ScheduleRequest, SimulateRequest], Field(discriminator="kind")]


class ScheduleResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    es: dict[str, float]
    ef: dict[str, float]
    ls: dict[str, float]
    lf: dict[str, float]
    total_float: dict[str, float] = Field(..., alias="float")
    critical: list[str]
    project_duration: float = Field(..., alias="projectDuration")
    order: list[str] = Field(default_factory=list)


class HistogramEntry(BaseModel):
    bucket: float
    count: int


class Percentiles(BaseModel):
    p50: float
    p80: float


class DriverEntry(BaseModel):
    id: str
    correlation: float


class SimulateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    histogram: list[HistogramEntry]
    percentiles: Percentiles
    drivers: list[DriverEntry]
    iterations: int
    mean: float
    std_dev: float = Field(..., alias="stdDev")


class ComputeOk(BaseModel):
    status: Literal["ok"] = "ok"
    result: ScheduleResponse | SimulateResponse


class ComputeErr(BaseModel):
    status: Literal["error"] = "error"
    error: ErrorDetail


ComputeResult = Annotated[Union[ComputeOk, ComputeErr], Field(discriminator="status")]

_request_adapter = TypeAdapter(ComputeRequest)
_result_adapter = TypeAdapter(ComputeResult)


def parse_compute_request(data: Any) -> ScheduleRequest | SimulateRequest:
    """Validate a JSON-like payload into the request variant named by its `kind`."""
    return _request_adapter.validate_python(data)


def parse_compute_result(data: Any) -> ComputeOk | ComputeErr:
    return _result_adapter.validate_python(data)

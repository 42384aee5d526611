"""
PURPOSE: The request/response seam the UI layer calls into.

Two operations, `schedule` and `simulate`, plus `handle_request` which
dispatches on the request's `kind`. Each call builds all state from the
request and keeps nothing afterwards.

Engine errors (cycles, duplicate ids, strict-mode references, invalid
payloads) come back as ComputeErr with a stable code. Anything else is a bug
and propagates.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from worker_schedule_api.schedule_models import (
    ComputeErr,
    ComputeOk,
    DriverEntry,
    ErrorDetail,
    HistogramEntry,
    Percentiles,
    ScheduleRequest,
    ScheduleResponse,
    SimulateRequest,
    SimulateResponse,
    parse_compute_request,
)
from worker_schedule_internal.monte_carlo.config import MAX_ITERATIONS, RANDOM_SEED
from worker_schedule_internal.monte_carlo.outputs import SimulationOutput
from worker_schedule_internal.monte_carlo.simulation import MonteCarloSimulation
from worker_schedule_internal.schedule.cpm import ScheduleResult, compute_schedule
from worker_schedule_internal.schedule.errors import InvalidRequest, ScheduleEngineError
from worker_schedule_internal.schedule.graph import TaskNode

logger = logging.getLogger(__name__)

ComputeResultType = Union[ComputeOk, ComputeErr]


def _error(error: ScheduleEngineError) -> ComputeErr:
    return ComputeErr(error=ErrorDetail(code=error.code, message=error.message))


def _invalid(e: ValidationError) -> ComputeErr:
    return _error(InvalidRequest(f"Invalid request: {e.error_count()} validation error(s)", details=e.errors()))


def nodes_from_schedule_request(request: ScheduleRequest) -> List[TaskNode]:
    """
    Fold the edge list into per-task predecessor lists.

    Edge (from, to) makes `from` a predecessor of `to`. An edge whose `to` is
    not a node is dropped (or rejected in strict mode); an unknown `from` is
    left for the graph builder, which applies the same rule.
    """
    predecessors: Dict[str, List[str]] = {node.id: [] for node in request.nodes}
    for edge in request.edges:
        if edge.to not in predecessors:
            if request.strict:
                raise InvalidRequest(f"Edge {edge.from_id!r} -> {edge.to!r} targets an unknown task")
            logger.warning("Edge %r -> %r targets an unknown task; ignoring it", edge.from_id, edge.to)
            continue
        predecessors[edge.to].append(edge.from_id)
    return [
        TaskNode(id=node.id, base_duration=node.duration, predecessors=tuple(predecessors[node.id]))
        for node in request.nodes
    ]


def nodes_from_simulate_request(request: SimulateRequest) -> List[TaskNode]:
    return [
        TaskNode(
            id=task.id,
            base_duration=task.base_duration,
            distribution=task.distribution,
            predecessors=tuple(task.predecessors),
        )
        for task in request.tasks
    ]


def schedule_response(result: ScheduleResult) -> ScheduleResponse:
    return ScheduleResponse(
        es=result.es,
        ef=result.ef,
        ls=result.ls,
        lf=result.lf,
        total_float=result.total_float,
        critical=result.critical,
        project_duration=result.project_duration,
        order=result.order,
    )


def simulate_response(output: SimulationOutput) -> SimulateResponse:
    return SimulateResponse(
        histogram=[HistogramEntry(bucket=b.bucket, count=b.count) for b in output.histogram],
        percentiles=Percentiles(**output.percentiles),
        drivers=[DriverEntry(id=d.id, correlation=d.correlation) for d in output.drivers],
        iterations=output.iterations,
        mean=output.mean,
        std_dev=output.std_dev,
    )


def schedule(request: Union[ScheduleRequest, Mapping[str, Any]]) -> ComputeResultType:
    """CPM schedule for `{nodes: [{id, duration}], edges: [{from, to}]}`."""
    try:
        if not isinstance(request, ScheduleRequest):
            request = ScheduleRequest.model_validate(request)
    except ValidationError as e:
        return _invalid(e)

    try:
        result = compute_schedule(nodes_from_schedule_request(request), strict=request.strict)
    except ScheduleEngineError as e:
        logger.info("schedule failed: %s", e.message)
        return _error(e)
    return ComputeOk(result=schedule_response(result))


def simulate(
    request: Union[SimulateRequest, Mapping[str, Any]],
    max_iterations: Optional[int] = MAX_ITERATIONS,
) -> ComputeResultType:
    """
    Monte Carlo simulation for `{iterations, tasks: [{id, baseDuration, distribution?, predecessors}]}`.

    The request seed wins over RANDOM_SEED; with neither, the run draws OS entropy.
    """
    try:
        if not isinstance(request, SimulateRequest):
            request = SimulateRequest.model_validate(request)
    except ValidationError as e:
        return _invalid(e)

    if max_iterations is not None and request.iterations > max_iterations:
        return _error(InvalidRequest(f"iterations must be at most {max_iterations}, got {request.iterations}"))

    seed = request.seed if request.seed is not None else RANDOM_SEED
    try:
        simulation = MonteCarloSimulation(num_runs=request.iterations, random_state=seed, strict=request.strict)
        output = simulation.simulate(nodes_from_simulate_request(request))
    except ScheduleEngineError as e:
        logger.info("simulate failed: %s", e.message)
        return _error(e)
    return ComputeOk(result=simulate_response(output))


def handle_request(request: Union[ScheduleRequest, SimulateRequest, Mapping[str, Any]]) -> ComputeResultType:
    """Dispatch a tagged request to `schedule` or `simulate`."""
    if isinstance(request, Mapping):
        try:
            request = parse_compute_request(request)
        except ValidationError as e:
            return _invalid(e)
    if isinstance(request, ScheduleRequest):
        return schedule(request)
    return simulate(request)

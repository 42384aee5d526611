"""
Map task-store records into engine requests.

A record carries at least {id, duration?, dependsOn: [id], distribution?}.
Only those fields are read; anything else on the record is ignored.
"""
from typing import Any, Iterable, Mapping, Optional

from worker_schedule_api.schedule_models import (
    ScheduleEdge,
    ScheduleNode,
    ScheduleRequest,
    SimulateRequest,
    SimulationTask,
)

# A task without a duration is a milestone in the CPM view, but takes one unit
# in the simulation view.
DEFAULT_SCHEDULE_DURATION = 0.0
DEFAULT_SIMULATION_DURATION = 1.0


def _depends_on(record: Mapping[str, Any]) -> list[str]:
    return [dep for dep in (record.get("dependsOn") or []) if dep]


def schedule_request_from_records(records: Iterable[Mapping[str, Any]], strict: bool = False) -> ScheduleRequest:
    nodes = []
    edges = []
    for record in records:
        duration = record.get("duration")
        nodes.append(ScheduleNode(id=record["id"], duration=DEFAULT_SCHEDULE_DURATION if duration is None else duration))
        edges.extend(ScheduleEdge(from_id=dep, to=record["id"]) for dep in _depends_on(record))
    return ScheduleRequest(nodes=nodes, edges=edges, strict=strict)


def simulate_request_from_records(
    records: Iterable[Mapping[str, Any]],
    iterations: int,
    seed: Optional[int] = None,
    strict: bool = False,
) -> SimulateRequest:
    tasks = []
    for record in records:
        duration = record.get("duration")
        tasks.append(
            SimulationTask(
                id=record["id"],
                base_duration=DEFAULT_SIMULATION_DURATION if duration is None else duration,
                distribution=record.get("distribution") or None,
                predecessors=_depends_on(record),
            )
        )
    return SimulateRequest(iterations=iterations, tasks=tasks, seed=seed, strict=strict)

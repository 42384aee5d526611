"""
PURPOSE: Critical Path Method over a task dependency graph.

Topological order (Kahn, caller-order tie-break), then a forward pass for
earliest start/finish and a backward pass for latest start/finish. Float is
LS - ES; a task is critical when |float| < CRITICAL_FLOAT_TOLERANCE.

Pure function of its input: no randomness, no state kept between calls.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from worker_schedule_internal.schedule.graph import TaskGraph, TaskNode, build_graph, topological_order

logger = logging.getLogger(__name__)

# Max |float| for a task to count as critical.
CRITICAL_FLOAT_TOLERANCE = 1e-9


@dataclass
class ScheduleResult:
    """CPM times per task plus the critical set.

    Attributes:
        es, ef, ls, lf: Earliest/latest start/finish per task id.
        total_float: LS - ES per task id.
        critical: Ids with |float| below tolerance, in caller order.
        project_duration: Max EF (0 for an empty graph).
        order: Topological order used for both passes.
    """
    es: Dict[str, float] = field(default_factory=dict)
    ef: Dict[str, float] = field(default_factory=dict)
    ls: Dict[str, float] = field(default_factory=dict)
    lf: Dict[str, float] = field(default_factory=dict)
    total_float: Dict[str, float] = field(default_factory=dict)
    critical: List[str] = field(default_factory=list)
    project_duration: float = 0.0
    order: List[str] = field(default_factory=list)


def forward_pass(
    graph: TaskGraph,
    order: Sequence[str],
    durations: Optional[Mapping[str, float]] = None,
) -> Tuple[Dict[str, float], Dict[str, float], float]:
    """
    Earliest start/finish for every task, walking a precomputed topological order.

    Args:
        graph: Graph from build_graph.
        order: Topological order of graph (see topological_order).
        durations: Per-task durations; defaults to the graph's base durations.

    Returns:
        (es, ef, project_duration)
    """
    if durations is None:
        durations = graph.durations
    es: Dict[str, float] = {}
    ef: Dict[str, float] = {}
    for task_id in order:
        start = max((ef[p] for p in graph.incoming[task_id]), default=0.0)
        es[task_id] = start
        ef[task_id] = start + durations[task_id]
    project_duration = max(ef.values(), default=0.0)
    return es, ef, project_duration


def backward_pass(
    graph: TaskGraph,
    order: Sequence[str],
    project_duration: float,
    durations: Optional[Mapping[str, float]] = None,
) -> Tuple[Dict[str, float], Dict[str, float]]:
    """Latest start/finish, walking the topological order in reverse."""
    if durations is None:
        durations = graph.durations
    ls: Dict[str, float] = {}
    lf: Dict[str, float] = {}
    for task_id in reversed(order):
        finish = min((ls[s] for s in graph.outgoing[task_id]), default=project_duration)
        lf[task_id] = finish
        ls[task_id] = finish - durations[task_id]
    return ls, lf


def schedule_graph(graph: TaskGraph) -> ScheduleResult:
    order = topological_order(graph)
    es, ef, project_duration = forward_pass(graph, order)
    ls, lf = backward_pass(graph, order, project_duration)

    total_float = {task_id: ls[task_id] - es[task_id] for task_id in graph.order}
    critical = [task_id for task_id in graph.order if abs(total_float[task_id]) < CRITICAL_FLOAT_TOLERANCE]
    return ScheduleResult(
        es=es,
        ef=ef,
        ls=ls,
        lf=lf,
        total_float=total_float,
        critical=critical,
        project_duration=project_duration,
        order=order,
    )


def compute_schedule(nodes: Iterable[TaskNode], strict: bool = False) -> ScheduleResult:
    """
    Run CPM on a task list.

    Raises:
        CycleDetected: The graph is not acyclic. No partial times are returned.
        DuplicateTaskId: Two tasks share an id.
        UnknownPredecessor: Only when strict is True.
    """
    started = time.perf_counter()
    graph = build_graph(nodes, strict=strict)
    result = schedule_graph(graph)
    logger.info(
        "CPM schedule computed: %s tasks, project duration %s, %s critical, %.1f ms",
        len(graph),
        result.project_duration,
        len(result.critical),
        (time.perf_counter() - started) * 1000.0,
    )
    return result

"""
PURPOSE: Turn a task list into the adjacency structures the scheduler walks.

RESPONSIBILITIES:
    - Hold the per-task input (TaskNode)
    - Build incoming/outgoing/indegree maps covering every task id
    - Produce the Kahn topological order, failing with CycleDetected
    - Preserve caller order: it is the tie-break for all later processing

Unknown predecessor ids are dropped with a warning unless strict mode is on.
"""
import logging
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from worker_schedule_internal.schedule.errors import (
    CycleDetected,
    DuplicateTaskId,
    UnknownPredecessor,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskNode:
    """A single task as supplied by the caller.

    Attributes:
        id: Unique task id within one request.
        base_duration: Deterministic duration (>= 0).
        distribution: Optional distribution text, e.g. "pert(2,3,6)".
        predecessors: Ids this task waits on. Duplicates are ignored.
    """
    id: str
    base_duration: float = 0.0
    distribution: Optional[str] = None
    predecessors: Tuple[str, ...] = ()

    def __post_init__(self):
        if not math.isfinite(self.base_duration) or self.base_duration < 0:
            raise ValueError(f"Task {self.id}: base_duration must be finite and >= 0, got {self.base_duration}")
        # Keep first-seen order, drop repeats.
        object.__setattr__(self, "predecessors", tuple(dict.fromkeys(self.predecessors)))


@dataclass
class TaskGraph:
    order: List[str]
    durations: Dict[str, float]
    incoming: Dict[str, List[str]] = field(default_factory=dict)
    outgoing: Dict[str, List[str]] = field(default_factory=dict)
    indegree: Dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.order)

    def sources(self) -> List[str]:
        return [task_id for task_id in self.order if not self.incoming[task_id]]

    def sinks(self) -> List[str]:
        return [task_id for task_id in self.order if not self.outgoing[task_id]]


def _check_unique_ids(ids: Sequence[str]) -> None:
    seen = set()
    duplicates = []
    for task_id in ids:
        if task_id in seen:
            duplicates.append(task_id)
        seen.add(task_id)
    if duplicates:
        raise DuplicateTaskId(duplicates)


def build_graph(nodes: Iterable[TaskNode], strict: bool = False) -> TaskGraph:
    """
    Build adjacency and indegree maps from an ordered task list.

    Args:
        nodes: Tasks in caller order.
        strict: Raise UnknownPredecessor instead of dropping unknown ids.

    Returns:
        TaskGraph whose maps contain an entry for every task, edges or not.

    Raises:
        DuplicateTaskId: If a task id appears more than once.
        UnknownPredecessor: In strict mode, for the first unknown reference.
    """
    nodes = list(nodes)
    order = [node.id for node in nodes]
    _check_unique_ids(order)

    graph = TaskGraph(
        order=order,
        durations={node.id: float(node.base_duration) for node in nodes},
        incoming={task_id: [] for task_id in order},
        outgoing={task_id: [] for task_id in order},
    )

    dropped = 0
    for node in nodes:
        for predecessor in node.predecessors:
            if predecessor not in graph.outgoing:
                if strict:
                    raise UnknownPredecessor(node.id, predecessor)
                logger.warning("Task %r depends on unknown task %r; ignoring the reference", node.id, predecessor)
                dropped += 1
                continue
            graph.incoming[node.id].append(predecessor)
            graph.outgoing[predecessor].append(node.id)

    graph.indegree = {task_id: len(graph.incoming[task_id]) for task_id in order}
    logger.debug("Built graph with %s tasks, %s dropped references", len(order), dropped)
    return graph


def topological_order(graph: TaskGraph) -> List[str]:
    """
    Kahn's algorithm with a FIFO queue seeded in caller order.

    Raises:
        CycleDetected: If some tasks could never reach indegree 0.
    """
    remaining = dict(graph.indegree)
    queue = deque(task_id for task_id in graph.order if remaining[task_id] == 0)
    ordered: List[str] = []

    while queue:
        current = queue.popleft()
        ordered.append(current)
        for successor in graph.outgoing[current]:
            remaining[successor] -= 1
            if remaining[successor] == 0:
                queue.append(successor)

    if len(ordered) < len(graph.order):
        placed = set(ordered)
        raise CycleDetected([task_id for task_id in graph.order if task_id not in placed])
    return ordered

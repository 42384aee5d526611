"""
Tests for the CPM scheduler.

Covers the worked chain/diamond examples, cycle failure without partial
results, empty input, lenient/strict unknown references, and float/critical
path properties on seeded random DAGs.
"""
import numpy as np
import pytest

from worker_schedule_internal.schedule.cpm import (
    CRITICAL_FLOAT_TOLERANCE,
    ScheduleResult,
    compute_schedule,
    forward_pass,
)
from worker_schedule_internal.schedule.errors import CycleDetected, DuplicateTaskId, UnknownPredecessor
from worker_schedule_internal.schedule.graph import TaskNode, build_graph, topological_order


def chain():
    return [
        TaskNode("A", 2),
        TaskNode("B", 3, predecessors=("A",)),
        TaskNode("C", 1, predecessors=("B",)),
    ]


def diamond():
    return [
        TaskNode("A", 3),
        TaskNode("B", 2, predecessors=("A",)),
        TaskNode("C", 4, predecessors=("A",)),
        TaskNode("D", 1, predecessors=("B", "C")),
    ]


def random_dag(seed, size=30):
    rng = np.random.default_rng(seed)
    nodes = []
    for i in range(size):
        earlier = [f"T{j}" for j in range(i)]
        k = int(rng.integers(0, min(3, i) + 1)) if earlier else 0
        preds = tuple(str(p) for p in rng.choice(earlier, size=k, replace=False)) if k else ()
        nodes.append(TaskNode(f"T{i}", float(rng.integers(0, 20)) / 2.0, predecessors=preds))
    # Shuffle caller order so topological order differs from id order.
    order = rng.permutation(size)
    return [nodes[i] for i in order]


class TestWorkedExamples:
    def test_linear_chain(self):
        result = compute_schedule(chain())
        assert result.es == {"A": 0, "B": 2, "C": 5}
        assert result.ef == {"A": 2, "B": 5, "C": 6}
        assert result.ls == {"A": 0, "B": 2, "C": 5}
        assert result.lf == {"A": 2, "B": 5, "C": 6}
        assert result.total_float == {"A": 0, "B": 0, "C": 0}
        assert result.critical == ["A", "B", "C"]
        assert result.project_duration == 6

    def test_diamond(self):
        result = compute_schedule(diamond())
        assert result.es == {"A": 0, "B": 3, "C": 3, "D": 7}
        assert result.ef == {"A": 3, "B": 5, "C": 7, "D": 8}
        assert result.ls == {"A": 0, "B": 5, "C": 3, "D": 7}
        assert result.lf == {"A": 3, "B": 7, "C": 7, "D": 8}
        assert result.total_float == {"A": 0, "B": 2, "C": 0, "D": 0}
        assert result.critical == ["A", "C", "D"]
        assert result.project_duration == 8

    def test_parallel_sinks(self):
        result = compute_schedule([TaskNode("A", 5), TaskNode("B", 2)])
        assert result.project_duration == 5
        assert result.lf["B"] == 5
        assert result.total_float["B"] == 3
        assert result.critical == ["A"]

    def test_zero_duration_milestone_is_critical_on_path(self):
        result = compute_schedule([
            TaskNode("start", 0),
            TaskNode("work", 4, predecessors=("start",)),
            TaskNode("done", 0, predecessors=("work",)),
        ])
        assert result.critical == ["start", "work", "done"]
        assert result.project_duration == 4

    def test_fractional_durations_stay_critical(self):
        result = compute_schedule([
            TaskNode("A", 0.1),
            TaskNode("B", 0.2, predecessors=("A",)),
            TaskNode("C", 0.3, predecessors=("A",)),
            TaskNode("D", 0.7, predecessors=("B", "C")),
        ])
        assert result.critical == ["A", "C", "D"]
        assert result.project_duration == pytest.approx(1.1)


class TestFailures:
    def test_cycle_fails_without_partial_schedule(self):
        nodes = [TaskNode("A", 1, predecessors=("B",)), TaskNode("B", 1, predecessors=("A",))]
        result = None
        with pytest.raises(CycleDetected) as excinfo:
            result = compute_schedule(nodes)
        assert result is None
        assert excinfo.value.unresolved == ["A", "B"]

    def test_duplicate_ids(self):
        with pytest.raises(DuplicateTaskId):
            compute_schedule([TaskNode("A", 1), TaskNode("A", 2)])

    def test_unknown_predecessor_is_ignored_by_default(self):
        result = compute_schedule([TaskNode("A", 2, predecessors=("missing",)), TaskNode("B", 1, predecessors=("A",))])
        assert result.es == {"A": 0, "B": 2}
        assert result.project_duration == 3

    def test_unknown_predecessor_strict(self):
        with pytest.raises(UnknownPredecessor):
            compute_schedule([TaskNode("A", 2, predecessors=("missing",))], strict=True)


class TestEmptyInput:
    def test_empty_is_trivial_result(self):
        result = compute_schedule([])
        assert result == ScheduleResult()
        assert result.project_duration == 0
        assert result.es == {}
        assert result.critical == []


class TestProperties:
    @pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
    def test_float_and_project_duration(self, seed):
        nodes = random_dag(seed)
        result = compute_schedule(nodes)
        graph = build_graph(nodes)
        for task_id in graph.order:
            assert result.total_float[task_id] == result.ls[task_id] - result.es[task_id]
            assert result.total_float[task_id] >= -CRITICAL_FLOAT_TOLERANCE
        assert result.project_duration == max(result.ef[t] for t in graph.sinks())

    @pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
    def test_critical_set_contains_full_path(self, seed):
        nodes = random_dag(seed)
        result = compute_schedule(nodes)
        graph = build_graph(nodes)
        critical = set(result.critical)

        def reaches_sink(task_id):
            if not graph.outgoing[task_id]:
                return True
            return any(
                successor in critical
                and abs(result.es[successor] - result.ef[task_id]) < CRITICAL_FLOAT_TOLERANCE
                and reaches_sink(successor)
                for successor in graph.outgoing[task_id]
            )

        critical_sources = [t for t in graph.sources() if t in critical]
        assert critical_sources
        assert any(reaches_sink(t) for t in critical_sources)

    def test_identical_input_identical_output(self):
        nodes = random_dag(42)
        assert compute_schedule(nodes) == compute_schedule(list(nodes))

    def test_forward_pass_accepts_override_durations(self):
        graph = build_graph(chain())
        order = topological_order(graph)
        es, ef, total = forward_pass(graph, order, {"A": 1.0, "B": 1.0, "C": 1.0})
        assert es == {"A": 0, "B": 1, "C": 2}
        assert total == 3
        # The graph's own durations are untouched.
        assert forward_pass(graph, order)[2] == 6

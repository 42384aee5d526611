from concurrent.futures import ThreadPoolExecutor

import pytest

from worker_schedule_api.schedule_models import ComputeErr, ComputeOk, ScheduleRequest
from worker_schedule_internal.compute.worker_pool import ComputeWorkerPool

CHAIN = {
    "kind": "schedule",
    "nodes": [{"id": "A", "duration": 2}, {"id": "B", "duration": 3}],
    "edges": [{"from": "A", "to": "B"}],
}
CYCLE = {
    "kind": "schedule",
    "nodes": [{"id": "A"}, {"id": "B"}],
    "edges": [{"from": "A", "to": "B"}, {"from": "B", "to": "A"}],
}


def simulate_request(seed):
    return {
        "kind": "simulate",
        "iterations": 50,
        "seed": seed,
        "tasks": [{"id": "A", "baseDuration": 1, "distribution": "pert(1,2,6)"}],
    }


def test_map_keeps_submission_order():
    with ComputeWorkerPool(max_workers=3, executor_factory=ThreadPoolExecutor) as pool:
        results = pool.map([CHAIN, CYCLE, simulate_request(1)])
    assert isinstance(results[0], ComputeOk)
    assert results[0].result.project_duration == 5
    assert isinstance(results[1], ComputeErr)
    assert results[1].error.code == "cycle_detected"
    assert results[2].result.iterations == 50


def test_requests_are_isolated():
    with ComputeWorkerPool(max_workers=2, executor_factory=ThreadPoolExecutor) as pool:
        first, _, again = pool.map([simulate_request(5), simulate_request(6), simulate_request(5)])
    assert first == again


def test_accepts_model_instances():
    with ComputeWorkerPool(max_workers=1, executor_factory=ThreadPoolExecutor) as pool:
        future = pool.submit(ScheduleRequest.model_validate(CHAIN))
        assert future.result().result.critical == ["A", "B"]


def test_submit_after_shutdown():
    pool = ComputeWorkerPool(max_workers=1, executor_factory=ThreadPoolExecutor)
    pool.shutdown()
    pool.shutdown()
    with pytest.raises(RuntimeError):
        pool.submit(CHAIN)


def test_process_pool():
    with ComputeWorkerPool(max_workers=2) as pool:
        results = pool.map([CHAIN, simulate_request(3)])
    assert results[0].result.project_duration == 5
    assert results[1].result.iterations == 50

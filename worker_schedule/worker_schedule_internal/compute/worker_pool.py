"""
PURPOSE: Run compute requests off the caller's thread.

A fixed pool of worker processes pulls requests from the executor's queue.
Workers are stateless: every request is handled by `handle_request`, which
builds its graph, generator and caches from the request alone, so nothing
leaks from one request into the next even when a worker is reused.

There is no cancellation inside a running request. Abandoning a request means
dropping its future; shutting the pool down with cancel_futures=True discards
queued work that has not started.
"""
import logging
from concurrent.futures import Executor, Future, ProcessPoolExecutor
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from worker_schedule_api.schedule_models import ScheduleRequest, SimulateRequest
from worker_schedule_internal.compute.boundary import ComputeResultType, handle_request
from worker_schedule_internal.monte_carlo.config import COMPUTE_WORKERS

logger = logging.getLogger(__name__)

RequestType = Union[ScheduleRequest, SimulateRequest, Mapping[str, Any]]


class ComputeWorkerPool:
    """Pool of compute workers returning futures of ComputeOk | ComputeErr."""

    def __init__(
        self,
        max_workers: int = COMPUTE_WORKERS,
        executor_factory: Callable[..., Executor] = ProcessPoolExecutor,
    ):
        self.max_workers = max_workers
        self._executor: Optional[Executor] = executor_factory(max_workers=max_workers)
        logger.info("Started compute pool with %s workers (%s)", max_workers, executor_factory.__name__)

    def submit(self, request: RequestType) -> "Future[ComputeResultType]":
        if self._executor is None:
            raise RuntimeError("ComputeWorkerPool has been shut down")
        if isinstance(request, Mapping):
            request = dict(request)
        return self._executor.submit(handle_request, request)

    def map(self, requests: Iterable[RequestType]) -> List[ComputeResultType]:
        """Submit all requests, then wait for every result in submission order."""
        futures = [self.submit(request) for request in requests]
        return [future.result() for future in futures]

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        if self._executor is None:
            return
        self._executor.shutdown(wait=wait, cancel_futures=cancel_futures)
        self._executor = None
        logger.info("Compute pool shut down")

    def __enter__(self) -> "ComputeWorkerPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True, cancel_futures=exc_type is not None)

"""
PURPOSE: Core Monte Carlo engine for schedule risk.

Runs N independent iterations; each samples every task's duration and reruns
the CPM forward pass to get that iteration's project duration.

SINGLE RESPONSIBILITY:
- Compute the topological order once (edges don't change across iterations)
- Sample task durations per iteration from the explicit generator
- Collect per-iteration totals and per-task sampled durations
- Return raw samples (no formatting); StatisticsAggregator summarizes them

CONSTRAINTS:
- A cycle aborts before the first iteration; nothing partial is returned
- Malformed distributions never abort; the task uses its base duration
- No I/O; the only randomness is the generator passed in
"""
import logging
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from worker_schedule_internal.monte_carlo.config import NUM_RUNS, PARALLEL_CHUNKS, RANDOM_SEED
from worker_schedule_internal.monte_carlo.distributions import (
    DistributionSampler,
    RandomState,
    make_rng,
    parse_distribution,
)
from worker_schedule_internal.monte_carlo.outputs import SimulationOutput, StatisticsAggregator
from worker_schedule_internal.schedule.cpm import forward_pass
from worker_schedule_internal.schedule.graph import TaskNode, build_graph, topological_order

logger = logging.getLogger(__name__)


@dataclass
class SimulationRun:
    """Raw samples from a simulation.

    Attributes:
        totals: Project duration per iteration, shape (iterations,).
        task_durations: Sampled duration per task id, each shape (iterations,).
            Keys follow the caller's task order.
        order: Topological order shared by every iteration.
    """
    totals: np.ndarray
    task_durations: Dict[str, np.ndarray] = field(default_factory=dict)
    order: List[str] = field(default_factory=list)

    @property
    def iterations(self) -> int:
        return int(self.totals.size)

    @classmethod
    def concatenate(cls, runs: Sequence["SimulationRun"]) -> "SimulationRun":
        """Join chunk runs in the given order."""
        if not runs:
            raise ValueError("runs cannot be empty")
        task_ids = list(runs[0].task_durations)
        return cls(
            totals=np.concatenate([r.totals for r in runs]),
            task_durations={
                task_id: np.concatenate([r.task_durations[task_id] for r in runs]) for task_id in task_ids
            },
            order=list(runs[0].order),
        )


class MonteCarloSimulation:
    """
    Monte Carlo simulation engine for project schedules.

    Each iteration:
    - Samples every task's duration (base duration when there is no distribution)
    - Runs the CPM forward pass over the cached topological order
    - Records the project duration and each sampled duration
    """

    def __init__(self, num_runs: int = NUM_RUNS, random_state: RandomState = RANDOM_SEED, strict: bool = False):
        """
        Args:
            num_runs: Number of iterations (positive; callers should bound it).
            random_state: Seed, SeedSequence or Generator. None = OS entropy.
            strict: Fail on unknown predecessor ids instead of dropping them.
        """
        if num_runs < 1:
            raise ValueError(f"num_runs must be a positive integer, got {num_runs}")
        self.num_runs = num_runs
        self.rng = make_rng(random_state)
        self.strict = strict

    def run(self, tasks: Iterable[TaskNode]) -> SimulationRun:
        """
        Execute the simulation.

        Raises:
            CycleDetected: Before any iteration, if the tasks form a cycle.
            DuplicateTaskId: If two tasks share an id.
        """
        tasks = list(tasks)
        started = time.perf_counter()
        graph = build_graph(tasks, strict=self.strict)
        order = topological_order(graph)

        specs = {task.id: parse_distribution(task.distribution, task.id) for task in tasks}
        sampler = DistributionSampler(self.rng)

        totals = np.zeros(self.num_runs)
        samples = {task.id: np.zeros(self.num_runs) for task in tasks}

        for iteration in range(self.num_runs):
            durations = {
                task.id: sampler.sample_duration(task.base_duration, specs[task.id]) for task in tasks
            }
            _, _, total = forward_pass(graph, order, durations)
            totals[iteration] = total
            for task_id, duration in durations.items():
                samples[task_id][iteration] = duration

        logger.debug(
            "Simulated %s iterations over %s tasks (%s with distributions) in %.1f ms",
            self.num_runs,
            len(tasks),
            sum(1 for spec in specs.values() if spec is not None),
            (time.perf_counter() - started) * 1000.0,
        )
        return SimulationRun(totals=totals, task_durations=samples, order=order)

    def simulate(self, tasks: Iterable[TaskNode]) -> SimulationOutput:
        """Run and aggregate into percentiles, histogram and drivers."""
        run = self.run(tasks)
        output = StatisticsAggregator.aggregate(run.totals, run.task_durations)
        logger.info(
            "Monte Carlo complete: %s iterations, p50=%s, p80=%s",
            output.iterations,
            output.percentiles.get("p50"),
            output.percentiles.get("p80"),
        )
        return output


def split_iterations(iterations: int, chunks: int) -> List[int]:
    """Split iterations into at most `chunks` contiguous, near-equal, non-empty sizes."""
    chunks = max(1, min(chunks, iterations))
    base, extra = divmod(iterations, chunks)
    return [base + 1 if i < extra else base for i in range(chunks)]


def _run_chunk(tasks: List[TaskNode], iterations: int, seed_sequence: np.random.SeedSequence, strict: bool) -> SimulationRun:
    return MonteCarloSimulation(num_runs=iterations, random_state=seed_sequence, strict=strict).run(tasks)


def run_parallel(
    tasks: Iterable[TaskNode],
    iterations: int,
    seed: Optional[int] = RANDOM_SEED,
    chunks: int = PARALLEL_CHUNKS,
    max_workers: Optional[int] = None,
    strict: bool = False,
) -> SimulationRun:
    """
    Run iterations in chunks across processes.

    Chunk k draws from the k-th child of SeedSequence(seed), and chunks are
    joined in chunk order, so the same (seed, chunks) pair reproduces the same
    samples however the pool schedules the work. Results differ from a
    sequential run with the same seed.
    """
    tasks = list(tasks)
    if iterations < 1:
        raise ValueError(f"iterations must be a positive integer, got {iterations}")

    # Fail fast on structural errors before any process is started.
    topological_order(build_graph(tasks, strict=strict))

    sizes = split_iterations(iterations, chunks)
    seed_sequences = np.random.SeedSequence(seed).spawn(len(sizes))
    logger.debug("Running %s iterations in %s chunks", iterations, len(sizes))

    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(_run_chunk, tasks, size, seed_sequence, strict)
            for size, seed_sequence in zip(sizes, seed_sequences)
        ]
        runs = [future.result() for future in futures]
    return SimulationRun.concatenate(runs)

"""
PURPOSE: Rank the tasks that drive total project duration.

For each task, the Pearson correlation between its sampled durations and the
simulated project totals across iterations. Drivers are the tasks with the
largest |correlation|, highest first.

SRP/DRY: Single responsibility = sensitivity analysis only.
         No result formatting, no simulation.
"""
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

import numpy as np

from worker_schedule_internal.monte_carlo.config import TOP_N_DRIVERS


@dataclass
class SensitivityDriver:
    """A task and how strongly its duration moves the project total.

    Attributes:
        id (str): Task id.
        correlation (float): Pearson correlation with the total, in [-1, 1].
        rank (int): Rank order (1 = strongest driver).
    """
    id: str
    correlation: float
    rank: int

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "correlation": self.correlation}


def pearson_correlation(a, b) -> float:
    """
    Pearson correlation of two equal-length samples.

    The denominator falls back to 1 when either sample has zero variance,
    which makes a constant-duration task score 0 instead of NaN.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape:
        raise ValueError(f"samples must have the same length, got {a.shape} and {b.shape}")
    if a.size == 0:
        return 0.0
    da = a - a.mean()
    db = b - b.mean()
    numerator = float(np.dot(da, db))
    denominator = float(np.dot(da, da)) * float(np.dot(db, db))
    if denominator == 0.0:
        denominator = 1.0
    return numerator / math.sqrt(denominator)


class SensitivityAnalyzer:
    """Correlation-ranked driver analysis over one simulation's samples."""

    def __init__(self, top_n: int = TOP_N_DRIVERS):
        self.top_n = top_n

    def analyze(self, task_durations: Mapping[str, np.ndarray], totals: np.ndarray) -> List[SensitivityDriver]:
        """
        Args:
            task_durations: Per-task sampled durations, one entry per iteration.
                Iteration order of the mapping breaks ties.
            totals: Project duration per iteration.

        Returns:
            Up to top_n drivers sorted by |correlation| descending.
        """
        scored = [(task_id, pearson_correlation(samples, totals)) for task_id, samples in task_durations.items()]
        # sorted() is stable, so equal scores keep task order.
        scored = sorted(scored, key=lambda item: abs(item[1]), reverse=True)
        return [
            SensitivityDriver(id=task_id, correlation=correlation, rank=rank)
            for rank, (task_id, correlation) in enumerate(scored[: self.top_n], 1)
        ]

"""
PURPOSE: Turn raw Monte Carlo totals into the simulation output.

This module computes nearest-rank percentiles, a fixed-bucket histogram of
project totals, and attaches the sensitivity drivers.

SRP/DRY: Single responsibility = statistical aggregation and output shape.
         No sampling, no scheduling.
"""
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence

import numpy as np

from worker_schedule_internal.monte_carlo.config import HISTOGRAM_BUCKETS, PERCENTILES, TOP_N_DRIVERS
from worker_schedule_internal.monte_carlo.sensitivity import SensitivityAnalyzer, SensitivityDriver


@dataclass
class HistogramBucket:
    bucket: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"bucket": self.bucket, "count": self.count}


@dataclass
class SimulationOutput:
    """Structured output of one simulation.

    Attributes:
        histogram (list): HISTOGRAM_BUCKETS buckets over [min, max] of totals.
        percentiles (dict): {"p50": float, "p80": float}.
        drivers (list): Up to TOP_N_DRIVERS SensitivityDriver objects.
        iterations (int): Number of iterations aggregated.
        mean (float): Mean project total.
        std_dev (float): Population standard deviation of project totals.
    """
    histogram: List[HistogramBucket]
    percentiles: Dict[str, float]
    drivers: List[SensitivityDriver]
    iterations: int
    mean: float = 0.0
    std_dev: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON response shape."""
        return {
            "histogram": [b.to_dict() for b in self.histogram],
            "percentiles": dict(self.percentiles),
            "drivers": [d.to_dict() for d in self.drivers],
            "iterations": self.iterations,
            "mean": self.mean,
            "stdDev": self.std_dev,
        }


def percentile_label(p: float) -> str:
    return f"p{int(round(p * 100))}"


class StatisticsAggregator:
    """
    Aggregates iteration totals and per-task samples.

    Percentiles are nearest-rank without interpolation: sorted[floor(p * (n - 1))].
    """

    @staticmethod
    def percentile(values: Sequence[float], p: float) -> float:
        """
        Nearest-rank percentile.

        Args:
            values: Iteration totals, any order.
            p: Fraction in [0, 1].

        Returns:
            The selected total, or 0.0 when there are no values.

        Raises:
            ValueError: If p is outside [0, 1].
        """
        if not 0.0 <= p <= 1.0:
            raise ValueError(f"p must be in [0, 1], got {p}")
        ordered = np.sort(np.asarray(values, dtype=float))
        if ordered.size == 0:
            return 0.0
        return float(ordered[int(math.floor(p * (ordered.size - 1)))])

    @staticmethod
    def histogram(values: Sequence[float], buckets: int = HISTOGRAM_BUCKETS) -> List[HistogramBucket]:
        """
        Fixed-count histogram over [min, max].

        width = (max - min) / buckets, or 1 when every value is equal. The last
        bucket is closed so max lands in it; counts always sum to len(values).
        """
        data = np.asarray(values, dtype=float)
        if data.size == 0:
            return []
        lo = float(data.min())
        hi = float(data.max())
        width = (hi - lo) / buckets
        if width == 0.0:
            width = 1.0
        index = np.minimum(buckets - 1, np.floor((data - lo) / width).astype(int))
        counts = np.bincount(index, minlength=buckets)
        return [HistogramBucket(bucket=lo + i * width, count=int(counts[i])) for i in range(buckets)]

    @staticmethod
    def aggregate(
        totals: Sequence[float],
        task_durations: Mapping[str, np.ndarray],
        percentiles: Sequence[float] = PERCENTILES,
        buckets: int = HISTOGRAM_BUCKETS,
        top_n: int = TOP_N_DRIVERS,
    ) -> SimulationOutput:
        """Build a SimulationOutput from one simulation's raw samples."""
        data = np.asarray(totals, dtype=float)
        drivers = SensitivityAnalyzer(top_n=top_n).analyze(task_durations, data) if data.size else []
        return SimulationOutput(
            histogram=StatisticsAggregator.histogram(data, buckets),
            percentiles={percentile_label(p): StatisticsAggregator.percentile(data, p) for p in percentiles},
            drivers=drivers,
            iterations=int(data.size),
            mean=float(data.mean()) if data.size else 0.0,
            std_dev=float(data.std()) if data.size else 0.0,
        )

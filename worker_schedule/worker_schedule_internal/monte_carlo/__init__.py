"""
Monte Carlo simulation module for schedule risk estimation.

PURPOSE:
    Estimate how long a project will take when task durations are uncertain,
    by re-running the CPM forward pass over many sampled scenarios.

RESPONSIBILITIES:
    - Parse and sample duration distributions (triangular, PERT)
    - Run N iterations over a fixed topological order
    - Aggregate totals into percentiles and a histogram
    - Rank tasks by correlation with the project total

SRP/DRY CHECK:
    Each submodule has a single responsibility:
    - config.py: Hyperparameters and environment overrides only
    - distributions.py: Parsing and sampling only
    - simulation.py: Iteration loop and chunked parallel runs only
    - outputs.py: Percentiles, histogram and output shape only
    - sensitivity.py: Driver ranking only
"""

from .distributions import DistributionSampler, DistributionSpec, make_rng, parse_distribution
from .outputs import HistogramBucket, SimulationOutput, StatisticsAggregator
from .sensitivity import SensitivityAnalyzer, SensitivityDriver, pearson_correlation
from .simulation import MonteCarloSimulation, SimulationRun, run_parallel

__all__ = [
    "DistributionSampler",
    "DistributionSpec",
    "make_rng",
    "parse_distribution",
    "HistogramBucket",
    "SimulationOutput",
    "StatisticsAggregator",
    "SensitivityAnalyzer",
    "SensitivityDriver",
    "pearson_correlation",
    "MonteCarloSimulation",
    "SimulationRun",
    "run_parallel",
]

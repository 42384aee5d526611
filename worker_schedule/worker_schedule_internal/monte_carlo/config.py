"""
PURPOSE: Simulation configuration for the Monte Carlo schedule engine.

RESPONSIBILITIES:
- Define simulation hyperparameters (default run count, bound, random seed)
- Output shape parameters (histogram buckets, percentiles, driver count)
- Environment overrides (SCHEDULE_ENGINE_*), falling back to defaults on bad values
- Single responsibility: configuration only, no simulation logic
"""
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


def _env_int(name: str, default: Optional[int], minimum: int = 0) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid %s=%r; defaulting to %s.", name, raw, default)
        return default
    if value < minimum:
        logger.warning("%s=%s is below %s; defaulting to %s.", name, value, minimum, default)
        return default
    return value


# Simulation Parameters
NUM_RUNS = _env_int("SCHEDULE_ENGINE_NUM_RUNS", 500, minimum=1)  # Used when a caller omits iterations
MAX_ITERATIONS = _env_int("SCHEDULE_ENGINE_MAX_ITERATIONS", 1_000_000, minimum=1)  # Enforced at the compute boundary
RANDOM_SEED = _env_int("SCHEDULE_ENGINE_RANDOM_SEED", None)  # Set to int for reproducibility, None for random

# Distribution shape
PERT_SHAPE = 4.0  # alpha = 1 + PERT_SHAPE * (m - a) / (b - a)

# Output Configuration
HISTOGRAM_BUCKETS = 10
PERCENTILES = (0.5, 0.8)  # p50, p80
TOP_N_DRIVERS = 5

# Compute pool
COMPUTE_WORKERS = _env_int("SCHEDULE_ENGINE_WORKERS", 2, minimum=1)
PARALLEL_CHUNKS = 4  # Default chunk count for run_parallel

# Logging (applied by the CLI entry point only)
LOG_LEVEL = os.environ.get("SCHEDULE_ENGINE_LOG_LEVEL", "INFO").upper()


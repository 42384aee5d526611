"""
PURPOSE: Parse duration distribution text and draw samples from it.

RESPONSIBILITIES:
- Parse "triangular(a,m,b)" / "pert(a,m,b)" (case-insensitive) into a DistributionSpec
- Sample triangular durations by inverse CDF
- Sample PERT durations as a Beta(alpha, beta) scaled into [a, b]
- Gamma (Marsaglia-Tsang, boosted for shape < 1) and Box-Muller normal draws
- Single responsibility: only parsing and sampling, no I/O or aggregation

Every draw comes from an explicit numpy Generator handed to DistributionSampler.
Nothing here touches global random state, so a fixed seed gives a fixed sequence.
"""
import logging
import math
import re
from dataclasses import dataclass
from typing import Literal, Optional, Union

import numpy as np

from worker_schedule_internal.monte_carlo.config import PERT_SHAPE
from worker_schedule_internal.schedule.errors import MalformedDistribution

logger = logging.getLogger(__name__)

_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"
_SPEC_PATTERN = re.compile(
    rf"^(triangular|pert)\(\s*({_NUMBER})\s*,\s*({_NUMBER})\s*,\s*({_NUMBER})\s*\)$",
    re.IGNORECASE,
)

RandomState = Union[int, np.random.SeedSequence, np.random.Generator, None]


def make_rng(random_state: RandomState = None) -> np.random.Generator:
    """
    Build the generator every sampler draws from.

    None picks OS entropy; only the outermost caller should pass None.
    An existing Generator is returned as-is so callers can share a stream.
    """
    if isinstance(random_state, np.random.Generator):
        return random_state
    return np.random.default_rng(random_state)


@dataclass(frozen=True)
class DistributionSpec:
    """Parsed three-point estimate: a <= m <= b."""
    kind: Literal["triangular", "pert"]
    a: float
    m: float
    b: float

    @classmethod
    def parse(cls, text: str) -> "DistributionSpec":
        """
        Strict parse.

        Raises:
            MalformedDistribution: Text does not match the grammar, a number is
                not finite, a is negative, or the points are not ordered a <= m <= b.
        """
        match = _SPEC_PATTERN.match(text.strip())
        if not match:
            raise MalformedDistribution(text, "expected triangular(a,m,b) or pert(a,m,b)")
        kind, a, m, b = match.group(1).lower(), float(match.group(2)), float(match.group(3)), float(match.group(4))
        if not all(math.isfinite(v) for v in (a, m, b)):
            raise MalformedDistribution(text, "values must be finite")
        if a < 0:
            raise MalformedDistribution(text, f"min {a} is negative; durations must be >= 0")
        if a > b:
            raise MalformedDistribution(text, f"min {a} is greater than max {b}")
        if not a <= m <= b:
            raise MalformedDistribution(text, f"mode {m} is outside [{a}, {b}]")
        return cls(kind=kind, a=a, m=m, b=b)

    @property
    def mean(self) -> float:
        """Expected value of the distribution actually sampled."""
        if self.kind == "triangular":
            return (self.a + self.m + self.b) / 3.0
        if self.b == self.a:
            return self.a
        alpha, beta = pert_shape_parameters(self.a, self.m, self.b)
        return self.a + (self.b - self.a) * alpha / (alpha + beta)


def parse_distribution(text: Optional[str], task_id: Optional[str] = None) -> Optional[DistributionSpec]:
    """
    Lenient parse used by the simulator.

    Missing text gives None silently; malformed text gives None and a warning,
    so the task falls back to its base duration.
    """
    if text is None or not text.strip():
        return None
    try:
        return DistributionSpec.parse(text)
    except MalformedDistribution as e:
        logger.warning("Task %r: %s; using base duration", task_id, e)
        return None


def pert_shape_parameters(a: float, m: float, b: float, shape: float = PERT_SHAPE):
    """Beta shape parameters for PERT(a, m, b)."""
    span = b - a
    alpha = 1.0 + shape * (m - a) / span
    beta = 1.0 + shape * (b - m) / span
    return alpha, beta


class DistributionSampler:
    """
    Draws durations from DistributionSpecs using one explicit generator.

    All non-uniform draws are built from `uniform()` so the sequence is fully
    determined by the generator's seed.
    """

    def __init__(self, rng: np.random.Generator):
        self.rng = rng

    def uniform(self) -> float:
        """Uniform draw in [0, 1)."""
        return float(self.rng.random())

    def uniform_positive(self) -> float:
        """Uniform draw in (0, 1]; safe to take the log of."""
        return 1.0 - float(self.rng.random())

    def standard_normal(self) -> float:
        """Box-Muller transform from two independent uniforms in (0, 1]."""
        u = self.uniform_positive()
        v = self.uniform_positive()
        return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)

    def gamma(self, k: float) -> float:
        """
        Gamma(k, 1) draw.

        k >= 1: Marsaglia-Tsang squeeze method.
        k < 1: draw Gamma(k + 1) and scale by U ** (1 / k).
        """
        if k <= 0:
            raise ValueError(f"gamma shape must be positive, got {k}")
        if k < 1.0:
            return self.gamma(k + 1.0) * self.uniform_positive() ** (1.0 / k)

        d = k - 1.0 / 3.0
        c = 1.0 / math.sqrt(9.0 * d)
        while True:
            x = self.standard_normal()
            v = 1.0 + c * x
            if v <= 0.0:
                continue
            v = v * v * v
            u = self.uniform_positive()
            x2 = x * x
            if u < 1.0 - 0.0331 * x2 * x2:
                return d * v
            if math.log(u) < 0.5 * x2 + d * (1.0 - v + math.log(v)):
                return d * v

    def beta(self, alpha: float, beta: float) -> float:
        """Beta(alpha, beta) as G1 / (G1 + G2)."""
        g1 = self.gamma(alpha)
        g2 = self.gamma(beta)
        return g1 / (g1 + g2)

    def triangular(self, a: float, m: float, b: float) -> float:
        """Inverse-CDF triangular draw on [a, b] with mode m."""
        if b == a:
            return a
        u = self.uniform()
        span = b - a
        c = (m - a) / span
        if u < c:
            return a + math.sqrt(u * span * (m - a))
        return b - math.sqrt((1.0 - u) * span * (b - m))

    def pert(self, a: float, m: float, b: float) -> float:
        """PERT draw: Beta(alpha, beta) scaled into [a, b]."""
        if b == a:
            return a
        alpha, beta = pert_shape_parameters(a, m, b)
        return a + self.beta(alpha, beta) * (b - a)

    def sample(self, spec: DistributionSpec) -> float:
        if spec.kind == "triangular":
            return self.triangular(spec.a, spec.m, spec.b)
        return self.pert(spec.a, spec.m, spec.b)

    def sample_duration(self, base_duration: float, spec: Optional[DistributionSpec]) -> float:
        """A task's duration for one iteration; base_duration when there is no usable spec."""
        if spec is None:
            return base_duration
        return self.sample(spec)


# Module-level convenience functions for direct import
def sample_triangular(min_val, likely_val, max_val, size=1, random_state: RandomState = None) -> np.ndarray:
    """Draw `size` triangular samples into a numpy array."""
    sampler = DistributionSampler(make_rng(random_state))
    return np.array([sampler.triangular(min_val, likely_val, max_val) for _ in range(size)])


def sample_pert(min_val, likely_val, max_val, size=1, random_state: RandomState = None) -> np.ndarray:
    """Draw `size` PERT samples into a numpy array."""
    sampler = DistributionSampler(make_rng(random_state))
    return np.array([sampler.pert(min_val, likely_val, max_val) for _ in range(size)])


def sample_gamma(shape, size=1, random_state: RandomState = None) -> np.ndarray:
    """Draw `size` Gamma(shape, 1) samples into a numpy array."""
    sampler = DistributionSampler(make_rng(random_state))
    return np.array([sampler.gamma(shape) for _ in range(size)])

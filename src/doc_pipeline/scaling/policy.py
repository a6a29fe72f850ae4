"""Step scaling policy for the worker pool."""

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

from core.errors import ConfigurationError


@dataclass(frozen=True)
class ScalingStep:
    """
    Capacity change applied while queue depth lies within [lower, upper].

    Either bound may be None (unbounded). Both bounds are inclusive.
    """

    change: int
    lower: Optional[float] = None
    upper: Optional[float] = None

    def __post_init__(self) -> None:
        if self.lower is None and self.upper is None:
            raise ConfigurationError("A scaling step needs a lower or an upper bound")
        if self.lower is not None and self.upper is not None and self.lower > self.upper:
            raise ConfigurationError(
                f"Scaling step lower bound {self.lower} exceeds upper bound {self.upper}"
            )

    def matches(self, depth: float) -> bool:
        if self.lower is not None and depth < self.lower:
            return False
        if self.upper is not None and depth > self.upper:
            return False
        return True


# Queue-processing service defaults: shrink on an empty queue, grow with backlog
DEFAULT_STEPS: Tuple[ScalingStep, ...] = (
    ScalingStep(change=-1, upper=0),
    ScalingStep(change=+1, lower=100),
    ScalingStep(change=+5, lower=500),
)


@dataclass
class ScalingPolicy:
    """
    Bounds and steps for queue-depth driven scaling.

    When several steps match a depth, the one with the largest absolute
    change wins. A step must match evaluation_periods consecutive samples
    before it is applied.
    """

    min_capacity: int = 1
    max_capacity: int = 2
    steps: List[ScalingStep] = field(default_factory=lambda: list(DEFAULT_STEPS))
    evaluation_periods: int = 1

    def __post_init__(self) -> None:
        if self.min_capacity < 0:
            raise ConfigurationError(
                f"min_capacity must be non-negative, got {self.min_capacity}"
            )
        if self.max_capacity < self.min_capacity:
            raise ConfigurationError(
                f"max_capacity ({self.max_capacity}) must be >= "
                f"min_capacity ({self.min_capacity})"
            )
        if self.evaluation_periods < 1:
            raise ConfigurationError("evaluation_periods must be at least 1")

    def clamp(self, capacity: int) -> int:
        return max(self.min_capacity, min(self.max_capacity, capacity))

    def step_for(self, depth: float) -> Optional[ScalingStep]:
        """Return the step that applies at this depth, or None."""
        matching = [step for step in self.steps if step.matches(depth)]
        if not matching:
            return None
        return max(matching, key=lambda step: abs(step.change))

    def desired_capacity(self, current: int, depth: Optional[float]) -> int:
        """
        Desired capacity for one sample, ignoring evaluation_periods.

        A missing sample keeps the current capacity. The result is always
        within [min_capacity, max_capacity].
        """
        if depth is None:
            return self.clamp(current)
        step = self.step_for(depth)
        if step is None:
            return self.clamp(current)
        return self.clamp(current + step.change)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ScalingPolicy":
        """
        Load bounds from environment variables.

        Optional environment variables (with defaults):
            MIN_CAPACITY: 1
            MAX_CAPACITY: 2
            SCALING_EVALUATION_PERIODS: 1
        """
        env = os.environ if env is None else env
        try:
            return cls(
                min_capacity=int(env.get("MIN_CAPACITY", "1")),
                max_capacity=int(env.get("MAX_CAPACITY", "2")),
                evaluation_periods=int(env.get("SCALING_EVALUATION_PERIODS", "1")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid scaling configuration: {e}") from e

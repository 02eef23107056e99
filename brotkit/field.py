"""Iteration results for a frame and the policy carried between frames."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional

import numpy as np

from .errors import ConfigurationError
from .space import SpaceSpec


class IterationRecord(NamedTuple):
    iterations: int
    escape_speed: Optional[float]


@dataclass(frozen=True)
class IterationField:
    """Escape data for every sample of a frame plus its aggregate statistics.

    ``iterations`` and ``escape_speeds`` have shape ``(y_res, x_res)``. An
    iteration count of 0 marks a point that never escaped. ``escape_speeds``
    is only present for continuous renders.
    """

    space: SpaceSpec
    bound: int
    max_iterations: int
    iterations: np.ndarray
    escape_speeds: Optional[np.ndarray]
    min_iteration: int
    max_iteration: int
    count_in_set: int
    calculation_time: float = 0.0

    @property
    def continuous(self) -> bool:
        return self.escape_speeds is not None

    @property
    def escaped_count(self) -> int:
        return int(self.iterations.size - self.count_in_set)

    def record(self, x: int, y: int) -> IterationRecord:
        """Return the record stored for column ``x`` and row ``y``."""

        speed = None if self.escape_speeds is None else float(self.escape_speeds[y, x])
        return IterationRecord(int(self.iterations[y, x]), speed)


def derive_statistics(
    space: SpaceSpec,
    iterations: np.ndarray,
    escape_speeds: Optional[np.ndarray],
    *,
    bound: int,
    max_iterations: int,
    calculation_time: float = 0.0,
) -> IterationField:
    """Freeze a completed grid into an :class:`IterationField`."""

    shape = (space.y_res, space.x_res)
    iterations = np.asarray(iterations)
    if iterations.shape != shape:
        raise ConfigurationError(f"iteration grid has shape {iterations.shape}, expected {shape}")
    if escape_speeds is not None:
        escape_speeds = np.asarray(escape_speeds, dtype=np.float64)
        if escape_speeds.shape != shape:
            raise ConfigurationError(f"escape speed grid has shape {escape_speeds.shape}, expected {shape}")
        escape_speeds = escape_speeds.copy()
        escape_speeds.setflags(write=False)

    iterations = iterations.copy()
    iterations.setflags(write=False)

    escaped = iterations[iterations != 0]
    if escaped.size:
        min_iteration = int(escaped.min())
        max_iteration = int(escaped.max())
    else:
        min_iteration = max_iteration = 0

    return IterationField(
        space=space,
        bound=int(bound),
        max_iterations=int(max_iterations),
        iterations=iterations,
        escape_speeds=escape_speeds,
        min_iteration=min_iteration,
        max_iteration=max_iteration,
        count_in_set=int(iterations.size - escaped.size),
        calculation_time=float(calculation_time),
    )


@dataclass(frozen=True)
class IterationPolicy:
    """Iteration cap and escape bound chosen for each frame of a sequence."""

    initial_iterations: int = 200
    growth_factor: int = 200
    discrete_bound: int = 2
    continuous_bound: int = 2000

    def __post_init__(self) -> None:
        for name in ("initial_iterations", "growth_factor", "discrete_bound", "continuous_bound"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")

    def bound_for(self, continuous: bool) -> int:
        return self.continuous_bound if continuous else self.discrete_bound

    def next_max_iterations(self, previous: Optional[IterationField]) -> int:
        """Iteration cap for the frame following ``previous``."""

        if previous is None:
            return self.initial_iterations
        if previous.min_iteration == 0:
            # nothing escaped, so there is no minimum to scale from
            return previous.max_iterations
        return previous.min_iteration * self.growth_factor

"""Escape-time computation for a grid of complex sample points."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Optional

import numpy as np
import tensorflow as tf

from .errors import ConfigurationError
from .field import IterationField, IterationPolicy, derive_statistics
from .space import SpaceSpec, sample_space

_INT32_MAX = np.iinfo(np.int32).max


@tf.function(reduce_retracing=True)
def _escape_step(
    i: tf.Tensor, zs: tf.Tensor, cs: tf.Tensor, ns: tf.Tensor, active: tf.Tensor, bound: tf.Tensor
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor]:
    """Record the points whose magnitude exceeds ``bound`` at iteration ``i`` and advance the rest."""

    escaped = tf.logical_and(active, tf.abs(zs) > bound)
    ns = tf.where(escaped, i, ns)
    active = tf.logical_and(active, tf.logical_not(escaped))
    zs = tf.where(active, zs * zs + cs, zs)
    return zs, ns, active


@tf.function(reduce_retracing=True)
def _escape_run(cs: tf.Tensor, bound: tf.Tensor, max_iterations: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor]:
    """Iterate ``z <- z**2 + c`` from ``z = 0`` using a TensorFlow while loop.

    Escaped points keep the value they had when they crossed the bound, and
    points that never escape are left with an iteration count of 0.
    """

    i = tf.constant(0, dtype=tf.int32)
    zs = tf.zeros_like(cs)
    ns = tf.zeros(tf.shape(cs), dtype=tf.int32)
    active = tf.ones(tf.shape(cs), dtype=tf.bool)

    def cond(i: tf.Tensor, zs: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tf.Tensor:
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i: tf.Tensor, zs: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
        zs, ns, active = _escape_step(i, zs, cs, ns, active, bound)
        return i + 1, zs, ns, active

    _, zs, ns, _ = tf.while_loop(cond, body, (i, zs, ns, active))
    return zs, ns


@tf.function(reduce_retracing=True)
def _smooth_escape(zs: tf.Tensor, ns: tf.Tensor, bound: tf.Tensor) -> tf.Tensor:
    """Refine escape counts into escape speeds in ``[n, n + 1)``; 0 inside the set."""

    escaped = ns > 0
    ns_float = tf.cast(ns, tf.float64)
    az = tf.where(escaped, tf.abs(zs), bound * bound)
    log2 = tf.math.log(tf.constant(2.0, dtype=tf.float64))
    nu = tf.math.log(tf.math.log(az) / tf.math.log(bound)) / log2
    speed = ns_float + tf.constant(1.0, dtype=tf.float64) - nu
    upper = tf.math.nextafter(ns_float + tf.constant(1.0, dtype=tf.float64), ns_float)
    speed = tf.clip_by_value(speed, ns_float, upper)
    return tf.where(escaped, speed, tf.zeros_like(speed))


def _run_band(
    points: np.ndarray,
    *,
    bound: int,
    max_iterations: int,
    continuous: bool,
    device: Optional[str],
) -> tuple[np.ndarray, Optional[np.ndarray]]:
    with tf.device(device if device is not None else "/CPU:0"):
        cs = tf.convert_to_tensor(points, dtype=tf.complex128)
        bound_tf = tf.constant(bound, dtype=tf.float64)
        zs, ns = _escape_run(cs, bound_tf, tf.constant(max_iterations, dtype=tf.int32))
        speeds = _smooth_escape(zs, ns, bound_tf) if continuous else None
    return ns.numpy(), None if speeds is None else speeds.numpy()


def _split_rows(points: np.ndarray, rows_per_chunk: Optional[int]) -> list[np.ndarray]:
    if rows_per_chunk is None or rows_per_chunk >= points.shape[0]:
        return [points]
    return [points[start:start + rows_per_chunk] for start in range(0, points.shape[0], rows_per_chunk)]


def validate_limits(bound: int, max_iterations: int, continuous: bool) -> None:
    """Reject escape bounds and iteration caps the engine cannot work with."""

    if bound <= 0:
        raise ConfigurationError(f"bound must be positive, got {bound}")
    if continuous and bound < 2:
        raise ConfigurationError(f"continuous mode needs a bound of at least 2, got {bound}")
    if max_iterations <= 0:
        raise ConfigurationError(f"max_iterations must be positive, got {max_iterations}")
    if max_iterations > _INT32_MAX:
        raise ConfigurationError(f"max_iterations must fit in 32 bits, got {max_iterations}")


def generate(
    space: SpaceSpec,
    continuous: bool,
    bound: int,
    max_iterations: int,
    *,
    rows_per_chunk: Optional[int] = None,
    workers: int = 1,
    device: Optional[str] = None,
) -> IterationField:
    """Compute the iteration field of ``space``.

    The grid is split into bands of ``rows_per_chunk`` rows that are computed
    independently, on up to ``workers`` threads, and joined before the
    statistics are derived.
    """

    validate_limits(bound, max_iterations, continuous)
    if rows_per_chunk is not None and rows_per_chunk <= 0:
        raise ConfigurationError(f"rows_per_chunk must be positive, got {rows_per_chunk}")
    if workers <= 0:
        raise ConfigurationError(f"workers must be positive, got {workers}")

    start = time.perf_counter()
    bands = _split_rows(sample_space(space), rows_per_chunk)
    run = partial(
        _run_band,
        bound=int(bound),
        max_iterations=int(max_iterations),
        continuous=bool(continuous),
        device=device,
    )
    if workers > 1 and len(bands) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(run, bands))
    else:
        results = [run(band) for band in bands]

    iterations = np.concatenate([ns for ns, _ in results], axis=0)
    speeds = np.concatenate([speed for _, speed in results], axis=0) if continuous else None
    return derive_statistics(
        space,
        iterations,
        speeds,
        bound=bound,
        max_iterations=max_iterations,
        calculation_time=time.perf_counter() - start,
    )


def default_device() -> str:
    """Return the first GPU when one is usable, otherwise the CPU."""

    gpus = tf.config.list_physical_devices("GPU")
    if not gpus:
        return "/CPU:0"
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
    except RuntimeError:
        return "/CPU:0"
    return "/GPU:0"


class IterationEngine:
    """Compute successive frames, scaling the iteration cap from the previous one.

    Frames must be calculated one at a time; the previous field is replaced
    only after a frame has completed.
    """

    def __init__(
        self,
        policy: Optional[IterationPolicy] = None,
        *,
        rows_per_chunk: Optional[int] = None,
        workers: int = 1,
        device: Optional[str] = None,
    ) -> None:
        self.policy = policy if policy is not None else IterationPolicy()
        self.rows_per_chunk = rows_per_chunk
        self.workers = workers
        self.device = device
        self._previous: Optional[IterationField] = None

    @property
    def previous(self) -> Optional[IterationField]:
        return self._previous

    def next_max_iterations(self) -> int:
        return self.policy.next_max_iterations(self._previous)

    def calculate(self, space: SpaceSpec, continuous: bool) -> IterationField:
        field = generate(
            space,
            continuous,
            self.policy.bound_for(continuous),
            self.next_max_iterations(),
            rows_per_chunk=self.rows_per_chunk,
            workers=self.workers,
            device=self.device,
        )
        self._previous = field
        return field

    def reset(self) -> None:
        self._previous = None

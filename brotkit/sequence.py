"""Zoom sequences: repeated renders around a fixed center at a shrinking scale."""

from __future__ import annotations

import math
from typing import Callable, Generic, Iterator, TypeVar

import numpy as np

from .errors import ConfigurationError, SequenceExhaustedError
from .space import SpaceSpec

ImageT = TypeVar("ImageT")


def apply_zoom(space: SpaceSpec, zoom_factor: float) -> SpaceSpec:
    """Shrink the sampled region of ``space`` by ``zoom_factor`` around its center."""

    return space.with_scale(float(np.float64(space.scale) * np.float64(zoom_factor)))


def count_frames(starting_scale: float, zoom_factor: float, terminal_scale: float) -> int:
    """Number of frames a sequence renders before its scale reaches ``terminal_scale``."""

    _validate(zoom_factor, terminal_scale)
    frames = 0
    scale = float(starting_scale)
    while scale > terminal_scale:
        frames += 1
        scale = float(np.float64(scale) * np.float64(zoom_factor))
    return frames


def _validate(zoom_factor: float, terminal_scale: float) -> None:
    if not 0.0 < zoom_factor < 1.0:
        raise ConfigurationError(f"zoom_factor must lie in (0, 1), got {zoom_factor}")
    if not terminal_scale > 0.0 or math.isinf(terminal_scale):
        raise ConfigurationError(f"terminal_scale must be a positive number, got {terminal_scale}")


class SequenceDriver(Generic[ImageT]):
    """Render the same center at geometrically shrinking scales.

    ``render_fn`` is called once per frame with the frame's ``SpaceSpec``.
    """

    def __init__(
        self,
        initial_space: SpaceSpec,
        zoom_factor: float,
        terminal_scale: float,
        render_fn: Callable[[SpaceSpec], ImageT],
    ) -> None:
        _validate(zoom_factor, terminal_scale)
        self.zoom_factor = float(zoom_factor)
        self.terminal_scale = float(terminal_scale)
        self._render_fn = render_fn
        self._space = initial_space

    @property
    def current_space(self) -> SpaceSpec:
        return self._space

    @property
    def current_scale(self) -> float:
        return self._space.scale

    def has_next(self) -> bool:
        return self._space.scale > self.terminal_scale

    def next(self) -> ImageT:
        if not self.has_next():
            raise SequenceExhaustedError(
                f"scale {self._space.scale} has reached the terminal scale {self.terminal_scale}"
            )
        image = self._render_fn(self._space)
        self._space = apply_zoom(self._space, self.zoom_factor)
        return image

    def __iter__(self) -> Iterator[ImageT]:
        while self.has_next():
            yield self.next()

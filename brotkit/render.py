"""Frame pipeline: iteration engine followed by a color kernel."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
import PIL.Image

from .engine import IterationEngine
from .field import IterationField
from .kernels import DEFAULT_DITHER_RATIO, DEFAULT_SKEW, Strategy, check_unit_interval, make_kernel, parse_strategy
from .palette import Palette
from .space import SpaceSpec


@dataclass(frozen=True)
class Frame:
    """A colored frame together with the iteration data it was made from."""

    pixels: np.ndarray
    field: IterationField
    coloring_time: float

    def summary(self) -> str:
        space = self.field.space
        return "\n".join(
            [
                f"This image is: {space.x_res} by {space.y_res} pixels.",
                f"Its scale is: {space.scale:.6g} by {space.vertical_extent:.6g}.",
                f"The maximum and minimum iterations are: {self.field.max_iteration} and {self.field.min_iteration}.",
                f"The iteration cap was: {self.field.max_iterations}.",
                f"The number of black pixels is: {self.field.count_in_set}.",
                f"Calculating took this long: {self.field.calculation_time:.3f}s.",
                f"Coloring took this long: {self.coloring_time:.3f}s.",
            ]
        )


def to_image(pixels: np.ndarray) -> PIL.Image.Image:
    """Wrap an ``(y_res, x_res, 3)`` uint8 grid in a Pillow image."""

    return PIL.Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))


class FrameRenderer:
    """Callable turning a ``SpaceSpec`` into a :class:`Frame`.

    Successive calls share one :class:`IterationEngine`, so the iteration cap
    of each frame follows from the frame before it.
    """

    def __init__(
        self,
        palette: Palette,
        strategy: Union[Strategy, str] = Strategy.CONTINUOUS,
        *,
        skew: float = DEFAULT_SKEW,
        dither_ratio: float = DEFAULT_DITHER_RATIO,
        engine: Optional[IterationEngine] = None,
    ) -> None:
        self.palette = palette
        self.strategy = parse_strategy(strategy)
        self.skew = check_unit_interval("skew", skew)
        self.dither_ratio = check_unit_interval("dither_ratio", dither_ratio)
        self.engine = engine if engine is not None else IterationEngine()

    @property
    def continuous(self) -> bool:
        return self.strategy is not Strategy.BANDED

    def __call__(self, space: SpaceSpec) -> Frame:
        field = self.engine.calculate(space, self.continuous)
        start = time.perf_counter()
        kernel = make_kernel(field, self.palette, self.strategy, skew=self.skew, dither_ratio=self.dither_ratio)
        pixels = kernel.render()
        return Frame(pixels=pixels, field=field, coloring_time=time.perf_counter() - start)

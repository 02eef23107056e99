"""Color kernels turning an iteration field into pixel colors.

Every kernel does its histogram work once, when it is constructed. After that
``apply(x, y)`` is a pure function of the pixel position and ``render()``
evaluates the same mapping for the whole grid at once. Points inside the set
are always black.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol, Union

import numpy as np

from .errors import ConfigurationError
from .field import IterationField
from .palette import BLACK, Color, Palette

OUTLIER_FRACTION = 0.1
DEFAULT_SKEW = 1.0
DEFAULT_DITHER_RATIO = 0.2


class ColorKernel(Protocol):
    image_size: tuple[int, int]

    def apply(self, x: int, y: int) -> Color:
        ...

    def render(self) -> np.ndarray:
        ...


def check_unit_interval(name: str, value: float) -> float:
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{name} must lie in [0, 1], got {value}")
    return value


def _check_position(field: IterationField, x: int, y: int) -> None:
    if not (0 <= x < field.space.x_res and 0 <= y < field.space.y_res):
        raise IndexError(f"pixel ({x}, {y}) is outside a {field.space.x_res}x{field.space.y_res} frame")


def _require_speeds(field: IterationField) -> np.ndarray:
    if field.escape_speeds is None:
        raise ConfigurationError("this kernel needs a field generated in continuous mode")
    return field.escape_speeds


def banded_range(iterations: np.ndarray) -> tuple[int, int]:
    """Return the smallest escape count and the largest one left after clipping outliers.

    The top ``OUTLIER_FRACTION`` of the sorted nonzero counts is discarded
    before the maximum is taken. Returns ``(0, 0)`` when nothing escaped.
    """

    escaped = np.sort(np.asarray(iterations)[np.asarray(iterations) != 0], axis=None)
    if escaped.size == 0:
        return 0, 0
    keep = escaped.size - int(escaped.size * OUTLIER_FRACTION)
    return int(escaped[0]), int(escaped[keep - 1])


def banded_indices(iterations: np.ndarray, low: int, palette_size: int) -> np.ndarray:
    """Map escape counts onto palette indices along a logistic curve."""

    scaled = np.asarray(iterations, dtype=np.float64) - low + 1
    slope = 2.0 / palette_size
    position = palette_size * (2.0 / (1.0 + np.exp(-slope * scaled)) - 1.0)
    return np.clip(np.floor(position), 0, palette_size - 1).astype(np.int64)


def skewed_bin_sizes(count: int, num_bins: int, skew: float) -> np.ndarray:
    """Split ``count`` sorted samples into ``num_bins`` bins of skewed size.

    With ``skew == 1`` every bin has the same size. Lower values move samples
    from the last bins to the first ones. The first bin absorbs the rounding
    remainder so that the sizes always add up to ``count``.
    """

    skew = check_unit_interval("skew", skew)
    if num_bins <= 0:
        return np.zeros(0, dtype=np.int64)
    standard = count // num_bins
    if num_bins == 1:
        offset_factor = np.zeros(1, dtype=np.float64)
    else:
        offset_factor = (2.0 * np.arange(num_bins) - (num_bins - 1)) / (num_bins - 1)
    offsets = np.trunc(standard * (1.0 - skew) * offset_factor).astype(np.int64)
    sizes = standard - offsets
    sizes[0] += count - int(sizes.sum())
    return sizes


def escape_speed_thresholds(escape_speeds: np.ndarray, palette_size: int, skew: float) -> np.ndarray:
    """Return one escape speed threshold per palette color.

    The nonzero speeds are sorted and cut into ``palette_size - 1`` bins by
    :func:`skewed_bin_sizes`; the thresholds are the speeds found at the bin
    edges, the last one being the largest speed.
    """

    speeds = np.asarray(escape_speeds, dtype=np.float64)
    ordered = np.sort(speeds[speeds != 0], axis=None)
    if ordered.size == 0:
        return ordered
    sizes = skewed_bin_sizes(ordered.size, palette_size - 1, skew)
    edges = np.concatenate(([0], np.cumsum(sizes)))
    edges = np.minimum(edges, ordered.size - 1)
    return ordered[edges]


def fractional_color_index(escape_speeds: np.ndarray, thresholds: np.ndarray) -> np.ndarray:
    """Locate each speed between its bracketing thresholds.

    The integer part is the index of the largest threshold below the speed and
    the fractional part is the linear position between that threshold and the
    next one. Speeds above the last threshold clamp to the last index.
    """

    speeds = np.asarray(escape_speeds, dtype=np.float64)
    if thresholds.size == 0:
        return np.zeros_like(speeds)
    last = thresholds.size - 1
    above = np.searchsorted(thresholds, speeds, side="left")
    upper_id = np.minimum(above, last)
    lower_id = np.clip(above - 1, 0, last)
    lower = thresholds[lower_id]
    span = thresholds[upper_id] - lower
    fraction = np.divide(speeds - lower, span, out=np.zeros_like(speeds), where=span > 0)
    index = lower_id + fraction
    return np.where(speeds > thresholds[last], float(last), index)


def interpolate_colors(palette: Palette, index: np.ndarray) -> np.ndarray:
    """Blend the two palette colors around each fractional index."""

    index = np.asarray(index, dtype=np.float64)
    color_id = np.floor(index).astype(np.int64)
    fraction = np.asarray(index - color_id)[..., None]
    low = palette.colors[color_id].astype(np.float64)
    high = palette.colors[np.minimum(color_id + 1, len(palette) - 1)].astype(np.float64)
    return (low + (high - low) * fraction).astype(np.uint8)


def dithered_indices(index: np.ndarray, xs: np.ndarray, ys: np.ndarray, palette_size: int, dither_ratio: float) -> np.ndarray:
    """Snap fractional indices to colors, nudging checkerboard pixels near band edges."""

    index = np.asarray(index, dtype=np.float64)
    color_id = np.floor(index).astype(np.int64)
    fraction = index - color_id
    checker = (np.asarray(xs) + np.asarray(ys) + color_id) % 2 == 0
    shift = (fraction > 1.0 - dither_ratio).astype(np.int64) - (fraction < dither_ratio).astype(np.int64)
    color_id = np.where(checker, color_id + shift, color_id)
    return np.clip(color_id, 0, palette_size - 1)


def _to_color(rgb: np.ndarray) -> Color:
    r, g, b = rgb
    return int(r), int(g), int(b)


def _blank(field: IterationField) -> np.ndarray:
    return np.zeros((field.space.y_res, field.space.x_res, 3), dtype=np.uint8)


class BandedKernel:
    """Flat color bands keyed on the integer escape count."""

    def __init__(self, field: IterationField, palette: Palette) -> None:
        self.field = field
        self.palette = palette
        self.image_size = (field.space.x_res, field.space.y_res)
        self.min_iteration, self.max_iteration = banded_range(field.iterations)

    def color_indices(self) -> np.ndarray:
        return banded_indices(self.field.iterations, self.min_iteration, len(self.palette))

    def apply(self, x: int, y: int) -> Color:
        _check_position(self.field, x, y)
        iterations = self.field.iterations[y, x]
        if iterations == 0:
            return BLACK
        index = banded_indices(iterations, self.min_iteration, len(self.palette))
        return self.palette[int(index)]

    def render(self) -> np.ndarray:
        pixels = _blank(self.field)
        escaped = self.field.iterations != 0
        pixels[escaped] = self.palette.colors[self.color_indices()[escaped]]
        return pixels


class ContinuousKernel:
    """Smooth gradient over the escape speed, equalized by skewed histogram bins."""

    def __init__(self, field: IterationField, palette: Palette, skew: float = DEFAULT_SKEW) -> None:
        self.field = field
        self.palette = palette
        self.skew = check_unit_interval("skew", skew)
        self.image_size = (field.space.x_res, field.space.y_res)
        self.escape_speeds = _require_speeds(field)
        self.thresholds = escape_speed_thresholds(self.escape_speeds, len(palette), self.skew)

    def fractional_indices(self) -> np.ndarray:
        return fractional_color_index(self.escape_speeds, self.thresholds)

    def apply(self, x: int, y: int) -> Color:
        _check_position(self.field, x, y)
        speed = self.escape_speeds[y, x]
        if speed == 0:
            return BLACK
        return _to_color(interpolate_colors(self.palette, fractional_color_index(speed, self.thresholds)))

    def render(self) -> np.ndarray:
        pixels = _blank(self.field)
        escaped = self.escape_speeds != 0
        pixels[escaped] = interpolate_colors(self.palette, self.fractional_indices()[escaped])
        return pixels


class DitheredKernel:
    """Hard palette bands with a checkerboard transition near each band edge."""

    def __init__(
        self,
        field: IterationField,
        palette: Palette,
        skew: float = DEFAULT_SKEW,
        dither_ratio: float = DEFAULT_DITHER_RATIO,
    ) -> None:
        self.field = field
        self.palette = palette
        self.skew = check_unit_interval("skew", skew)
        self.dither_ratio = check_unit_interval("dither_ratio", dither_ratio)
        self.image_size = (field.space.x_res, field.space.y_res)
        self.escape_speeds = _require_speeds(field)
        self.thresholds = escape_speed_thresholds(self.escape_speeds, len(palette), self.skew)

    def fractional_indices(self) -> np.ndarray:
        return fractional_color_index(self.escape_speeds, self.thresholds)

    def color_indices(self) -> np.ndarray:
        ys, xs = np.indices(self.escape_speeds.shape)
        return dithered_indices(self.fractional_indices(), xs, ys, len(self.palette), self.dither_ratio)

    def apply(self, x: int, y: int) -> Color:
        _check_position(self.field, x, y)
        speed = self.escape_speeds[y, x]
        if speed == 0:
            return BLACK
        index = fractional_color_index(speed, self.thresholds)
        return self.palette[int(dithered_indices(index, x, y, len(self.palette), self.dither_ratio))]

    def render(self) -> np.ndarray:
        pixels = _blank(self.field)
        escaped = self.escape_speeds != 0
        pixels[escaped] = self.palette.colors[self.color_indices()[escaped]]
        return pixels


class Strategy(str, Enum):
    BANDED = "banded"
    CONTINUOUS = "continuous"
    DITHERED = "dithered"


def parse_strategy(strategy: Union[Strategy, str]) -> Strategy:
    try:
        return Strategy(strategy)
    except ValueError as exc:
        choices = ", ".join(s.value for s in Strategy)
        raise ConfigurationError(f"unknown strategy {strategy!r}, expected one of {choices}") from exc


def make_kernel(
    field: IterationField,
    palette: Palette,
    strategy: Union[Strategy, str],
    *,
    skew: float = DEFAULT_SKEW,
    dither_ratio: float = DEFAULT_DITHER_RATIO,
) -> ColorKernel:
    """Construct the kernel for ``strategy``."""

    strategy = parse_strategy(strategy)
    if strategy is Strategy.BANDED:
        return BandedKernel(field, palette)
    if strategy is Strategy.CONTINUOUS:
        return ContinuousKernel(field, palette, skew)
    return DitheredKernel(field, palette, skew, dither_ratio)


def colorize(
    field: IterationField,
    palette: Palette,
    strategy: Union[Strategy, str],
    *,
    skew: float = DEFAULT_SKEW,
    dither_ratio: float = DEFAULT_DITHER_RATIO,
) -> np.ndarray:
    """Return the ``(y_res, x_res, 3)`` uint8 pixel grid for ``field``."""

    return make_kernel(field, palette, strategy, skew=skew, dither_ratio=dither_ratio).render()

"""Public API for Mandelbrot iteration and coloring."""

from .engine import IterationEngine, default_device, generate
from .errors import ConfigurationError, SequenceExhaustedError
from .field import IterationField, IterationPolicy, IterationRecord, derive_statistics
from .kernels import (
    BandedKernel,
    ColorKernel,
    ContinuousKernel,
    DitheredKernel,
    Strategy,
    colorize,
    escape_speed_thresholds,
    fractional_color_index,
    make_kernel,
    skewed_bin_sizes,
)
from .palette import BLACK, Palette
from .render import Frame, FrameRenderer, to_image
from .sequence import SequenceDriver, apply_zoom, count_frames
from .space import SpaceSpec, sample_space, space_from_corners

__all__ = [
    "BLACK",
    "BandedKernel",
    "ColorKernel",
    "ConfigurationError",
    "ContinuousKernel",
    "DitheredKernel",
    "Frame",
    "FrameRenderer",
    "IterationEngine",
    "IterationField",
    "IterationPolicy",
    "IterationRecord",
    "Palette",
    "SequenceDriver",
    "SequenceExhaustedError",
    "SpaceSpec",
    "Strategy",
    "apply_zoom",
    "colorize",
    "count_frames",
    "default_device",
    "derive_statistics",
    "escape_speed_thresholds",
    "fractional_color_index",
    "generate",
    "make_kernel",
    "sample_space",
    "skewed_bin_sizes",
    "space_from_corners",
    "to_image",
]

"""Mapping between a region of the complex plane and a sampling grid."""

from __future__ import annotations

from dataclasses import dataclass, replace

import numpy as np

from .errors import ConfigurationError


@dataclass(frozen=True)
class SpaceSpec:
    """Region of the complex plane sampled by a single frame."""

    center: complex
    scale: float
    x_res: int
    y_res: int

    def __post_init__(self) -> None:
        if int(self.x_res) <= 0 or int(self.y_res) <= 0:
            raise ConfigurationError(
                f"resolution must be positive, got {self.x_res}x{self.y_res}"
            )
        if not np.isfinite(self.scale) or self.scale <= 0:
            raise ConfigurationError(f"scale must be positive, got {self.scale}")
        object.__setattr__(self, "center", complex(self.center))
        object.__setattr__(self, "scale", float(self.scale))
        object.__setattr__(self, "x_res", int(self.x_res))
        object.__setattr__(self, "y_res", int(self.y_res))

    @property
    def vertical_extent(self) -> float:
        return self.scale * self.y_res / self.x_res

    @property
    def x_step(self) -> float:
        return self.scale / self.x_res

    @property
    def y_step(self) -> float:
        return self.vertical_extent / self.y_res

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Return ``(re_min, re_max, im_min, im_max)`` of the sampled region."""

        re_min = self.center.real - self.scale / 2.0
        im_min = self.center.imag - self.vertical_extent / 2.0
        return re_min, re_min + self.scale, im_min, im_min + self.vertical_extent

    def with_scale(self, scale: float) -> "SpaceSpec":
        """Rebuild the spec around the same center with a new scale."""

        return replace(self, scale=scale)


def sample_space(space: SpaceSpec) -> np.ndarray:
    """Return the ``(y_res, x_res)`` grid of complex sample points for ``space``."""

    re_min, _, im_min, _ = space.bounds
    x = np.float64(re_min) + np.arange(space.x_res, dtype=np.float64) * np.float64(space.x_step)
    y = np.float64(im_min) + np.arange(space.y_res, dtype=np.float64) * np.float64(space.y_step)
    X, Y = np.meshgrid(x, y)
    return X + 1j * Y


def space_from_corners(first: complex, last: complex, x_res: int, y_res: int) -> SpaceSpec:
    """Re-derive the spec whose sampling grid starts at ``first`` and ends at ``last``.

    ``first`` is the sample at ``(0, 0)`` and ``last`` the sample at
    ``(x_res - 1, y_res - 1)``. The grid does not include the right and top
    edges of the region, so the last sample sits one step short of them.
    """

    if x_res <= 0 or y_res <= 0:
        raise ConfigurationError(f"resolution must be positive, got {x_res}x{y_res}")
    first = complex(first)
    last = complex(last)
    if x_res > 1:
        scale = (last.real - first.real) * x_res / (x_res - 1)
    elif y_res > 1:
        scale = (last.imag - first.imag) * y_res / (y_res - 1) * x_res / y_res
    else:
        raise ConfigurationError("a single sample does not determine a scale")
    extent = scale * y_res / x_res
    center = complex(first.real + scale / 2.0, first.imag + extent / 2.0)
    return SpaceSpec(center=center, scale=scale, x_res=x_res, y_res=y_res)

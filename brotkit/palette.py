"""Ordered color palettes and the sources they can be loaded from."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence, Union

import numpy as np
import PIL.Image
from matplotlib import colormaps

from .errors import ConfigurationError

Color = tuple[int, int, int]
BLACK: Color = (0, 0, 0)

ColorLike = Union[str, Sequence[int]]


def parse_hex(hex_color: str) -> Color:
    """Parse ``#RRGGBB`` into an RGB tuple."""

    value = hex_color.strip().lstrip("#")
    if len(value) != 6:
        raise ConfigurationError(f"colors must be in the form #RRGGBB, got {hex_color!r}")
    try:
        return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))  # type: ignore[return-value]
    except ValueError as exc:
        raise ConfigurationError(f"{hex_color!r} contains non-hexadecimal digits") from exc


@dataclass(frozen=True, eq=False)
class Palette:
    """Non-empty, read-only sequence of RGB colors."""

    colors: np.ndarray

    def __post_init__(self) -> None:
        colors = np.asarray(self.colors)
        if colors.ndim != 2 or colors.shape[1] != 3:
            raise ConfigurationError(f"palette colors must have shape (n, 3), got {colors.shape}")
        if colors.shape[0] == 0:
            raise ConfigurationError("palette must contain at least one color")
        if np.any(colors < 0) or np.any(colors > 255):
            raise ConfigurationError("palette channels must lie in [0, 255]")
        colors = colors.astype(np.uint8, copy=True)
        colors.setflags(write=False)
        object.__setattr__(self, "colors", colors)

    def __len__(self) -> int:
        return int(self.colors.shape[0])

    def __getitem__(self, index: int) -> Color:
        r, g, b = self.colors[index]
        return int(r), int(g), int(b)

    @classmethod
    def from_colors(cls, colors: Iterable[ColorLike]) -> "Palette":
        """Build a palette from RGB triples or ``#RRGGBB`` strings."""

        parsed = [parse_hex(color) if isinstance(color, str) else tuple(color) for color in colors]
        if not parsed:
            raise ConfigurationError("palette must contain at least one color")
        return cls(np.array(parsed, dtype=np.int64))

    @classmethod
    def from_image(cls, path: Union[str, Path]) -> "Palette":
        """Read the first row of a palette strip image, one color per pixel."""

        path = Path(path).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"couldn't find the palette image {path}")
        with PIL.Image.open(path) as image:
            strip = np.asarray(image.convert("RGB"))
        return cls(strip[0])

    @classmethod
    def from_colormap(cls, name: str, size: int = 16) -> "Palette":
        """Sample ``size`` evenly spaced colors from a matplotlib colormap."""

        if size <= 0:
            raise ConfigurationError(f"palette size must be positive, got {size}")
        try:
            cmap = colormaps[name]
        except KeyError as exc:
            raise ConfigurationError(f"unknown colormap {name!r}") from exc
        rgba = np.asarray(cmap(np.linspace(0.0, 1.0, size)))
        return cls(np.uint8(np.clip(rgba[:, :3] * 255, 0, 255)))

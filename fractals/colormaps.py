"""Conversion of escape-time iteration counts into RGB colours.

Two interchangeable colour maps exist: :class:`GrayscaleMap` paints escaping
points with a linear grey ramp and :class:`GradientColorMap` samples a
perceptual matplotlib gradient ("turbo" by default). Both paint points that
never escaped black, and both expose the same two operations, ``color`` and
``max_iterations``, so the renderer never needs to know which one it holds.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

import numpy as np
from matplotlib import colormaps as _mpl_colormaps

from .errors import ConfigurationError

INSIDE_COLOR = (0, 0, 0)
COLOR_MODES = ("grayscale", "colored")
DEFAULT_GRADIENT = "turbo"
# counts are carried as int32 on the device
MAX_ITERATIONS_LIMIT = int(np.iinfo(np.int32).max)


class ColorMap(ABC):
    """Maps an iteration count in ``0..max_iterations`` to an RGB triple.

    Only :class:`GrayscaleMap` and :class:`GradientColorMap` implement it.
    """

    __slots__ = ("_max_iterations",)

    def __init__(self, max_iterations: int) -> None:
        if isinstance(max_iterations, bool) or not isinstance(max_iterations, (int, np.integer)):
            raise ConfigurationError(f"max_iterations must be an integer, got {max_iterations!r}.")
        if max_iterations < 1:
            raise ConfigurationError(f"max_iterations must be at least 1, got {max_iterations}.")
        if max_iterations > MAX_ITERATIONS_LIMIT:
            raise ConfigurationError(
                f"max_iterations must be at most {MAX_ITERATIONS_LIMIT}, got {max_iterations}."
            )
        self._max_iterations = int(max_iterations)

    @abstractmethod
    def color(self, iteration: int) -> tuple[int, int, int]:
        """Colour for a point that stopped after ``iteration`` steps."""

    def max_iterations(self) -> int:
        return self._max_iterations

    def __repr__(self) -> str:
        return f"{type(self).__name__}(max_iterations={self._max_iterations})"


class GrayscaleMap(ColorMap):
    """Linear grey ramp; darker for points that escape quickly."""

    __slots__ = ()

    def color(self, iteration: int) -> tuple[int, int, int]:
        if iteration == self._max_iterations:
            return INSIDE_COLOR
        # single precision, rounded half away from zero
        scaled = np.float32(iteration) / np.float32(self._max_iterations) * np.float32(255.0)
        intensity = int(math.floor(float(scaled) + 0.5))
        return (intensity, intensity, intensity)


class GradientColorMap(ColorMap):
    """Samples a matplotlib colormap at ``iteration / (max_iterations - 1)``."""

    __slots__ = ("_gradient_name", "_table")

    def __init__(self, max_iterations: int, gradient: str = DEFAULT_GRADIENT) -> None:
        super().__init__(max_iterations)
        if self._max_iterations < 2:
            raise ConfigurationError(
                f"The colored map needs max_iterations > 1, got {self._max_iterations}."
            )
        try:
            cmap = _mpl_colormaps[gradient]
        except KeyError as exc:
            raise ConfigurationError(f"Unknown gradient '{gradient}'.") from exc

        t = np.arange(self._max_iterations, dtype=np.float64) / np.float64(self._max_iterations - 1)
        table = np.array(cmap(t, bytes=True)[:, :3], dtype=np.uint8, copy=True)
        table.setflags(write=False)
        self._gradient_name = gradient
        self._table = table

    @property
    def gradient_name(self) -> str:
        return self._gradient_name

    def color(self, iteration: int) -> tuple[int, int, int]:
        if iteration >= self._max_iterations:
            return INSIDE_COLOR
        r, g, b = self._table[iteration]
        return (int(r), int(g), int(b))


def build_palette(color_map: ColorMap) -> np.ndarray:
    """Tabulate ``color_map.color(i)`` for every reachable count ``i``.

    Row ``i`` of the returned ``(max_iterations + 1, 3)`` array holds the
    colour for an iteration count of ``i``.
    """

    size = color_map.max_iterations() + 1
    palette = np.empty((size, 3), dtype=np.uint8)
    for iteration in range(size):
        palette[iteration] = color_map.color(iteration)
    return palette


def make_grayscale(max_iterations: int) -> GrayscaleMap:
    return GrayscaleMap(max_iterations)


def make_colored(max_iterations: int) -> GradientColorMap:
    return GradientColorMap(max_iterations)


def make_color_map(mode: str, max_iterations: int) -> ColorMap:
    """Build the colour map registered for ``mode`` (see ``COLOR_MODES``)."""

    if mode == "grayscale":
        return make_grayscale(max_iterations)
    if mode == "colored":
        return make_colored(max_iterations)
    raise ConfigurationError(f"Unknown color mode '{mode}'. Valid choices: {', '.join(COLOR_MODES)}.")

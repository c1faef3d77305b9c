"""Escape-time rendering of the Mandelbrot set."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import tensorflow as tf

from .colormaps import MAX_ITERATIONS_LIMIT, ColorMap, build_palette, make_color_map
from .errors import ConfigurationError
from .viewport import DEFAULT_VIEWPORT, Viewport, as_viewport

# squared bailout radius (|z| > 2)
HORIZON = 4.0

DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 600
DEFAULT_MAX_ITERATIONS = 100


@dataclass(frozen=True)
class RenderParameters:
    """Parameters that describe a single render of the Mandelbrot set."""

    width: int
    height: int
    max_iterations: int
    viewport: Viewport = DEFAULT_VIEWPORT

    def validate(self) -> "RenderParameters":
        for name in ("width", "height", "max_iterations"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}.")
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(
                f"Resolution must be positive, got {self.width}x{self.height}."
            )
        if self.max_iterations < 1:
            raise ConfigurationError(f"max_iterations must be at least 1, got {self.max_iterations}.")
        if self.max_iterations > MAX_ITERATIONS_LIMIT:
            raise ConfigurationError(
                f"max_iterations must be at most {MAX_ITERATIONS_LIMIT}, got {self.max_iterations}."
            )
        self.viewport.validate()
        return self


@dataclass(frozen=True)
class SamplingMetadata:
    """Metadata describing the sampling grid for a rendered frame."""

    x_min: float
    y_min: float
    x_step: float
    y_step: float
    width: int
    height: int


def compute_metadata(params: RenderParameters) -> SamplingMetadata:
    viewport = params.viewport
    x_step = (float(viewport.xmax) - float(viewport.xmin)) / params.width
    y_step = (float(viewport.ymax) - float(viewport.ymin)) / params.height
    return SamplingMetadata(
        x_min=float(viewport.xmin),
        y_min=float(viewport.ymin),
        x_step=x_step,
        y_step=y_step,
        width=params.width,
        height=params.height,
    )


def pixel_to_complex(metadata: SamplingMetadata, px: int, py: int) -> tuple[float, float]:
    """Map pixel column ``px`` and row ``py`` to a point of the plane.

    The mapping is anchored at the pixel's corner, not its centre.
    """

    return float(px) * metadata.x_step + metadata.x_min, float(py) * metadata.y_step + metadata.y_min


def escape_time(x0: float, y0: float, max_iterations: int) -> int:
    """Count the iterations of ``z -> z**2 + c`` before ``|z|`` exceeds 2.

    Returns ``max_iterations`` when the point never escaped.
    """

    x = y = 0.0
    iteration = 0
    while x * x + y * y <= HORIZON and iteration < max_iterations:
        x_next = x * x - y * y + x0
        y = 2.0 * x * y + y0
        x = x_next
        iteration += 1
    return iteration


def pixel_color(px: int, py: int, metadata: SamplingMetadata, color_map: ColorMap) -> tuple[int, int, int]:
    x0, y0 = pixel_to_complex(metadata, px, py)
    return color_map.color(escape_time(x0, y0, color_map.max_iterations()))


@tf.function
def _escape_step(
    xs: tf.Tensor,
    ys: tf.Tensor,
    x0: tf.Tensor,
    y0: tf.Tensor,
    ns: tf.Tensor,
    active: tf.Tensor,
    max_iterations: tf.Tensor,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Advance every point that is still bounded and under the cap by one step."""

    xs_new = xs * xs - ys * ys + x0
    ys_new = 2.0 * xs * ys + y0
    xs = tf.where(active, xs_new, xs)
    ys = tf.where(active, ys_new, ys)
    ns = ns + tf.cast(active, tf.int32)
    horizon = tf.constant(HORIZON, dtype=xs.dtype)
    bounded = tf.less_equal(xs * xs + ys * ys, horizon)
    active = tf.logical_and(active, tf.logical_and(bounded, tf.less(ns, max_iterations)))
    return xs, ys, ns, active


@tf.function
def _escape_run(x0: tf.Tensor, y0: tf.Tensor, max_iterations: tf.Tensor) -> tf.Tensor:
    """Iterate the whole sample grid with a TensorFlow while loop."""

    max_iterations = tf.cast(max_iterations, tf.int32)
    i = tf.constant(0, dtype=tf.int32)
    xs = tf.zeros_like(x0)
    ys = tf.zeros_like(y0)
    ns = tf.zeros_like(x0, dtype=tf.int32)
    active = tf.fill(tf.shape(x0), tf.less(0, max_iterations))

    def cond(i, xs, ys, ns, active):
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i, xs, ys, ns, active):
        xs, ys, ns, active = _escape_step(xs, ys, x0, y0, ns, active, max_iterations)
        return i + 1, xs, ys, ns, active

    _, _, _, ns, _ = tf.while_loop(cond, body, (i, xs, ys, ns, active))
    return ns


def compute_iterations(params: RenderParameters, *, device: Optional[str] = None) -> np.ndarray:
    """Return the ``(height, width)`` array of escape counts for ``params``."""

    params.validate()
    metadata = compute_metadata(params)
    x = np.arange(metadata.width, dtype=np.float64) * np.float64(metadata.x_step) + np.float64(metadata.x_min)
    y = np.arange(metadata.height, dtype=np.float64) * np.float64(metadata.y_step) + np.float64(metadata.y_min)

    with tf.device(device if device is not None else "/CPU:0"):
        x_tf = tf.convert_to_tensor(x, dtype=tf.float64)
        y_tf = tf.convert_to_tensor(y, dtype=tf.float64)
        X, Y = tf.meshgrid(x_tf, y_tf)
        ns = _escape_run(X, Y, tf.constant(params.max_iterations, dtype=tf.int32))

    return ns.numpy()


def _check_request(width: int, height: int, color_map: ColorMap, viewport: Viewport) -> RenderParameters:
    if not isinstance(color_map, ColorMap):
        raise ConfigurationError(f"Expected a ColorMap, got {type(color_map).__name__}.")
    return RenderParameters(
        width=width,
        height=height,
        max_iterations=color_map.max_iterations(),
        viewport=as_viewport(viewport),
    ).validate()


def generate(
    width: int,
    height: int,
    color_map: ColorMap,
    viewport: Viewport = DEFAULT_VIEWPORT,
    *,
    device: Optional[str] = None,
) -> np.ndarray:
    """Render a ``(height, width, 3)`` uint8 pixel grid of the Mandelbrot set.

    Escape counts for every pixel are computed at once on ``device`` and then
    turned into colours with ``color_map.color``; the grid is returned only
    once every pixel is filled.
    """

    params = _check_request(width, height, color_map, viewport)
    iterations = compute_iterations(params, device=device)
    palette = build_palette(color_map)
    return palette[iterations]


def generate_sequential(
    width: int,
    height: int,
    color_map: ColorMap,
    viewport: Viewport = DEFAULT_VIEWPORT,
) -> np.ndarray:
    """Pixel-by-pixel version of :func:`generate` producing the same grid."""

    params = _check_request(width, height, color_map, viewport)
    metadata = compute_metadata(params)
    grid = np.empty((params.height, params.width, 3), dtype=np.uint8)
    for px in range(params.width):
        for py in range(params.height):
            grid[py, px] = pixel_color(px, py, metadata, color_map)
    return grid


def render_mandelbrot(
    width: int,
    height: int,
    mode: str,
    max_iterations: int,
    viewport: Viewport = DEFAULT_VIEWPORT,
    *,
    device: Optional[str] = None,
) -> np.ndarray:
    """Build the colour map for ``mode`` and render one image with it."""

    viewport = as_viewport(viewport)
    RenderParameters(width, height, max_iterations, viewport).validate()
    color_map = make_color_map(mode, max_iterations)
    return generate(width, height, color_map, viewport, device=device)

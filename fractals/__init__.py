"""Public API for checkerboard and Mandelbrot rendering utilities."""

from .chessboard import draw_chessboard
from .colormaps import (
    COLOR_MODES,
    ColorMap,
    GradientColorMap,
    GrayscaleMap,
    build_palette,
    make_color_map,
    make_colored,
    make_grayscale,
)
from .errors import ConfigurationError
from .renderer import (
    DEFAULT_HEIGHT,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_WIDTH,
    RenderParameters,
    SamplingMetadata,
    compute_iterations,
    escape_time,
    generate,
    generate_sequential,
    pixel_color,
    pixel_to_complex,
    render_mandelbrot,
)
from .viewport import DEFAULT_VIEWPORT, Viewport, as_viewport, parse_viewport

__all__ = [
    "COLOR_MODES",
    "ColorMap",
    "ConfigurationError",
    "DEFAULT_HEIGHT",
    "DEFAULT_MAX_ITERATIONS",
    "DEFAULT_VIEWPORT",
    "DEFAULT_WIDTH",
    "GradientColorMap",
    "GrayscaleMap",
    "RenderParameters",
    "SamplingMetadata",
    "Viewport",
    "as_viewport",
    "build_palette",
    "compute_iterations",
    "draw_chessboard",
    "escape_time",
    "generate",
    "generate_sequential",
    "make_color_map",
    "make_colored",
    "make_grayscale",
    "parse_viewport",
    "pixel_color",
    "pixel_to_complex",
    "render_mandelbrot",
]

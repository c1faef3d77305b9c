"""
test_renderer.py
"""
import numpy as np
import pytest
from matplotlib import colormaps

from fractals import (
    DEFAULT_VIEWPORT,
    ConfigurationError,
    RenderParameters,
    Viewport,
    compute_iterations,
    escape_time,
    generate,
    generate_sequential,
    make_colored,
    make_grayscale,
    pixel_color,
    pixel_to_complex,
    render_mandelbrot,
)
from fractals.renderer import compute_metadata


def _colors(grid):
    """
    Distinct RGB triples present in a pixel grid.
    """
    return {tuple(int(c) for c in row) for row in grid.reshape(-1, 3)}


@pytest.fixture(scope='module')
def reference_grid():
    return render_mandelbrot(800, 600, "colored", 100, (-2.0, 2.0, -1.5, 1.5))


def test_origin_never_escapes():
    assert escape_time(0.0, 0.0, 100) == 100


def test_far_point_escapes_after_first_step():
    # (0, 0) is bounded, the first step lands on (2, 2) with |z|^2 = 8
    assert escape_time(2.0, 2.0, 100) == 1


def test_bailout_is_inclusive():
    # c = 2 reaches z = 2 after one step and |z|^2 == 4 keeps iterating
    assert escape_time(2.0, 0.0, 100) == 2


def test_cap_bounds_the_count():
    assert escape_time(-1.0, 0.0, 7) == 7


def test_pixel_mapping_uses_corner_formula():
    metadata = compute_metadata(RenderParameters(800, 600, 100, DEFAULT_VIEWPORT))
    assert metadata.x_step == pytest.approx(0.005)
    assert metadata.y_step == pytest.approx(0.005)
    assert pixel_to_complex(metadata, 0, 0) == (-2.0, -1.5)
    x0, y0 = pixel_to_complex(metadata, 400, 300)
    assert x0 == pytest.approx(0.0, abs=1e-12)
    assert y0 == pytest.approx(0.0, abs=1e-12)


def test_center_pixel_is_inside(reference_grid):
    assert tuple(reference_grid[300, 400]) == (0, 0, 0)
    metadata = compute_metadata(RenderParameters(800, 600, 100, DEFAULT_VIEWPORT))
    assert escape_time(*pixel_to_complex(metadata, 400, 300), 100) == 100


def test_grid_shape_and_coverage(reference_grid):
    assert reference_grid.shape == (600, 800, 3)
    assert reference_grid.dtype == np.uint8
    assert reference_grid.reshape(-1, 3).shape[0] == 800 * 600


def test_colored_scenario_only_uses_gradient_and_black(reference_grid):
    cmap = colormaps["turbo"]
    allowed = {tuple(int(c) for c in row) for row in cmap(np.arange(cmap.N), bytes=True)[:, :3]}
    allowed.add((0, 0, 0))
    assert _colors(reference_grid) <= allowed
    assert (0, 0, 0) in _colors(reference_grid)
    assert len(_colors(reference_grid)) > 2


def test_render_is_deterministic(reference_grid):
    again = render_mandelbrot(800, 600, "colored", 100, (-2.0, 2.0, -1.5, 1.5))
    assert again.tobytes() == reference_grid.tobytes()


@pytest.mark.parametrize('factory', [make_grayscale, make_colored])
def test_inside_pixels_are_black(factory):
    color_map = factory(40)
    params = RenderParameters(64, 48, 40, DEFAULT_VIEWPORT)
    iterations = compute_iterations(params)
    grid = generate(64, 48, color_map, DEFAULT_VIEWPORT)
    inside = iterations == 40
    assert inside.any()
    assert np.all(grid[inside] == 0)


def test_iterations_match_scalar_escape_time():
    params = RenderParameters(40, 30, 60, Viewport(-2.0, 1.0, -1.2, 1.2))
    iterations = compute_iterations(params)
    metadata = compute_metadata(params)
    assert iterations.shape == (30, 40)
    for py in range(30):
        for px in range(40):
            x0, y0 = pixel_to_complex(metadata, px, py)
            assert iterations[py, px] == escape_time(x0, y0, 60)


@pytest.mark.parametrize('factory', [make_grayscale, make_colored])
def test_sequential_matches_vectorised(factory):
    viewport = Viewport(-1.5, 0.5, -1.0, 1.0)
    color_map = factory(50)
    expected = generate_sequential(48, 36, color_map, viewport)
    actual = generate(48, 36, color_map, viewport)
    assert np.array_equal(actual, expected)


def test_pixel_color_agrees_with_grid():
    color_map = make_grayscale(30)
    viewport = Viewport(-2.0, 2.0, -1.5, 1.5)
    grid = generate(20, 15, color_map, viewport)
    metadata = compute_metadata(RenderParameters(20, 15, 30, viewport))
    for px, py in [(0, 0), (10, 7), (19, 14), (5, 12)]:
        assert tuple(int(c) for c in grid[py, px]) == pixel_color(px, py, metadata, color_map)


def test_grayscale_render_uses_grey_levels():
    grid = render_mandelbrot(80, 60, "grayscale", 100, DEFAULT_VIEWPORT)
    assert np.all(grid[..., 0] == grid[..., 1])
    assert np.all(grid[..., 1] == grid[..., 2])


def test_single_pixel_grid():
    grid = generate(1, 1, make_grayscale(10), Viewport(-0.1, 0.1, -0.1, 0.1))
    assert grid.shape == (1, 1, 3)
    assert tuple(grid[0, 0]) == (0, 0, 0)


@pytest.mark.parametrize('width, height', [(0, 10), (10, 0), (-1, 5)])
def test_non_positive_resolution_is_rejected(width, height):
    with pytest.raises(ConfigurationError):
        generate(width, height, make_grayscale(10), DEFAULT_VIEWPORT)


@pytest.mark.parametrize(
    'viewport',
    [(2.0, -2.0, -1.5, 1.5), (-2.0, 2.0, 1.0, 1.0), (-2.0, float('nan'), -1.5, 1.5)]
)
def test_bad_viewport_is_rejected(viewport):
    with pytest.raises(ConfigurationError):
        render_mandelbrot(10, 10, "grayscale", 10, viewport)


def test_render_rejects_bad_iteration_cap():
    with pytest.raises(ConfigurationError):
        render_mandelbrot(10, 10, "grayscale", 0, DEFAULT_VIEWPORT)
    with pytest.raises(ConfigurationError):
        render_mandelbrot(10, 10, "colored", 1, DEFAULT_VIEWPORT)


def test_render_rejects_unknown_mode():
    with pytest.raises(ConfigurationError):
        render_mandelbrot(10, 10, "sepia", 10, DEFAULT_VIEWPORT)


def test_generate_requires_a_color_map():
    with pytest.raises(ConfigurationError):
        generate(10, 10, object(), DEFAULT_VIEWPORT)


def test_iteration_cap_beyond_int32_is_rejected():
    viewport = Viewport(-0.1, 0.1, -0.1, 0.1)
    with pytest.raises(ConfigurationError):
        compute_iterations(RenderParameters(3, 3, 2 ** 32 + 5, viewport))
    with pytest.raises(ConfigurationError):
        render_mandelbrot(4, 4, "grayscale", 2 ** 31, viewport)


@pytest.mark.parametrize(
    'width, height',
    [(10.7, 4), (4, 3.0), (True, 4), ("8", 4)]
)
def test_non_integer_resolution_is_rejected(width, height):
    with pytest.raises(ConfigurationError):
        render_mandelbrot(width, height, "grayscale", 10, DEFAULT_VIEWPORT)
    with pytest.raises(ConfigurationError):
        generate(width, height, make_grayscale(10), DEFAULT_VIEWPORT)


def test_numpy_integer_resolution_is_accepted():
    grid = generate(np.int64(8), np.int32(6), make_grayscale(10), DEFAULT_VIEWPORT)
    assert grid.shape == (6, 8, 3)

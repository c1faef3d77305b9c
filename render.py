import os
import sys
import warnings
from functools import lru_cache
from argparse import ArgumentParser
from pathlib import Path

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import numpy as np
import tensorflow as tf

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")

import PIL.Image

from fractals import (
    COLOR_MODES,
    DEFAULT_HEIGHT,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_VIEWPORT,
    DEFAULT_WIDTH,
    ConfigurationError,
    Viewport,
    draw_chessboard,
    generate_sequential,
    make_color_map,
    parse_viewport,
    render_mandelbrot,
)
from fractals.chessboard import BOARD_SIZE
from fractals.viewport import VIEWPORT_FORMAT

# menu answers of the interactive mode
_INTERACTIVE_MODES = {"c": "colored", "gs": "grayscale"}


@lru_cache(maxsize=None)
def select_device() -> str:
    """Place the escape-time loop on the first GPU when one is visible."""

    gpus = tf.config.list_physical_devices('GPU')
    if not gpus:
        log("No GPU found, using CPU")
        return '/CPU:0'
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
    except RuntimeError as e:
        log(e)
        return '/CPU:0'
    log("GPU found, using %s" % gpus[0].name)
    return '/GPU:0'


def build_parser():
    parser = ArgumentParser(description='Render a checkerboard or the Mandelbrot set to an image file.')

    common = ArgumentParser(add_help=False)
    common.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')
    common.add_argument('--format', type=str,
                        dest='format', help='file format for the image. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')
    common.add_argument('--show', dest='show', action='store_true',
                        help='open the rendered image in the default image viewer')

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    chess = subparsers.add_parser('chessboard', parents=[common], help='draw a black and white checkerboard')
    chess.add_argument('--cells', type=int, required=True,
                       dest='cells', help='number of cells along one side of the board',
                       metavar='CELLS')
    chess.add_argument('--size', type=int,
                       dest='size', help='side length of the square image in pixels',
                       metavar='SIZE', default=BOARD_SIZE)
    chess.add_argument('--output', dest='output', type=str,
                       help='destination file. Default: chessboard_<n>x<n>.<format>')

    mandel = subparsers.add_parser('mandelbrot', parents=[common], help='render the Mandelbrot set')
    mandel.add_argument('--mode', choices=COLOR_MODES, default='colored',
                        help='color mapping: linear "grayscale" or the "colored" turbo gradient')
    mandel.add_argument('--max-iterations', type=int,
                        dest='max_iterations', help='maximum number of iterations before a point counts as inside the set',
                        metavar='MAX_ITERATIONS', default=DEFAULT_MAX_ITERATIONS)
    mandel.add_argument('--width', type=int,
                        dest='width', help='image width in pixels',
                        metavar='WIDTH', default=DEFAULT_WIDTH)
    mandel.add_argument('--height', type=int,
                        dest='height', help='image height in pixels',
                        metavar='HEIGHT', default=DEFAULT_HEIGHT)
    mandel.add_argument('--viewport', type=str,
                        dest='viewport', help=f'region of the complex plane as {VIEWPORT_FORMAT}. Default: {DEFAULT_VIEWPORT}',
                        metavar='VIEWPORT')
    mandel.add_argument('--fallback-default', dest='fallback_default', action='store_true',
                        help='use the default viewport instead of failing when --viewport cannot be parsed')
    mandel.add_argument('--sequential', dest='sequential', action='store_true',
                        help='compute pixel by pixel in Python instead of with TensorFlow')
    mandel.add_argument('--output', dest='output', type=str,
                        help='destination file. Default: <mode>_mandelbrot.<format>')

    interactive = subparsers.add_parser('interactive', parents=[common],
                                        help='choose what to render from a text menu')
    interactive.add_argument('--output-dir', dest='output_dir', type=str, default='.',
                             help='directory in which to store the rendered image')

    return parser


def chessboard_filename(cell_count: int, image_format: str) -> str:
    return f"chessboard_{cell_count}x{cell_count}.{image_format}"


def mandelbrot_filename(mode: str, image_format: str) -> str:
    return f"{mode}_mandelbrot.{image_format}"


def _normalize_format(image_format: str) -> str:
    image_format = (image_format or "png").lower().lstrip(".")
    return image_format or "png"


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def resolve_output_path(output_arg, default_name: str, image_format: str, parser: ArgumentParser) -> Path:
    if not output_arg:
        return Path(default_name).expanduser().resolve()

    output_path = Path(output_arg).expanduser()
    if str(output_arg).endswith(tuple(filter(None, {os.sep, os.altsep}))) or output_path.is_dir():
        parser.error("--output must be a file path, not a directory.")
    expected_suffix = f".{image_format}"
    if output_path.suffix:
        if output_path.suffix.lower() != expected_suffix.lower():
            parser.error(f"--output extension {output_path.suffix} does not match --format {image_format}.")
    else:
        output_path = output_path.with_suffix(expected_suffix)
    return output_path.resolve()


def write_single_image(grid: np.ndarray, output_path: Path, image_format: str) -> PIL.Image.Image:
    """Write a pixel grid to ``output_path`` using the provided format."""

    image = PIL.Image.fromarray(grid)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=_pil_format_name(image_format))
    return image


def display_image(image: PIL.Image.Image, title: str) -> None:
    image.show(title=title)


def deliver(grid: np.ndarray, output_path: Path, image_format: str, label: str, show: bool) -> int:
    """Save ``grid`` and optionally display it; returns the process exit code."""

    try:
        image = write_single_image(grid, output_path, image_format)
    except (OSError, ValueError, KeyError) as exc:
        print(f"Could not save {label} to {output_path}: {exc}", file=sys.stderr)
        return 1
    print(f"{label} saved as {output_path}")
    if show:
        try:
            display_image(image, label)
        except OSError as exc:
            print(f"Could not display {label}: {exc}", file=sys.stderr)
            return 1
    return 0


def resolve_viewport(text, fallback_default: bool) -> Viewport:
    if text is None:
        return DEFAULT_VIEWPORT
    try:
        return parse_viewport(text)
    except ConfigurationError as exc:
        if not fallback_default:
            raise
        print(f"{exc}; using the default viewport {DEFAULT_VIEWPORT}.")
        return DEFAULT_VIEWPORT


def run_chessboard(opt, parser: ArgumentParser) -> int:
    image_format = _normalize_format(opt.format)
    output_path = resolve_output_path(opt.output, chessboard_filename(opt.cells, image_format), image_format, parser)
    try:
        grid = draw_chessboard(opt.cells, size=opt.size)
    except ConfigurationError as exc:
        parser.error(str(exc))
    log("Drew a %dx%d board on %dx%d pixels" % (opt.cells, opt.cells, opt.size, opt.size))
    return deliver(grid, output_path, image_format, "Chessboard", opt.show)


def render(mode: str, max_iterations: int, width: int, height: int, viewport: Viewport, sequential: bool = False) -> np.ndarray:
    log("Rendering %s Mandelbrot set, %dx%d pixels, %d iterations, viewport %s"
        % (mode, width, height, max_iterations, viewport))
    if sequential:
        return generate_sequential(width, height, make_color_map(mode, max_iterations), viewport)
    return render_mandelbrot(width, height, mode, max_iterations, viewport, device=select_device())


def run_mandelbrot(opt, parser: ArgumentParser) -> int:
    image_format = _normalize_format(opt.format)
    output_path = resolve_output_path(opt.output, mandelbrot_filename(opt.mode, image_format), image_format, parser)
    try:
        viewport = resolve_viewport(opt.viewport, opt.fallback_default)
        grid = render(opt.mode, opt.max_iterations, opt.width, opt.height, viewport, opt.sequential)
    except ConfigurationError as exc:
        parser.error(str(exc))
    return deliver(grid, output_path, image_format, "Mandelbrot set", opt.show)


def _ask(prompt: str, input_fn) -> str:
    print(prompt)
    return input_fn().strip()


def run_interactive(opt, input_fn=input) -> int:
    """Text menu: 1 draws a checkerboard, 2 renders the Mandelbrot set."""

    image_format = _normalize_format(opt.format)
    output_dir = Path(opt.output_dir).expanduser().resolve()
    try:
        while True:
            choice = _ask("Choose an option by inputting either: 1 or 2:\n"
                          "1: Generate a chessboard\n"
                          "2: Generate a Mandelbrot set", input_fn)
            if choice == "1":
                while True:
                    answer = _ask("Enter the number of cells:", input_fn)
                    try:
                        grid = draw_chessboard(int(answer))
                    except (ValueError, ConfigurationError) as exc:
                        print(f"Invalid number of cells: {exc}")
                        continue
                    break
                output_path = output_dir / chessboard_filename(int(answer), image_format)
                return deliver(grid, output_path, image_format, "Chessboard", opt.show)
            if choice == "2":
                while True:
                    answer = _ask("Enter 'c' for colored or 'gs' for grayscale:", input_fn)
                    if answer in _INTERACTIVE_MODES:
                        break
                    print("Invalid color option. Please enter 'c' for colored or 'gs' for grayscale.")
                mode = _INTERACTIVE_MODES[answer]
                viewport = DEFAULT_VIEWPORT
                if mode == "grayscale":
                    text = _ask(f"Enter the space to display in the format {VIEWPORT_FORMAT}:", input_fn)
                    viewport = resolve_viewport(text, fallback_default=True)
                grid = render(mode, DEFAULT_MAX_ITERATIONS, DEFAULT_WIDTH, DEFAULT_HEIGHT, viewport)
                output_path = output_dir / mandelbrot_filename(mode, image_format)
                return deliver(grid, output_path, image_format, "Mandelbrot set", opt.show)
            print("Invalid option, please enter '1' or '2'.")
    except EOFError:
        print("No more input, nothing rendered.", file=sys.stderr)
        return 1


# options whose values may start with "-", e.g. a viewport with a negative xmin
_NEGATIVE_VALUE_OPTIONS = ("--viewport",)


def attach_option_values(argv):
    """Rewrite ``--viewport VALUE`` as ``--viewport=VALUE`` so argparse keeps ``VALUE``."""

    args = list(argv)
    joined = []
    i = 0
    while i < len(args):
        if args[i] in _NEGATIVE_VALUE_OPTIONS and i + 1 < len(args):
            joined.append(f"{args[i]}={args[i + 1]}")
            i += 2
            continue
        joined.append(args[i])
        i += 1
    return joined


def main(argv=None, input_fn=input):
    parser = build_parser()
    opt = parser.parse_args(attach_option_values(sys.argv[1:] if argv is None else argv))

    global VERBOSE
    VERBOSE = bool(opt.verbose)
    log("TensorFlow version: %s" % tf.__version__)

    if opt.command == 'chessboard':
        return run_chessboard(opt, parser)
    if opt.command == 'mandelbrot':
        return run_mandelbrot(opt, parser)
    return run_interactive(opt, input_fn=input_fn)


if __name__ == '__main__':
    sys.exit(main())

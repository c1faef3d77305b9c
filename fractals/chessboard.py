"""Checkerboard pattern generator."""

from __future__ import annotations

import numpy as np

from .errors import ConfigurationError

BOARD_SIZE = 500
WHITE = (255, 255, 255)
BLACK = (0, 0, 0)


def draw_chessboard(cell_count: int, size: int = BOARD_SIZE) -> np.ndarray:
    """Return a ``(size, size, 3)`` checkerboard with ``cell_count`` cells per side.

    Cell ``(i, j)`` is white when ``i + j`` is even. Every square is
    ``size // cell_count`` pixels wide, so any remainder along the right and
    bottom edges stays black.
    """

    if size <= 0:
        raise ConfigurationError(f"Board size must be positive, got {size}.")
    if cell_count < 1 or cell_count > size:
        raise ConfigurationError(f"cell_count must be between 1 and {size}, got {cell_count}.")

    square_size = size // cell_count
    covered = square_size * cell_count
    cells = np.indices((cell_count, cell_count)).sum(axis=0) % 2 == 0
    mask = np.repeat(np.repeat(cells, square_size, axis=0), square_size, axis=1)

    image = np.zeros((size, size, 3), dtype=np.uint8)
    image[:covered, :covered][mask] = WHITE
    return image

"""
Grid state for fast marching: cell lifecycle, seeds and distance buffers.

The grid is a rows x cols array flattened row-major, so a cell at column x
and row y has the id ``x + y * cols``. Three parallel buffers are kept per
run: the distance of every cell, its lifecycle status and whether it has
ever been given a finite distance.
"""

import operator
from enum import IntEnum
from typing import Any, Iterable, List, NamedTuple, Tuple

import numpy as np

from .errors import ConfigurationError, SeedError

INF = float("inf")

# Dtypes scipy.ndimage filters accept and tolist() turns into Python floats
_NATIVE_FLOATS = (np.dtype(np.float32), np.dtype(np.float64))


class CellStatus(IntEnum):
    """Fast marching lifecycle of a cell. Transitions only move forward."""

    FAR = 0  # Never updated
    TRIAL = 1  # Has a tentative distance and at least one queue entry
    KNOWN = 2  # Finalized, distance is frozen


class Point(NamedTuple):
    """Integer grid coordinate, x is the column and y the row."""

    x: int
    y: int


def as_field(image: Any, name: str = "image") -> np.ndarray:
    """
    Convert an array-like to a 2D floating point field.

    float32 and float64 arrays are returned as-is (no copy); anything else,
    including float16 and longdouble, is converted to float64.

    Args:
        image: 2D array-like of numbers
        name: Name used in error messages

    Returns:
        2D numpy array with a floating dtype
    """
    field = np.asarray(image)
    if field.dtype not in _NATIVE_FLOATS:
        try:
            field = field.astype(np.float64)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{name} must be numeric: {e}") from e
    if field.ndim != 2:
        raise ConfigurationError(
            f"{name} must be a 2D grid, got {field.ndim} dimension(s)"
        )
    if field.size == 0:
        raise ConfigurationError(f"{name} must not be empty, got shape {field.shape}")
    return field


def _seed_coordinates(seed: Any) -> Tuple[int, int]:
    if hasattr(seed, "x") and hasattr(seed, "y"):
        x, y = seed.x, seed.y
    else:
        try:
            x, y = seed
        except (TypeError, ValueError) as e:
            raise SeedError(f"Seed {seed!r} is not an (x, y) coordinate") from e
    try:
        return operator.index(x), operator.index(y)
    except TypeError as e:
        raise SeedError(f"Seed {seed!r} must have integer coordinates") from e


def normalize_seeds(seeds: Iterable[Any], rows: int, cols: int) -> List[Point]:
    """
    Validate seeds against the grid bounds.

    Duplicates are kept, they are harmless for propagation.

    Args:
        seeds: Iterable of (x, y) pairs, Point tuples or objects with x/y
        rows: Grid height
        cols: Grid width

    Returns:
        List of Point in the order given

    Raises:
        SeedError: If there are no seeds or a seed lies outside the grid
    """
    if seeds is None:
        raise SeedError("At least one seed is required")
    points = []
    for seed in seeds:
        x, y = _seed_coordinates(seed)
        if not (0 <= x < cols and 0 <= y < rows):
            raise SeedError(
                f"Seed ({x}, {y}) is outside the {cols}x{rows} grid "
                f"(valid x in [0, {cols}), y in [0, {rows}))"
            )
        points.append(Point(x, y))
    if not points:
        raise SeedError("At least one seed is required")
    return points


class DistanceGrid:
    """
    Per-run distance, status and reached buffers.

    The buffers are flat Python lists so the propagation loop can index
    them without numpy scalar overhead. Unreached cells hold +inf and have
    ``reached[i] == False``; the two always agree.
    """

    def __init__(self, rows: int, cols: int):
        self.rows = rows
        self.cols = cols
        self.area = rows * cols
        self.distance: List[float] = [INF] * self.area
        self.status: List[int] = [CellStatus.FAR] * self.area
        self.reached: List[bool] = [False] * self.area

    def cell_id(self, x: int, y: int) -> int:
        return x + y * self.cols

    def distances(self) -> np.ndarray:
        """Distances as a rows x cols array, unreached cells are +inf."""
        return np.asarray(self.distance, dtype=np.float64).reshape(self.rows, self.cols)

    def status_array(self) -> np.ndarray:
        return np.asarray(self.status, dtype=np.int8).reshape(self.rows, self.cols)

    def reached_mask(self) -> np.ndarray:
        return np.asarray(self.reached, dtype=bool).reshape(self.rows, self.cols)

    def count(self, status: CellStatus) -> int:
        return sum(1 for s in self.status if s == status)

"""
Weight (cost) field construction for fast marching.

The propagation engine expects a non-negative cost per cell. This module
turns an input scalar field (typically a grayscale image) into such a cost
field using one of four strategies:

- IDENTITY: the input is used directly (no copy)
- GRADIENT: Sobel gradient magnitude
- ABSDIFF: absolute difference from the mean value at the seeds
- LAPLACIAN: absolute value of the 4-neighbour Laplacian

Stencils treat cells outside the grid as zero, so edge cells see a one-sided
(asymmetric) response. This is intentional and not edge-corrected.
"""

from enum import Enum
from typing import Any, Callable, Dict, Iterable, Sequence, Union

import numpy as np
import structlog
from scipy import ndimage

from .errors import ConfigurationError
from .grid import Point

logger = structlog.get_logger()

SOBEL_X = np.array([[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]], dtype=np.float64)
SOBEL_Y = SOBEL_X.T.copy()
LAPLACIAN_4 = np.array([[0, 1, 0], [1, -4, 1], [0, 1, 0]], dtype=np.float64)

# Long-form names accepted by WeightMap.parse
_WEIGHT_MAP_ALIASES = {
    "GRADIENT_MAGNITUDE": "GRADIENT",
    "LAPLACIAN_MAGNITUDE": "LAPLACIAN",
    "ABS_DIFF": "ABSDIFF",
    "ABSOLUTE_DIFFERENCE": "ABSDIFF",
}


class WeightMap(Enum):
    """Available weight map strategies and their stable integer codes."""

    IDENTITY = 0
    GRADIENT = 1
    ABSDIFF = 2
    LAPLACIAN = 3

    @classmethod
    def parse(cls, value: Union["WeightMap", str, int], strict: bool = True) -> "WeightMap":
        """
        Resolve a member from a member, a name or an integer code.

        Args:
            value: WeightMap, name such as "gradient", or integer code 0-3
                (as an int or a digit string)
            strict: Raise on unknown values instead of falling back to IDENTITY

        Returns:
            The matching WeightMap

        Raises:
            ConfigurationError: If the value is unknown and strict is set
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            if value.strip().isdecimal():
                return cls.parse(int(value), strict=strict)
            key = value.strip().upper().replace("-", "_").replace(" ", "_")
            key = _WEIGHT_MAP_ALIASES.get(key, key)
            if key in cls.__members__:
                return cls[key]
        elif isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            try:
                return cls(int(value))
            except ValueError:
                pass

        if strict:
            names = ", ".join(m.name.lower() for m in cls)
            raise ConfigurationError(
                f"Unknown weight map {value!r}, expected one of: {names}"
            )
        logger.warning("Unknown weight map, using identity", weight_map=repr(value))
        return cls.IDENTITY


def _normalize_by_max(values: np.ndarray) -> np.ndarray:
    maxval = values.max()
    if maxval > 0:
        values /= maxval
    return values


def identity_weights(field: np.ndarray, seeds: Any = None) -> np.ndarray:
    """
    Use the field itself as the cost.

    Returns a read-only view, so no copy is made and nothing downstream can
    write through it. Non-negativity is the caller's responsibility.
    """
    view = field.view()
    view.flags.writeable = False
    return view


def gradient_weights(field: np.ndarray, normalize_output: bool = False) -> np.ndarray:
    """
    Sobel gradient magnitude of the field.

    Args:
        field: 2D floating point array
        normalize_output: Divide by the global maximum (skipped when it is 0)

    Returns:
        Array of the same shape with sqrt(dx^2 + dy^2) per cell
    """
    dx = ndimage.correlate(field, SOBEL_X.astype(field.dtype), mode="constant", cval=0.0)
    dy = ndimage.correlate(field, SOBEL_Y.astype(field.dtype), mode="constant", cval=0.0)
    out = np.sqrt(dx * dx + dy * dy)
    if normalize_output:
        _normalize_by_max(out)
    return out


def difference_weights(field: np.ndarray, seeds: Sequence[Point]) -> np.ndarray:
    """
    Absolute difference from the mean field value at the seeds.

    Args:
        field: 2D floating point array
        seeds: Validated, non-empty seed points

    Returns:
        Array of |field - reference|
    """
    if not seeds:
        raise ConfigurationError("ABSDIFF weights need at least one seed")
    xs = np.fromiter((s.x for s in seeds), dtype=np.intp, count=len(seeds))
    ys = np.fromiter((s.y for s in seeds), dtype=np.intp, count=len(seeds))
    reference = field[ys, xs].mean()
    return np.abs(field - reference)


def laplacian_weights(field: np.ndarray, normalize_output: bool = False) -> np.ndarray:
    """
    Magnitude of the 4-neighbour discrete Laplacian.

    The centre weighs -4 and each existing neighbour +1. Cells outside the
    grid contribute 0, so borders keep the full -4 centre weight.
    """
    lap = ndimage.correlate(field, LAPLACIAN_4.astype(field.dtype), mode="constant", cval=0.0)
    out = np.abs(lap)
    if normalize_output:
        _normalize_by_max(out)
    return out


def _identity(field, seeds, normalize_output):
    return identity_weights(field)


def _gradient(field, seeds, normalize_output):
    return gradient_weights(field, normalize_output)


def _absdiff(field, seeds, normalize_output):
    return difference_weights(field, seeds)


def _laplacian(field, seeds, normalize_output):
    return laplacian_weights(field, normalize_output)


_BUILDERS: Dict[WeightMap, Callable[[np.ndarray, Sequence[Point], bool], np.ndarray]] = {
    WeightMap.IDENTITY: _identity,
    WeightMap.GRADIENT: _gradient,
    WeightMap.ABSDIFF: _absdiff,
    WeightMap.LAPLACIAN: _laplacian,
}


def build_weights(
    field: np.ndarray,
    seeds: Iterable[Point],
    weight_map: Union[WeightMap, str, int] = WeightMap.IDENTITY,
    normalize_output: bool = False,
) -> np.ndarray:
    """
    Build the cost field for the given strategy.

    Args:
        field: 2D floating point input field
        seeds: Validated seed points (used by ABSDIFF)
        weight_map: Strategy, parsed strictly with WeightMap.parse
        normalize_output: Normalize GRADIENT/LAPLACIAN output by its maximum

    Returns:
        Cost field with the same shape as ``field``
    """
    weight_map = WeightMap.parse(weight_map)
    seeds = list(seeds)
    cost = _BUILDERS[weight_map](field, seeds, normalize_output)
    logger.debug(
        "Built weight field",
        weight_map=weight_map.name,
        shape=cost.shape,
        min_cost=float(cost.min()),
        max_cost=float(cost.max()),
    )
    return cost

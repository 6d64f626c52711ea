"""
Post-processing of raw geodesic distances.

Normalization rescales reached cells to [0, 1]; thresholding turns the
distance map into a 0/1 segmentation mask. When both are requested,
normalization runs first and the threshold applies to normalized values.
"""

import math
from typing import Optional

import numpy as np
import structlog

from .errors import ConfigurationError

logger = structlog.get_logger()


def normalize_distances(distances: np.ndarray, reached: np.ndarray) -> np.ndarray:
    """
    Divide reached distances by the largest reached distance.

    Unreached cells keep +inf. If nothing beyond zero-distance cells was
    reached (maximum is 0), the values are returned unchanged.

    Args:
        distances: Raw distances, +inf where unreached
        reached: Boolean mask of cells with a finite distance

    Returns:
        New normalized array
    """
    out = np.array(distances, dtype=np.float64, copy=True)
    if not reached.any():
        return out
    maxval = out[reached].max()
    if maxval > 0:
        out[reached] /= maxval
    else:
        logger.debug("Skipping normalization, maximum distance is zero")
    return out


def threshold_distances(distances: np.ndarray, threshold: float) -> np.ndarray:
    """
    Binarize distances: 1.0 where distance <= threshold, else 0.0.

    A threshold of +inf disables binarization and returns a copy.
    """
    if math.isnan(threshold):
        raise ConfigurationError("segmentation_threshold must not be NaN")
    if threshold == math.inf:
        return np.array(distances, dtype=np.float64, copy=True)
    return (distances <= threshold).astype(np.float64)


def finalize_output(
    distances: np.ndarray,
    reached: np.ndarray,
    segmentation_threshold: float = math.inf,
    normalize_output: bool = True,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Apply normalization then thresholding and write the final grid.

    Args:
        distances: Raw distances from propagation
        reached: Boolean mask of reached cells
        segmentation_threshold: Finite value enables binarization
        normalize_output: Rescale reached distances to [0, 1] first
        out: Caller-owned array filled in place; a new array when None

    Returns:
        ``out`` when given, otherwise a newly allocated float64 array
    """
    values = distances
    if normalize_output:
        values = normalize_distances(values, reached)
    values = threshold_distances(values, segmentation_threshold)

    if out is None:
        return values
    out[...] = values
    return out

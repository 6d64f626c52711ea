"""
Fast Marching Method pipeline.

Input field + seeds -> weight field -> propagation -> post-processing.

Usage:
    >>> from py_fmm import fmm, WeightMap
    >>> mask = fmm(image, [(10, 12)], weight_map=WeightMap.GRADIENT,
    ...            segmentation_threshold=0.2)

The result is either a geodesic distance map (normalized to [0, 1] by
default) or, when a finite segmentation threshold is given, a 0/1 mask.
"""

import math
from typing import Any, Iterable, Optional, Union

import numpy as np
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .grid import as_field, normalize_seeds
from .postprocess import finalize_output
from .propagation import UNLIMITED_VISITS, FastMarchingResult, propagate
from .weights import WeightMap, build_weights

logger = structlog.get_logger()


class FastMarchingOptions(BaseModel):
    """Options for a fast marching run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    weight_map: WeightMap = Field(
        default=WeightMap.IDENTITY, description="Weight field strategy"
    )
    segmentation_threshold: float = Field(
        default=math.inf,
        description="Finite value returns a 0/1 mask of cells within it",
    )
    normalize_output: bool = Field(
        default=True, description="Rescale distances to [0, 1] before thresholding"
    )
    max_visits: int = Field(
        default=UNLIMITED_VISITS,
        ge=UNLIMITED_VISITS,
        description="Maximum cells to finalize, -1 for unlimited",
    )
    normalize_weights: bool = Field(
        default=False,
        description="Normalize gradient/laplacian weights by their maximum",
    )

    @field_validator("weight_map", mode="before")
    @classmethod
    def _parse_weight_map(cls, value: Any) -> WeightMap:
        return WeightMap.parse(value)

    @field_validator("segmentation_threshold")
    @classmethod
    def _check_threshold(cls, value: float) -> float:
        if math.isnan(value):
            raise ValueError("segmentation_threshold must not be NaN")
        return value

    @property
    def segmentation_enabled(self) -> bool:
        return self.segmentation_threshold < math.inf


def _check_output_buffer(output: np.ndarray, shape) -> None:
    if not isinstance(output, np.ndarray):
        raise ConfigurationError(
            f"output must be a numpy array, got {type(output).__name__}"
        )
    if output.shape != shape:
        raise ConfigurationError(
            f"output buffer shape {output.shape} does not match input shape {shape}"
        )
    if not np.issubdtype(output.dtype, np.floating):
        raise ConfigurationError(
            f"output buffer must have a floating dtype, got {output.dtype}"
        )
    if not output.flags.writeable:
        raise ConfigurationError("output buffer is read-only")


def fast_marching(
    image: Any,
    seeds: Iterable[Any],
    options: Optional[FastMarchingOptions] = None,
    output: Optional[np.ndarray] = None,
) -> FastMarchingResult:
    """
    Run the full pipeline and return the propagation report.

    Args:
        image: 2D numeric grid (rows x cols)
        seeds: Non-empty sequence of (x, y) seed coordinates
        options: Run options, defaults to FastMarchingOptions()
        output: Optional caller-owned float array of the same shape, filled
            in place and also returned as ``result.output``

    Returns:
        FastMarchingResult with raw distances and the final ``output`` grid

    Raises:
        ConfigurationError: On invalid input, seeds, options or buffer
    """
    options = options or FastMarchingOptions()
    field = as_field(image)
    rows, cols = field.shape
    points = normalize_seeds(seeds, rows, cols)
    if output is not None:
        _check_output_buffer(output, field.shape)

    logger.info(
        "Running fast marching pipeline",
        shape=field.shape,
        weight_map=options.weight_map.name,
        segmentation=options.segmentation_enabled,
        normalize_output=options.normalize_output,
        borrowed_output=output is not None,
    )
    cost = build_weights(
        field, points, options.weight_map, normalize_output=options.normalize_weights
    )
    if cost.shape != field.shape:
        raise ConfigurationError(
            f"cost field shape {cost.shape} does not match input shape {field.shape}"
        )

    result = propagate(
        cost,
        points,
        segmentation_threshold=options.segmentation_threshold,
        max_visits=options.max_visits,
    )
    result.output = finalize_output(
        result.distances,
        result.reached,
        segmentation_threshold=options.segmentation_threshold,
        normalize_output=options.normalize_output,
        out=output,
    )
    return result


def fmm(
    image: Any,
    seeds: Iterable[Any],
    weight_map: Union[WeightMap, str, int] = WeightMap.IDENTITY,
    segmentation_threshold: float = math.inf,
    normalize_output: bool = True,
    max_visits: int = UNLIMITED_VISITS,
    output: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Compute a geodesic distance map or a segmentation mask.

    Args:
        image: 2D numeric grid, e.g. a grayscale image as floats
        seeds: Non-empty sequence of (x, y) seed coordinates
        weight_map: IDENTITY, GRADIENT, ABSDIFF or LAPLACIAN (member, name or code)
        segmentation_threshold: If finite, cells with distance <= threshold
            become 1 and all others 0
        normalize_output: Normalize distances to [0, 1]; happens before
            segmentation
        max_visits: Maximum number of cells to visit, -1 for no limit
        output: Optional preallocated array to fill instead of allocating

    Returns:
        Array with the same shape as ``image``
    """
    try:
        options = FastMarchingOptions(
            weight_map=weight_map,
            segmentation_threshold=segmentation_threshold,
            normalize_output=normalize_output,
            max_visits=max_visits,
        )
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e
    return fast_marching(image, seeds, options=options, output=output).output

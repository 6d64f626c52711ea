"""Fast Marching Method geodesic distances and segmentation on 2D grids."""

from .core import (
    CellStatus,
    ConfigurationError,
    FastMarchingError,
    FastMarchingOptions,
    FastMarchingResult,
    Point,
    SeedError,
    WeightMap,
    fast_marching,
    fmm,
)

__version__ = "0.1.0"

__all__ = ['CellStatus', 'ConfigurationError', 'FastMarchingError', 'FastMarchingOptions',
           'FastMarchingResult', 'Point', 'SeedError', 'WeightMap', 'fast_marching', 'fmm']

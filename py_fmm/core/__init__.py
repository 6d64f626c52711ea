"""
Core fast marching functionality.
"""

from .errors import FastMarchingError, ConfigurationError, SeedError
from .grid import CellStatus, Point, DistanceGrid
from .eikonal import eikonal_update
from .weights import WeightMap, build_weights, gradient_weights, difference_weights, laplacian_weights
from .propagation import FastMarcher, FastMarchingResult, propagate
from .postprocess import normalize_distances, threshold_distances
from .fast_marching import FastMarchingOptions, fast_marching, fmm

__all__ = ['FastMarchingError', 'ConfigurationError', 'SeedError',
           'CellStatus', 'Point', 'DistanceGrid', 'eikonal_update',
           'WeightMap', 'build_weights', 'gradient_weights', 'difference_weights', 'laplacian_weights',
           'FastMarcher', 'FastMarchingResult', 'propagate',
           'normalize_distances', 'threshold_distances',
           'FastMarchingOptions', 'fast_marching', 'fmm']

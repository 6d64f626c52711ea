"""
Exception types raised by the fast marching pipeline.

Configuration problems are detected before any propagation starts and are
reported as ConfigurationError (a ValueError), so callers that already catch
ValueError keep working.
"""


class FastMarchingError(Exception):
    """Base class for all fast marching errors."""


class ConfigurationError(FastMarchingError, ValueError):
    """Invalid input grid, buffer or option."""


class SeedError(ConfigurationError):
    """Empty seed list or a seed outside the grid."""

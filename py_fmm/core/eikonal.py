"""
First-order upwind solver for the Eikonal equation |grad T| = c on a grid.

For a cell with neighbour arrival times along both axes the update solves

    (T - dhoriz)^2 + (T - dvert)^2 = c^2

using the smaller (upwind) neighbour on each axis. When that quadratic has
no real root the update falls back to a one-axis step along the cheaper
axis.
"""

import math
from typing import List, Tuple

INF = float("inf")


def eikonal_update(
    dleft: float, dright: float, dup: float, ddown: float, cost: float
) -> float:
    """
    Compute a tentative arrival time from the four axis neighbours.

    Args:
        dleft: Distance of the left neighbour (+inf if missing or unreached)
        dright: Distance of the right neighbour
        dup: Distance of the neighbour in the row above
        ddown: Distance of the neighbour in the row below
        cost: Local cost (inverse speed), non-negative

    Returns:
        New tentative distance; +inf when no neighbour has been reached
    """
    dhoriz = min(dleft, dright)
    dvert = min(dup, ddown)

    # inf - inf gives nan when one axis is unreached, which fails the
    # comparison below and selects the one-axis update
    det = 2.0 * dvert * dhoriz - dvert * dvert - dhoriz * dhoriz + 2.0 * cost * cost
    if det >= 0.0:
        return 0.5 * (dhoriz + dvert + math.sqrt(det))
    return min(dhoriz, dvert) + cost


def neighbour_distances(
    distance: List[float], cell_id: int, x: int, cols: int, area: int
) -> Tuple[float, float, float, float]:
    """Read (left, right, up, down) distances, +inf outside the grid."""
    dleft = distance[cell_id - 1] if x > 0 else INF
    dright = distance[cell_id + 1] if x + 1 < cols else INF
    dup = distance[cell_id - cols] if cell_id - cols >= 0 else INF
    ddown = distance[cell_id + cols] if cell_id + cols < area else INF
    return dleft, dright, dup, ddown

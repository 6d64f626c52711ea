"""
Fast Marching propagation engine.

This module implements the wavefront loop of the Fast Marching Method:
- Seeds start at distance 0 in a min-priority queue
- The closest Trial cell is popped and frozen (Known)
- Its four axis neighbours are re-evaluated with the Eikonal update

The queue uses lazy deletion. A cell may have several entries; the ones
popped after the cell became Known are stale and are dropped.
"""

import heapq
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
import structlog

from .eikonal import eikonal_update, neighbour_distances
from .errors import ConfigurationError
from .grid import CellStatus, DistanceGrid, Point

logger = structlog.get_logger()

UNLIMITED_VISITS = -1


@dataclass
class FastMarchingResult:
    """Outcome of a propagation run."""

    distances: np.ndarray  # Raw distances, +inf where unreached
    status: np.ndarray  # CellStatus codes per cell
    reached: np.ndarray  # True where a finite distance was assigned
    visit_order: List[int] = field(default_factory=list)  # Flat ids in finalization order
    visits: int = 0  # Cells finalized
    pushes: int = 0  # Queue insertions, seeds included
    stale_pops: int = 0  # Entries dropped because the cell was already known
    pruned_pops: int = 0  # Entries dropped by the segmentation threshold
    budget_exhausted: bool = False  # Budget ran out while live entries were still queued
    output: Optional[np.ndarray] = None  # Post-processed grid, set by the pipeline

    @property
    def shape(self) -> Tuple[int, int]:
        return self.distances.shape

    def known_mask(self) -> np.ndarray:
        return self.status == CellStatus.KNOWN


def validate_cost(cost: np.ndarray) -> None:
    """Reject cost fields that would break the monotone wavefront."""
    if np.isnan(cost).any():
        raise ConfigurationError("Cost field contains NaN values")
    if (cost < 0).any():
        raise ConfigurationError(
            f"Cost field must be non-negative, minimum is {float(cost.min())}"
        )


class FastMarcher:
    """
    Propagates geodesic distances from seeds over a cost field.

    The instance owns its distance/status buffers for a single run; calling
    run() again starts over from fresh buffers.
    """

    def __init__(
        self,
        cost: np.ndarray,
        seeds: Sequence[Point],
        segmentation_threshold: float = math.inf,
        max_visits: int = UNLIMITED_VISITS,
    ):
        """
        Initialize the engine.

        Args:
            cost: 2D non-negative cost field
            seeds: Validated seed points inside the grid
            segmentation_threshold: Cells popped with a larger distance are
                not expanded. +inf disables pruning.
            max_visits: Maximum number of cells to finalize, -1 for no limit
        """
        if cost.ndim != 2:
            raise ConfigurationError(f"Cost field must be 2D, got shape {cost.shape}")
        if not seeds:
            raise ConfigurationError("At least one seed is required")
        if max_visits < UNLIMITED_VISITS:
            raise ConfigurationError(
                f"max_visits must be >= -1 (-1 means unlimited), got {max_visits}"
            )
        if math.isnan(segmentation_threshold):
            raise ConfigurationError("segmentation_threshold must not be NaN")
        validate_cost(cost)

        self.rows, self.cols = cost.shape
        self.cost = cost.ravel().tolist()
        self.seeds = list(seeds)
        self.segmentation_threshold = float(segmentation_threshold)
        self.max_visits = max_visits
        self.grid: Optional[DistanceGrid] = None

    def run(self) -> FastMarchingResult:
        """Run the wavefront to completion or until the visit budget is spent."""
        grid = DistanceGrid(self.rows, self.cols)
        self.grid = grid

        cols = self.cols
        area = grid.area
        cost = self.cost
        distance = grid.distance
        status = grid.status
        reached = grid.reached
        threshold = self.segmentation_threshold
        prune = threshold < math.inf
        budget = math.inf if self.max_visits == UNLIMITED_VISITS else self.max_visits

        logger.info(
            "Starting fast marching",
            rows=self.rows,
            cols=cols,
            seeds=len(self.seeds),
            max_visits=self.max_visits,
            segmentation_threshold=threshold,
        )

        # Priority queue: (distance, cell_id, column)
        heap: List[Tuple[float, int, int]] = []
        for seed in self.seeds:
            cell_id = grid.cell_id(seed.x, seed.y)
            distance[cell_id] = 0.0
            reached[cell_id] = True
            heapq.heappush(heap, (0.0, cell_id, seed.x))

        visit_order: List[int] = []
        pushes = len(heap)
        stale_pops = 0
        pruned_pops = 0

        def update(cell_id: int, x: int) -> None:
            nonlocal pushes
            if status[cell_id] == CellStatus.KNOWN:
                return
            estimate = eikonal_update(
                *neighbour_distances(distance, cell_id, x, cols, area), cost[cell_id]
            )
            if estimate < distance[cell_id]:
                distance[cell_id] = estimate
                reached[cell_id] = True
                if status[cell_id] == CellStatus.FAR:
                    status[cell_id] = CellStatus.TRIAL
                heapq.heappush(heap, (estimate, cell_id, x))
                pushes += 1

        while heap and budget > 0:
            _, cell_id, x = heapq.heappop(heap)

            if status[cell_id] == CellStatus.KNOWN:
                stale_pops += 1
                continue
            if prune and distance[cell_id] > threshold:
                pruned_pops += 1
                continue

            status[cell_id] = CellStatus.KNOWN
            visit_order.append(cell_id)
            budget -= 1

            if x > 0:
                update(cell_id - 1, x - 1)
            if x + 1 < cols:
                update(cell_id + 1, x + 1)
            if cell_id - cols >= 0:
                update(cell_id - cols, x)
            if cell_id + cols < area:
                update(cell_id + cols, x)

        result = FastMarchingResult(
            distances=grid.distances(),
            status=grid.status_array(),
            reached=grid.reached_mask(),
            visit_order=visit_order,
            visits=len(visit_order),
            pushes=pushes,
            stale_pops=stale_pops,
            pruned_pops=pruned_pops,
            budget_exhausted=budget <= 0 and any(
                status[queued_id] != CellStatus.KNOWN
                and not (prune and distance[queued_id] > threshold)
                for _, queued_id, _ in heap
            ),
        )

        if result.budget_exhausted:
            logger.warning(
                "Visit budget exhausted",
                max_visits=self.max_visits,
                queued=len(heap),
            )
        logger.info(
            "Fast marching completed",
            visits=result.visits,
            pushes=result.pushes,
            stale_pops=result.stale_pops,
            pruned_pops=result.pruned_pops,
            unreached=int(area - result.reached.sum()),
        )
        return result


def propagate(
    cost: np.ndarray,
    seeds: Sequence[Point],
    segmentation_threshold: float = math.inf,
    max_visits: int = UNLIMITED_VISITS,
) -> FastMarchingResult:
    """Run a FastMarcher once and return its result."""
    return FastMarcher(cost, seeds, segmentation_threshold, max_visits).run()

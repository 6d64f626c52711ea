"""FastAPI main application."""

import logging
import math
from typing import List, Optional, Tuple

import numpy as np
import structlog
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, ValidationError

from .. import __version__
from ..config import settings
from ..core.errors import ConfigurationError
from ..core.fast_marching import FastMarchingOptions, FastMarchingResult, fast_marching
from ..core.weights import WeightMap

# Configure logging
logging.basicConfig(level=settings.log_level.upper(), format="%(message)s")
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Fast Marching API",
    description="Geodesic distance maps and seeded segmentation on 2D grids",
    version=__version__,
)


# Request/Response models
class DistanceMapRequest(BaseModel):
    """Request to compute a geodesic distance map."""

    grid: List[List[float]] = Field(..., description="Input field, row-major")
    seeds: List[Tuple[int, int]] = Field(
        ..., min_length=1, description="Seed coordinates as [x, y] pairs"
    )
    weight_map: str = Field(
        default_factory=lambda: settings.default_weight_map,
        description="identity, gradient, absdiff or laplacian",
    )
    normalize_output: bool = Field(True, description="Normalize distances to [0, 1]")
    normalize_weights: bool = Field(
        False, description="Normalize gradient/laplacian weights"
    )
    max_visits: int = Field(-1, ge=-1, description="Visit budget, -1 for unlimited")


class SegmentRequest(DistanceMapRequest):
    """Request to compute a segmentation mask."""

    threshold: float = Field(
        ..., allow_inf_nan=False, description="Segmentation threshold on distances"
    )


class DistanceMapResponse(BaseModel):
    """Distance map; unreached cells are null."""

    rows: int
    cols: int
    distances: List[List[Optional[float]]]
    visits: int
    budget_exhausted: bool


class SegmentResponse(BaseModel):
    """Binary segmentation mask."""

    rows: int
    cols: int
    mask: List[List[int]]
    area: int
    visits: int


def _to_array(grid: List[List[float]]) -> np.ndarray:
    try:
        field = np.asarray(grid, dtype=np.float64)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Grid rows must have equal length: {e}")
    if field.ndim != 2 or field.size == 0:
        raise HTTPException(status_code=422, detail="Grid must be a non-empty 2D array")
    if field.size > settings.max_grid_cells:
        raise HTTPException(
            status_code=413,
            detail=f"Grid has {field.size} cells, limit is {settings.max_grid_cells}",
        )
    return field


def _run(request: DistanceMapRequest, threshold: float = math.inf) -> FastMarchingResult:
    field = _to_array(request.grid)
    try:
        options = FastMarchingOptions(
            weight_map=request.weight_map,
            segmentation_threshold=threshold,
            normalize_output=request.normalize_output,
            normalize_weights=request.normalize_weights,
            max_visits=request.max_visits,
        )
        return fast_marching(field, request.seeds, options=options)
    except (ConfigurationError, ValidationError) as e:
        logger.warning("Rejected fast marching request", error=str(e))
        raise HTTPException(status_code=422, detail=str(e))


# Event handlers
@app.on_event("startup")
async def startup_event():
    """Log startup."""
    logger.info("Starting Fast Marching API", version=__version__)


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Fast Marching API",
        "version": __version__,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/weight-maps", response_model=List[str])
async def list_weight_maps():
    """Available weight map names."""
    return [member.name.lower() for member in WeightMap]


@app.post("/distance-map", response_model=DistanceMapResponse)
def distance_map(request: DistanceMapRequest):
    """Compute a geodesic distance map from the seeds."""
    result = _run(request)
    output = result.output
    rows, cols = output.shape
    distances = [
        [float(v) if math.isfinite(v) else None for v in row] for row in output.tolist()
    ]
    logger.info("Distance map computed", rows=rows, cols=cols, visits=result.visits)
    return DistanceMapResponse(
        rows=rows,
        cols=cols,
        distances=distances,
        visits=result.visits,
        budget_exhausted=result.budget_exhausted,
    )


@app.post("/segment", response_model=SegmentResponse)
def segment(request: SegmentRequest):
    """Segment the region within ``threshold`` geodesic distance of the seeds."""
    result = _run(request, threshold=request.threshold)
    mask = result.output.astype(np.int8)
    rows, cols = mask.shape
    area = int(mask.sum())
    logger.info("Segmentation computed", rows=rows, cols=cols, area=area)
    return SegmentResponse(
        rows=rows,
        cols=cols,
        mask=mask.tolist(),
        area=area,
        visits=result.visits,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)

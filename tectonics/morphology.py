"""Binary morphology on boolean masks over mesh adjacency."""

from __future__ import annotations

import numpy as np

from tectonics.raster import Raster, as_raster, grid_of, require_grid


def _check_radius(radius: int) -> int:
    radius = int(radius)
    if radius < 0:
        raise ValueError("radius must be non-negative")
    return radius


def _touches(mask: np.ndarray, adjacency) -> np.ndarray:
    return (adjacency @ mask.astype(np.float64)) > 0.0


def dilation(mask: Raster, radius: int = 1) -> Raster:
    """Grow the mask by ``radius`` hops."""

    grid = grid_of(mask)
    result = np.asarray(mask, dtype=bool).copy()
    for _ in range(_check_radius(radius)):
        result |= _touches(result, grid.adjacency)
    return as_raster(result, grid)


def erosion(mask: Raster, radius: int = 1) -> Raster:
    """Shrink the mask by ``radius`` hops: a cell survives only if every neighbor is set."""

    grid = grid_of(mask)
    result = np.asarray(mask, dtype=bool).copy()
    for _ in range(_check_radius(radius)):
        result &= ~_touches(~result, grid.adjacency)
    return as_raster(result, grid)


def closing(mask: Raster, radius: int = 1) -> Raster:
    return erosion(dilation(mask, radius), radius)


def opening(mask: Raster, radius: int = 1) -> Raster:
    return dilation(erosion(mask, radius), radius)


def difference(a: Raster, b: Raster) -> Raster:
    """Cells set in ``a`` and not in ``b``."""

    grid = grid_of(a)
    require_grid(grid, b)
    return as_raster(np.asarray(a, dtype=bool) & ~np.asarray(b, dtype=bool), grid)

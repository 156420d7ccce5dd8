"""Per-cell field containers tagged with the grid they are defined over."""

from __future__ import annotations

import numpy as np

from tectonics.grid import Grid, GridMismatchError


class Raster(np.ndarray):
    """A numpy array with one leading entry per grid cell and a ``grid`` tag.

    Views, slices and ufunc results inherit the tag of their source.
    """

    grid: Grid | None

    def __array_finalize__(self, obj: np.ndarray | None) -> None:
        self.grid = getattr(obj, "grid", None)


def as_raster(values: np.ndarray, grid: Grid) -> Raster:
    """Tag ``values`` with ``grid`` without copying."""

    arr = np.asarray(values)
    if arr.ndim == 0 or arr.shape[0] != grid.cell_count:
        raise ValueError(f"field must have {grid.cell_count} entries along its first axis")
    raster = arr.view(Raster)
    raster.grid = grid
    return raster


def scalar_raster(grid: Grid, fill: float = 0.0, *, dtype: np.dtype | type = np.float32) -> Raster:
    return as_raster(np.full(grid.cell_count, fill, dtype=dtype), grid)


def vector_raster(grid: Grid, fill: float = 0.0, *, dtype: np.dtype | type = np.float32) -> Raster:
    return as_raster(np.full((grid.cell_count, 3), fill, dtype=dtype), grid)


def label_raster(grid: Grid, fill: int = 0) -> Raster:
    return as_raster(np.full(grid.cell_count, fill, dtype=np.int32), grid)


def mask_raster(grid: Grid, fill: bool = False) -> Raster:
    return as_raster(np.full(grid.cell_count, fill, dtype=bool), grid)


def require_grid(grid: Grid, *rasters: np.ndarray) -> None:
    """Fail unless every raster is defined over exactly this grid object."""

    for raster in rasters:
        other = getattr(raster, "grid", None)
        if other is not grid:
            raise GridMismatchError("fields are defined over different grids")
        if raster.shape[0] != grid.cell_count:
            raise GridMismatchError(f"field length {raster.shape[0]} does not match grid ({grid.cell_count} cells)")


def grid_of(raster: np.ndarray) -> Grid:
    grid = getattr(raster, "grid", None)
    if grid is None:
        raise GridMismatchError("field is not tagged with a grid")
    return grid

"""Isostatic displacement of crust floating on the mantle."""

from __future__ import annotations

import math

import numpy as np

from tectonics.config import IsostasyConfig
from tectonics.raster import Raster, grid_of, require_grid, scalar_raster


def isostatic_displacement(
    thickness: Raster,
    density: Raster,
    mantle_density: float | None = None,
    out: Raster | None = None,
    *,
    config: IsostasyConfig | None = None,
) -> Raster:
    """Height of the crust surface above its compensation level.

    A column of ``thickness`` with ``density`` sinks until it displaces an equal
    mass of mantle, leaving ``thickness * (1 - density / mantle_density)`` above.
    ``out`` may alias either input.
    """

    grid = grid_of(thickness)
    require_grid(grid, density)
    rho_mantle = (config or IsostasyConfig()).mantle_density if mantle_density is None else mantle_density
    if not math.isfinite(float(rho_mantle)) or rho_mantle <= 0:
        raise ValueError("mantle_density must be a positive, finite density")

    result = out if out is not None else scalar_raster(grid)
    require_grid(grid, result)
    column = np.asarray(thickness, dtype=np.float64)
    result[...] = column - column * np.asarray(density, dtype=np.float64) / float(rho_mantle)
    return result

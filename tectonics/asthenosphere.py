"""Asthenosphere pressure and flow derived from a buoyancy field."""

from __future__ import annotations

import logging

import numpy as np

from tectonics.config import AsthenosphereConfig
from tectonics.fields import cross, diffusion_by_constant, gradient
from tectonics.raster import Raster, as_raster, grid_of, require_grid, vector_raster
from tectonics.scratch import ScratchArena

logger = logging.getLogger(__name__)


def smooth_pressure(
    density: Raster,
    iterations: int | None = None,
    out_pressure: Raster | None = None,
    *,
    config: AsthenosphereConfig | None = None,
    scratch: ScratchArena | None = None,
) -> Raster:
    """Approximate asthenosphere surface pressure by repeatedly diffusing density.

    Each pass replaces a cell's value by a blend with its neighbor mean, so the
    result never leaves the range of ``density``. ``iterations <= 0`` returns a
    copy of the input. ``out_pressure`` may be ``density`` itself: passes run on
    a separate float64 work raster and the result is written once at the end.
    """

    grid = grid_of(density)
    if density.ndim != 1:
        raise ValueError("density must be a scalar field")
    cfg = config or AsthenosphereConfig()
    passes = cfg.smoothing_iterations if iterations is None else int(iterations)
    if not 0.0 <= cfg.diffusion_constant <= 1.0:
        raise ValueError("diffusion_constant must lie in [0, 1]")

    pressure = out_pressure if out_pressure is not None else as_raster(np.zeros_like(np.asarray(density)), grid)
    require_grid(grid, pressure)
    if pressure.shape != density.shape:
        raise ValueError("out_pressure must match the shape of density")
    arena = scratch or ScratchArena()

    with arena.scope("get_asthenosphere_pressure"):
        work = arena.scalar(grid, dtype=np.float64)
        work[...] = density
        for _ in range(max(0, passes)):
            diffusion_by_constant(work, cfg.diffusion_constant, out=work)
        pressure[...] = work

    logger.debug("smooth_pressure: %d diffusion passes over %d cells", max(0, passes), grid.cell_count)
    return pressure


def asthenosphere_velocity(pressure: Raster, out: Raster | None = None) -> Raster:
    """Velocity as the gradient of pressure, pointing toward increasing pressure."""

    grid = grid_of(pressure)
    velocity = out if out is not None else vector_raster(grid)
    return gradient(pressure, out=velocity)


def angular_velocity(velocity: Raster, out: Raster | None = None) -> Raster:
    """Per-cell ``velocity x position``; ``out`` may be ``velocity`` itself."""

    grid = grid_of(velocity)
    return cross(velocity, grid.require_positions(), out=out)

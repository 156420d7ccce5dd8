"""Conservative downhill transport and in-place weathering of crust reservoirs."""

from __future__ import annotations

import logging
import math

import numpy as np

from tectonics.config import ErosionConfig, WeatheringConfig
from tectonics.crust import Crust
from tectonics.fields import average_difference
from tectonics.grid import Grid
from tectonics.raster import Raster, grid_of, require_grid
from tectonics.scratch import ScratchArena

logger = logging.getLogger(__name__)


def transport(
    displacement: Raster,
    sealevel: float,
    timestep: float,
    reservoirs: Crust,
    out_deltas: Crust | None = None,
    *,
    config: ErosionConfig | None = None,
    scratch: ScratchArena | None = None,
) -> Crust:
    """Move reservoir material downhill along grid arrows.

    Flux on an arrow is proportional to the drop in water height across it.
    Each cell's outbound flux is drawn from its reservoirs in priority order
    (sediment first, sial last) and never exceeds what the cell holds. The
    result is written to ``out_deltas`` (reset first) for the caller to apply;
    ``out_deltas`` must not share memory with ``reservoirs``.
    """

    grid = grid_of(displacement)
    _validate_step(grid, displacement, timestep, reservoirs)
    cfg = config or ErosionConfig()
    deltas = out_deltas if out_deltas is not None else Crust.zeros(grid)
    _validate_deltas(grid, reservoirs, deltas)
    arena = scratch or ScratchArena()

    with arena.scope("get_erosion"):
        water_height = arena.scalar(grid)
        _water_height(displacement, sealevel, out=water_height)

        rate = float(cfg.precipitation_rate) * float(timestep) * float(cfg.erosion_coefficient)
        edge_flux = outbound_edge_flux(grid, water_height, rate)

        outbound = arena.scalar(grid, dtype=np.float64)
        outbound[...] = np.bincount(grid.arrow_from, weights=edge_flux, minlength=grid.cell_count)

        shares = [arena.scalar(grid, dtype=np.float64) for _ in reservoirs.reservoirs()]
        _withdrawal_shares(grid, outbound, reservoirs, shares)

        # Shares for every cell are final before any transfer is made.
        deltas.reset()
        for (name, _), share in zip(reservoirs.reservoirs(), shares):
            transfer = edge_flux * np.asarray(share, dtype=np.float64)[grid.arrow_from]
            moved = np.bincount(grid.arrow_to, weights=transfer, minlength=grid.cell_count) - np.bincount(
                grid.arrow_from, weights=transfer, minlength=grid.cell_count
            )
            getattr(deltas, name)[...] = moved

        logger.debug(
            "transport: %d/%d arrows downhill, outbound candidate %.4g",
            int(np.count_nonzero(edge_flux)),
            grid.arrow_count,
            float(np.sum(outbound, dtype=np.float64)),
        )
    return deltas


def outbound_edge_flux(grid: Grid, water_height: np.ndarray, rate: float) -> np.ndarray:
    """Per-arrow flux candidate: positive height drop times ``rate``, zero uphill or flat."""

    heights = np.asarray(water_height, dtype=np.float64)
    drop = heights[grid.arrow_from] - heights[grid.arrow_to]
    return np.where(drop > 0.0, drop * rate, 0.0)


def _withdrawal_shares(grid: Grid, outbound: Raster, reservoirs: Crust, shares: list[Raster]) -> None:
    total = np.asarray(outbound, dtype=np.float64)
    remaining = total.copy()
    unsupplied = np.ones(grid.cell_count, dtype=np.float64)
    counts = grid.neighbor_count.astype(np.float64)
    per_edge = np.divide(1.0, counts, out=np.zeros_like(counts), where=counts > 0)

    for (_, quantity), share in zip(reservoirs.reservoirs(), shares):
        fraction = np.divide(
            np.asarray(quantity, dtype=np.float64),
            remaining,
            out=np.zeros_like(remaining),
            where=remaining > 0.0,
        )
        np.clip(fraction, 0.0, 1.0, out=fraction)
        # share of each outbound arrow's flux drawn from this reservoir
        share[...] = fraction * unsupplied * per_edge
        remaining *= 1.0 - fraction
        unsupplied *= 1.0 - fraction


def weather(
    displacement: Raster,
    sealevel: float,
    timestep: float,
    reservoirs: Crust,
    out_deltas: Crust | None = None,
    *,
    config: WeatheringConfig | None = None,
    scratch: ScratchArena | None = None,
) -> Crust:
    """Convert exposed bedrock into sediment without moving it between cells.

    Cells standing above their neighbors weather in proportion to that relief.
    A sediment blanket thicker than ``critical_sediment_thickness`` shields the
    bedrock entirely. Bedrock layers are drawn down in proportion to their
    thickness, and the sum of the deltas in each cell is zero.
    """

    grid = grid_of(displacement)
    _validate_step(grid, displacement, timestep, reservoirs)
    cfg = config or WeatheringConfig()
    if cfg.critical_sediment_thickness <= 0:
        raise ValueError("critical_sediment_thickness must be positive")
    if cfg.earth_surface_gravity <= 0:
        raise ValueError("earth_surface_gravity must be positive")
    deltas = out_deltas if out_deltas is not None else Crust.zeros(grid)
    _validate_deltas(grid, reservoirs, deltas)
    arena = scratch or ScratchArena()

    with arena.scope("get_weathering"):
        water_height = arena.scalar(grid)
        _water_height(displacement, sealevel, out=water_height)

        relief = arena.scalar(grid)
        average_difference(water_height, out=relief)
        np.negative(relief, out=relief)
        np.maximum(relief, 0.0, out=relief)

        rate = (
            float(cfg.weathering_coefficient)
            * float(cfg.precipitation_rate)
            * float(timestep)
            * float(cfg.surface_gravity)
            / float(cfg.earth_surface_gravity)
        )
        sediment = np.asarray(reservoirs.sediment, dtype=np.float64)
        exposure = np.clip(1.0 - sediment / float(cfg.critical_sediment_thickness), 0.0, 1.0)

        bedrock = (
            np.asarray(reservoirs.sedimentary, dtype=np.float64)
            + np.asarray(reservoirs.metamorphic, dtype=np.float64)
            + np.asarray(reservoirs.sial, dtype=np.float64)
        )
        weathering = np.asarray(relief, dtype=np.float64) * rate * exposure
        weathering = np.clip(np.minimum(weathering, bedrock), 0.0, None)

        usable = bedrock >= float(cfg.min_conserved_thickness)
        ratio = np.divide(weathering, bedrock, out=np.zeros_like(bedrock), where=usable)

        deltas.reset()
        removed = np.zeros(grid.cell_count, dtype=np.float64)
        for name in ("sedimentary", "metamorphic", "sial"):
            loss = np.asarray(getattr(reservoirs, name), dtype=np.float64) * ratio
            getattr(deltas, name)[...] = -loss
            removed += loss
        deltas.sediment[...] = removed

        logger.debug("weather: %.4g bedrock converted to sediment", float(removed.sum()))
    return deltas


def _water_height(displacement: Raster, sealevel: float, *, out: Raster) -> Raster:
    np.subtract(displacement, float(sealevel), out=out, casting="unsafe")
    np.maximum(out, 0.0, out=out)
    return out


def _validate_step(grid: Grid, displacement: Raster, timestep: float, reservoirs: Crust) -> None:
    if not math.isfinite(float(timestep)) or timestep < 0:
        raise ValueError("timestep must be a finite, non-negative duration")
    if displacement.ndim != 1:
        raise ValueError("displacement must be a scalar field")
    require_grid(grid, *reservoirs.layers())


def _validate_deltas(grid: Grid, reservoirs: Crust, deltas: Crust) -> None:
    require_grid(grid, *deltas.layers())
    if deltas is reservoirs or deltas.shares_memory(reservoirs):
        raise ValueError("out_deltas must not alias reservoirs")

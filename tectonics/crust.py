"""Named per-cell crust reservoirs."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Iterator

import numpy as np

from tectonics.grid import Grid
from tectonics.raster import Raster, as_raster, require_grid, scalar_raster


# Unconsolidated material first: erosion drains reservoirs in this order.
RESERVOIR_PRIORITY = ("sediment", "sedimentary", "metamorphic", "sial")


@dataclass(frozen=True, eq=False)
class Crust:
    """Thickness of each crust layer per cell.

    ``sediment``, ``sedimentary``, ``metamorphic`` and ``sial`` are finite,
    non-negative reservoirs. ``sima`` is the basaltic background layer and is
    never drawn down by transport.
    """

    sediment: Raster
    sedimentary: Raster
    metamorphic: Raster
    sial: Raster
    sima: Raster

    def __post_init__(self) -> None:
        grid = getattr(self.sediment, "grid", None)
        if grid is None:
            raise ValueError("crust layers must be grid-tagged rasters")
        require_grid(grid, *self.layers())
        for name, layer in self.items():
            if layer.ndim != 1:
                raise ValueError(f"crust layer {name} must be a scalar field")

    @classmethod
    def zeros(cls, grid: Grid) -> "Crust":
        return cls(**{f.name: scalar_raster(grid) for f in fields(cls)})

    @classmethod
    def from_arrays(cls, grid: Grid, **layers: np.ndarray) -> "Crust":
        """Build a bundle from plain arrays; omitted layers are zero."""

        names = {f.name for f in fields(cls)}
        unknown = set(layers) - names
        if unknown:
            raise ValueError(f"unknown crust layers: {sorted(unknown)}")
        built = {}
        for name in names:
            layer = scalar_raster(grid)
            if name in layers:
                layer[...] = as_raster(np.asarray(layers[name], dtype=np.float32), grid)
            built[name] = layer
        return cls(**built)

    @property
    def grid(self) -> Grid:
        return self.sediment.grid

    def items(self) -> Iterator[tuple[str, Raster]]:
        for f in fields(self):
            yield f.name, getattr(self, f.name)

    def layers(self) -> tuple[Raster, ...]:
        return tuple(layer for _, layer in self.items())

    def reservoirs(self) -> tuple[tuple[str, Raster], ...]:
        """Finite reservoirs in drain priority order."""

        return tuple((name, getattr(self, name)) for name in RESERVOIR_PRIORITY)

    def reset(self) -> None:
        for layer in self.layers():
            layer.fill(0.0)

    def copy(self) -> "Crust":
        grid = self.grid
        return Crust(**{name: as_raster(np.array(layer), grid) for name, layer in self.items()})

    def apply(self, delta: "Crust") -> "Crust":
        """Add a same-grid delta bundle into this one in place."""

        require_grid(self.grid, *delta.layers())
        for name, layer in self.items():
            layer += getattr(delta, name)
        return self

    def shares_memory(self, other: "Crust") -> bool:
        return any(np.shares_memory(a, b) for a in self.layers() for b in other.layers())

    def conserved_total(self) -> float:
        """Total of the finite reservoirs; transport leaves this unchanged."""

        return float(sum(np.sum(layer, dtype=np.float64) for _, layer in self.reservoirs()))

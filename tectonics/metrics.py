"""Summary statistics for plate maps and crust bundles."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from tectonics.crust import RESERVOIR_PRIORITY, Crust
from tectonics.raster import Raster, as_raster, grid_of


@dataclass(frozen=True)
class ConnectivityMetrics:
    """Connected component and coverage summary for a boolean mask over a grid."""

    num_components: int
    largest_component_area: int
    total_cells: int
    largest_ratio: float
    coverage_fraction: float


@dataclass(frozen=True)
class PlateMetrics:
    plate_count: int
    plate_sizes: tuple[int, ...]
    largest_plate_size: int
    unlabeled_cells: int
    labeled_fraction: float
    max_components_per_plate: int


@dataclass(frozen=True)
class ReservoirTotals:
    sediment: float
    sedimentary: float
    metamorphic: float
    sial: float

    @property
    def conserved(self) -> float:
        return self.sediment + self.sedimentary + self.metamorphic + self.sial


def connected_components_metrics(mask: Raster) -> ConnectivityMetrics:
    """Compute connected component statistics for a mask, following grid arrows."""

    grid = grid_of(mask)
    if mask.ndim != 1:
        raise ValueError("mask must be a scalar field")

    flat = np.asarray(mask, dtype=bool)
    total = int(flat.sum())
    if total == 0:
        return ConnectivityMetrics(0, 0, 0, 0.0, 0.0)

    indptr = grid.adjacency.indptr
    indices = grid.adjacency.indices
    visited = np.zeros(grid.cell_count, dtype=np.uint8)
    sizes: list[int] = []

    for start in np.flatnonzero(flat):
        if visited[start]:
            continue
        visited[start] = 1
        stack = [int(start)]
        component_size = 0

        while stack:
            current = stack.pop()
            component_size += 1
            for idx in indices[indptr[current] : indptr[current + 1]]:
                if flat[idx] and not visited[idx]:
                    visited[idx] = 1
                    stack.append(int(idx))

        sizes.append(component_size)

    largest = max(sizes)
    return ConnectivityMetrics(
        num_components=len(sizes),
        largest_component_area=largest,
        total_cells=total,
        largest_ratio=float(largest / total),
        coverage_fraction=float(total / grid.cell_count),
    )


def plate_metrics(labels: Raster) -> PlateMetrics:
    grid = grid_of(labels)
    ids = np.asarray(labels)
    plate_ids = [int(p) for p in np.unique(ids) if p != 0]
    sizes = tuple(int(np.count_nonzero(ids == p)) for p in plate_ids)

    max_components = 0
    for plate_id in plate_ids:
        components = connected_components_metrics(as_raster(ids == plate_id, grid)).num_components
        max_components = max(max_components, components)

    unlabeled = int(np.count_nonzero(ids == 0))
    return PlateMetrics(
        plate_count=len(plate_ids),
        plate_sizes=sizes,
        largest_plate_size=max(sizes, default=0),
        unlabeled_cells=unlabeled,
        labeled_fraction=float(1.0 - unlabeled / grid.cell_count),
        max_components_per_plate=max_components,
    )


def reservoir_totals(crust: Crust) -> ReservoirTotals:
    totals = {name: float(np.sum(getattr(crust, name), dtype=np.float64)) for name in RESERVOIR_PRIORITY}
    return ReservoirTotals(**totals)


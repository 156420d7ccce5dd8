"""Mesh topology shared by every field and engine."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy import sparse


class GridMismatchError(ValueError):
    """Raised when fields defined over different grids are combined."""


@dataclass(frozen=True, eq=False)
class Grid:
    """Immutable cell adjacency: directed arrows, neighbor counts, optional positions.

    Two grids are equal only if they are the same object. Fields carry a reference
    to their grid, and two meshes with equal cell counts may still differ in
    adjacency.
    """

    cell_count: int
    arrows: np.ndarray
    neighbor_count: np.ndarray
    adjacency: sparse.csr_matrix
    positions: np.ndarray | None = None

    @classmethod
    def from_arrows(
        cls,
        arrows: np.ndarray | list[tuple[int, int]],
        cell_count: int | None = None,
        *,
        positions: np.ndarray | None = None,
    ) -> "Grid":
        """Build a grid from precomputed directed (from, to) pairs."""

        arr = np.asarray(arrows, dtype=np.int64)
        if arr.size == 0:
            arr = arr.reshape(0, 2)
        if arr.ndim != 2 or arr.shape[1] != 2:
            raise ValueError("arrows must have shape (E, 2)")

        if cell_count is None:
            if positions is not None:
                cell_count = int(np.asarray(positions).shape[0])
            elif arr.size:
                cell_count = int(arr.max()) + 1
            else:
                raise ValueError("cell_count is required for a grid without arrows")
        cell_count = int(cell_count)
        if cell_count <= 0:
            raise ValueError("cell_count must be positive")

        if arr.size:
            if int(arr.min()) < 0 or int(arr.max()) >= cell_count:
                raise ValueError(f"arrow endpoints must lie in [0, {cell_count})")
            if np.any(arr[:, 0] == arr[:, 1]):
                raise ValueError("arrows must not be self-loops")

        adjacency = sparse.csr_matrix(
            (np.ones(arr.shape[0], dtype=np.float64), (arr[:, 0], arr[:, 1])),
            shape=(cell_count, cell_count),
        )
        # csr_matrix sums duplicate entries
        if adjacency.nnz != arr.shape[0]:
            raise ValueError("arrows must not contain duplicates")
        adjacency.sort_indices()

        neighbor_count = np.bincount(arr[:, 0], minlength=cell_count).astype(np.int32)

        pos = None
        if positions is not None:
            pos = np.array(positions, dtype=np.float64)
            if pos.shape != (cell_count, 3):
                raise ValueError(f"positions must have shape ({cell_count}, 3)")
            pos.setflags(write=False)

        arr = arr.copy()
        arr.setflags(write=False)
        neighbor_count.setflags(write=False)
        for part in (adjacency.data, adjacency.indices, adjacency.indptr):
            part.setflags(write=False)
        return cls(
            cell_count=cell_count,
            arrows=arr,
            neighbor_count=neighbor_count,
            adjacency=adjacency,
            positions=pos,
        )

    @classmethod
    def from_neighbor_lists(
        cls,
        neighbors: list[list[int]],
        *,
        positions: np.ndarray | None = None,
    ) -> "Grid":
        """Build a grid from per-cell neighbor lists, one arrow per listed neighbor."""

        arrows = [(cell, int(other)) for cell, row in enumerate(neighbors) for other in row]
        return cls.from_arrows(arrows, len(neighbors), positions=positions)

    @property
    def arrow_from(self) -> np.ndarray:
        return self.arrows[:, 0]

    @property
    def arrow_to(self) -> np.ndarray:
        return self.arrows[:, 1]

    @property
    def arrow_count(self) -> int:
        return int(self.arrows.shape[0])

    def neighbors(self, cell: int) -> np.ndarray:
        """Indices of cells reachable from ``cell`` along one arrow."""

        start = self.adjacency.indptr[cell]
        stop = self.adjacency.indptr[cell + 1]
        return self.adjacency.indices[start:stop]

    def require_positions(self) -> np.ndarray:
        if self.positions is None:
            raise ValueError("grid has no cell positions")
        return self.positions

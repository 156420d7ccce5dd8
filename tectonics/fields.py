"""Field algebra over mesh adjacency: neighbor averages, diffusion, gradient, cross."""

from __future__ import annotations

import numpy as np

from tectonics.raster import Raster, as_raster, grid_of, require_grid, scalar_raster, vector_raster


def neighbor_mean(field: Raster) -> np.ndarray:
    """Mean of each cell's neighbors (float64); cells without neighbors get their own value."""

    grid = grid_of(field)
    values = np.asarray(field, dtype=np.float64)
    total = grid.adjacency @ values
    counts = grid.neighbor_count.astype(np.float64)
    if values.ndim > 1:
        counts = counts[:, None]
    mean = np.divide(total, counts, out=values.copy(), where=counts > 0)
    return mean


def average_difference(field: Raster, out: Raster | None = None) -> Raster:
    """Mean neighbor value minus the cell's own value."""

    grid = grid_of(field)
    result = out if out is not None else as_raster(np.zeros_like(np.asarray(field)), grid)
    require_grid(grid, result)
    result[...] = neighbor_mean(field) - np.asarray(field, dtype=np.float64)
    return result


def diffusion_by_constant(field: Raster, constant: float, out: Raster | None = None) -> Raster:
    """One explicit diffusion step, ``field + constant * (neighbor_mean - field)``.

    ``out`` may be ``field`` itself: the neighbor mean is computed before any write.
    """

    grid = grid_of(field)
    result = out if out is not None else as_raster(np.zeros_like(np.asarray(field)), grid)
    require_grid(grid, result)
    values = np.asarray(field, dtype=np.float64)
    result[...] = values + float(constant) * (neighbor_mean(field) - values)
    return result


def gradient(field: Raster, out: Raster | None = None) -> Raster:
    """Least-squares per-cell gradient of a scalar field from arrow differences.

    Each cell solves ``(sum d d^T) g = sum d df`` over its outbound arrows with a
    pseudo-inverse. When the cells do not lie in one plane they are taken to sit
    on a sphere about the origin: offsets are projected onto each cell's tangent
    plane first, so ``g`` has no radial component.
    """

    grid = grid_of(field)
    positions = grid.require_positions()
    result = out if out is not None else vector_raster(grid)
    require_grid(grid, result)

    src = grid.arrow_from
    dst = grid.arrow_to
    values = np.asarray(field, dtype=np.float64)
    offsets = positions[dst] - positions[src]
    differences = values[dst] - values[src]
    if not _is_planar(positions):
        normals = _unit_normals(positions)[src]
        offsets -= np.sum(offsets * normals, axis=1, keepdims=True) * normals

    moments = np.zeros((grid.cell_count, 3, 3), dtype=np.float64)
    np.add.at(moments, src, offsets[:, :, None] * offsets[:, None, :])
    projected = np.zeros((grid.cell_count, 3), dtype=np.float64)
    np.add.at(projected, src, offsets * differences[:, None])

    solved = np.einsum("nij,nj->ni", np.linalg.pinv(moments, hermitian=True), projected)
    result[...] = solved
    return result


def _is_planar(positions: np.ndarray) -> bool:
    centered = positions - positions.mean(axis=0)
    singular = np.linalg.svd(centered, compute_uv=False)
    if singular.size < 3:
        return True
    return bool(singular[-1] <= 1e-9 * max(float(singular[0]), 1.0))


def _unit_normals(positions: np.ndarray) -> np.ndarray:
    lengths = np.linalg.norm(positions, axis=1, keepdims=True)
    return np.divide(positions, lengths, out=np.zeros_like(positions), where=lengths > 0.0)


def cross(a: Raster, b: np.ndarray, out: Raster | None = None) -> Raster:
    """Per-cell cross product ``a x b``; ``b`` may be an untagged (N, 3) array such as positions."""

    grid = grid_of(a)
    if getattr(b, "grid", None) is not None:
        require_grid(grid, b)
    result = out if out is not None else vector_raster(grid)
    require_grid(grid, result)
    result[...] = np.cross(np.asarray(a, dtype=np.float64), np.asarray(b, dtype=np.float64))
    return result


def magnitude(vectors: Raster, out: Raster | None = None) -> Raster:
    grid = grid_of(vectors)
    result = out if out is not None else scalar_raster(grid)
    require_grid(grid, result)
    result[...] = np.linalg.norm(np.asarray(vectors, dtype=np.float64), axis=1)
    return result

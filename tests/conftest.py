from __future__ import annotations

from typing import Callable

import numpy as np
import pytest

from tectonics.grid import Grid


def _ring(cell_count: int) -> Grid:
    arrows = []
    for i in range(cell_count):
        j = (i + 1) % cell_count
        arrows.append((i, j))
        arrows.append((j, i))
    angles = np.linspace(0.0, 2.0 * np.pi, cell_count, endpoint=False)
    positions = np.stack((np.cos(angles), np.sin(angles), np.zeros(cell_count)), axis=1)
    return Grid.from_arrows(arrows, cell_count, positions=positions)


def _lattice(width: int, height: int, spacing: float = 1.0) -> Grid:
    neighbors: list[list[int]] = []
    for y in range(height):
        for x in range(width):
            row = []
            for dy, dx in ((-1, 0), (1, 0), (0, -1), (0, 1)):
                ny = y + dy
                nx = x + dx
                if 0 <= ny < height and 0 <= nx < width:
                    row.append(ny * width + nx)
            neighbors.append(row)
    yy, xx = np.indices((height, width), dtype=np.float64)
    positions = np.stack((xx.ravel() * spacing, yy.ravel() * spacing, np.zeros(width * height)), axis=1)
    return Grid.from_neighbor_lists(neighbors, positions=positions)


def _icosahedron() -> Grid:
    """Unit icosahedron; every vertex links to its five nearest vertices."""

    phi = (1.0 + np.sqrt(5.0)) / 2.0
    vertices = []
    for a in (-1.0, 1.0):
        for b in (-phi, phi):
            vertices.extend([(0.0, a, b), (a, b, 0.0), (b, 0.0, a)])
    positions = np.array(vertices, dtype=np.float64)
    positions /= np.linalg.norm(positions, axis=1, keepdims=True)
    distance = np.linalg.norm(positions[:, None, :] - positions[None, :, :], axis=2)
    edge = distance[distance > 0.0].min()
    neighbors = [np.flatnonzero(np.isclose(row, edge)).tolist() for row in distance]
    return Grid.from_neighbor_lists(neighbors, positions=positions)


@pytest.fixture
def ring_grid() -> Callable[[int], Grid]:
    return _ring


@pytest.fixture
def lattice_grid() -> Callable[..., Grid]:
    return _lattice


@pytest.fixture
def sphere_grid() -> Grid:
    return _icosahedron()

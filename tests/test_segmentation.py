from __future__ import annotations

import numpy as np
import pytest

from tectonics.config import SegmentationConfig
from tectonics.metrics import plate_metrics
from tectonics.raster import as_raster, label_raster
from tectonics.segmentation import cosine_similarity, image_segmentation, segment_plates


def _halves(grid, width: int) -> np.ndarray:
    """East-moving left half, north-moving right half, right half slightly faster."""

    vectors = np.zeros((grid.cell_count, 3), dtype=np.float32)
    x = grid.positions[:, 0]
    vectors[x < width / 2] = (1.0, 0.0, 0.0)
    vectors[x >= width / 2] = (0.0, 2.0, 0.0)
    return as_raster(vectors, grid)


def test_uniform_field_is_one_plate(lattice_grid) -> None:
    grid = lattice_grid(6, 5)
    velocity = as_raster(np.tile(np.array([[0.3, -0.1, 0.0]], dtype=np.float32), (30, 1)), grid)

    labels = segment_plates(velocity, 4, 30)

    assert np.all(labels == 1)


def test_uniform_field_below_min_size_has_no_plates(lattice_grid) -> None:
    grid = lattice_grid(6, 5)
    velocity = as_raster(np.tile(np.array([[0.3, -0.1, 0.0]], dtype=np.float32), (30, 1)), grid)

    labels = segment_plates(velocity, 4, 31)

    assert np.all(labels == 0)


def test_zero_field_is_one_plate(lattice_grid) -> None:
    grid = lattice_grid(4, 4)
    velocity = as_raster(np.zeros((16, 3), dtype=np.float32), grid)

    labels = segment_plates(velocity, 3, 1)

    assert np.all(labels == 1)


def test_first_plate_is_seeded_at_fastest_cell(lattice_grid) -> None:
    grid = lattice_grid(8, 4)
    velocity = _halves(grid, 8)

    labels = segment_plates(velocity, 5, 2)

    x = grid.positions[:, 0]
    assert np.all(labels[x >= 4] == 1)
    assert np.all(labels[x < 4] == 2)
    metrics = plate_metrics(labels)
    assert metrics.plate_count == 2
    assert metrics.max_components_per_plate == 1
    assert metrics.unlabeled_cells == 0


def test_target_count_limits_plates(lattice_grid) -> None:
    grid = lattice_grid(8, 4)
    velocity = _halves(grid, 8)

    labels = image_segmentation(velocity, 1, 2)

    x = grid.positions[:, 0]
    assert np.all(labels[x >= 4] == 1)
    assert np.all(labels[x < 4] == 0)


def test_noise_region_is_discarded_then_absorbed(lattice_grid) -> None:
    grid = lattice_grid(7, 7)
    vectors = np.tile(np.array([[1.0, 0.0, 0.0]], dtype=np.float32), (49, 1))
    speck = [3 * 7 + 3, 3 * 7 + 4]
    vectors[speck] = (0.0, 0.0, 5.0)
    velocity = as_raster(vectors, grid)

    raw = image_segmentation(velocity, 3, 3)
    assert np.all(raw[speck] == 0)
    assert int(np.count_nonzero(raw == 1)) == 47
    assert int(raw.max()) == 1

    cleaned = segment_plates(velocity, 3, 3)
    assert np.all(cleaned == 1)


def test_lower_id_wins_contested_cells(ring_grid) -> None:
    grid = ring_grid(12)
    vectors = np.zeros((12, 3), dtype=np.float32)
    vectors[0:5] = (0.0, 3.0, 0.0)
    vectors[5] = (0.0, 0.0, 1.0)
    vectors[6:11] = (2.0, 0.0, 0.0)
    vectors[11] = (0.0, 0.0, -1.0)
    velocity = as_raster(vectors, grid)

    raw = image_segmentation(velocity, 5, 3)
    assert raw[[5, 11]].tolist() == [0, 0]
    assert set(raw[0:5].tolist()) == {1}
    assert set(raw[6:11].tolist()) == {2}

    cleaned = segment_plates(velocity, 5, 3, config=SegmentationConfig(morphology_radius=1))
    assert cleaned[[5, 11]].tolist() == [1, 1]
    assert set(cleaned[6:11].tolist()) == {2}


def test_labels_cover_every_cell_with_unique_ids(lattice_grid) -> None:
    grid = lattice_grid(16, 12)
    rng = np.random.default_rng(8)
    angles = rng.uniform(0.0, 2.0 * np.pi, 6)
    centers = rng.uniform(0.0, 16.0, (6, 2))
    xy = grid.positions[:, :2]
    nearest = np.argmin(((xy[:, None, :] - centers[None, :, :]) ** 2).sum(axis=2), axis=1)
    speed = rng.uniform(0.5, 1.5, grid.cell_count)
    vectors = np.stack((np.cos(angles[nearest]) * speed, np.sin(angles[nearest]) * speed, np.zeros(grid.cell_count)), axis=1)
    velocity = as_raster(vectors.astype(np.float32), grid)

    labels = segment_plates(velocity, 8, 4)

    ids = np.unique(np.asarray(labels))
    assert int(ids.min()) >= 0
    positive = ids[ids > 0]
    assert positive.tolist() == list(range(1, len(positive) + 1))
    assert len(positive) <= 8
    assert plate_metrics(labels).labeled_fraction > 0.5


def test_segmentation_is_deterministic(lattice_grid) -> None:
    grid = lattice_grid(10, 10)
    rng = np.random.default_rng(2)
    velocity = as_raster(rng.normal(size=(100, 3)).astype(np.float32), grid)

    a = segment_plates(velocity, 6, 2)
    b = segment_plates(velocity, 6, 2)

    assert np.array_equal(a, b)


def test_output_raster_is_overwritten(lattice_grid) -> None:
    grid = lattice_grid(4, 4)
    velocity = as_raster(np.tile(np.array([[1.0, 0.0, 0.0]], dtype=np.float32), (16, 1)), grid)
    out = label_raster(grid, fill=9)

    result = segment_plates(velocity, 2, 1, out)

    assert result is out
    assert np.all(out == 1)


@pytest.mark.parametrize(
    ("target", "min_size"),
    [(0, 1), (3, 0), (-1, 5), (2.5, 1), (True, 1)],
)
def test_invalid_parameters_fail_fast(lattice_grid, target, min_size) -> None:
    grid = lattice_grid(3, 3)
    velocity = as_raster(np.ones((9, 3), dtype=np.float32), grid)

    with pytest.raises(ValueError):
        segment_plates(velocity, target, min_size)


def test_cosine_similarity_handles_zero_vectors() -> None:
    zero = np.zeros(3)

    assert cosine_similarity(zero, zero) == 1.0
    assert cosine_similarity(zero, np.array([1.0, 0.0, 0.0])) == 0.0
    assert cosine_similarity(np.array([1.0, 0.0, 0.0]), np.array([-2.0, 0.0, 0.0])) == pytest.approx(-1.0)

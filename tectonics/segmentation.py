"""Plate maps from velocity fields: seeded flood fill plus morphological cleanup."""

from __future__ import annotations

from collections import deque
import logging
import numbers

import numpy as np

from tectonics.config import SegmentationConfig
from tectonics.fields import magnitude as vector_magnitude
from tectonics.grid import Grid
from tectonics.morphology import closing, difference, dilation
from tectonics.raster import Raster, as_raster, grid_of, label_raster, require_grid

logger = logging.getLogger(__name__)


def segment_plates(
    velocity: Raster,
    target_segment_count: int,
    min_segment_size: int,
    out: Raster | None = None,
    *,
    config: SegmentationConfig | None = None,
) -> Raster:
    """Partition a vector field into plates labeled ``1..k``; ``0`` stays unlabeled.

    Plates are grown by ``image_segmentation`` and then cleaned one id at a
    time in ascending order: each is dilated and closed, minus cells already
    held by another plate. Lower ids therefore win contested unlabeled cells.
    """

    cfg = config or SegmentationConfig()
    labels = image_segmentation(velocity, target_segment_count, min_segment_size, out, config=cfg)

    grid = grid_of(labels)
    radius = int(cfg.morphology_radius)
    for plate_id in np.unique(np.asarray(labels)):
        if plate_id == 0:
            continue
        segment = plate_mask(labels, plate_id)
        is_empty = plate_mask(labels, 0)
        is_occupied = difference(as_raster(~np.asarray(segment), grid), is_empty)
        segment = dilation(segment, radius)
        segment = closing(segment, radius)
        segment = difference(segment, is_occupied)
        labels[np.asarray(segment)] = plate_id

    logger.debug(
        "segment_plates: %d plates, %d cells unlabeled after cleanup",
        int(labels.max(initial=0)),
        int(np.count_nonzero(labels == 0)),
    )
    return labels


def image_segmentation(
    vectors: Raster,
    target_segment_count: int,
    min_segment_size: int,
    out: Raster | None = None,
    *,
    config: SegmentationConfig | None = None,
) -> Raster:
    """Label regions of similar direction, largest vectors first.

    Repeatedly seeds at the unlabeled cell with the largest magnitude (lowest
    index on ties) and flood fills breadth-first through unlabeled neighbors
    whose cosine similarity to the running region sum exceeds the configured
    threshold. Regions smaller than ``min_segment_size`` stay unlabeled and
    their cells may not seed again during this call.
    """

    _check_count("target_segment_count", target_segment_count)
    _check_count("min_segment_size", min_segment_size)
    cfg = config or SegmentationConfig()
    if not -1.0 <= cfg.similarity_threshold < 1.0:
        raise ValueError("similarity_threshold must lie in [-1, 1)")

    grid = grid_of(vectors)
    if vectors.ndim != 2 or vectors.shape[1] != 3:
        raise ValueError("vectors must be a (N, 3) vector field")
    labels = out if out is not None else label_raster(grid)
    require_grid(grid, labels)
    labels.fill(0)

    values = np.asarray(vectors, dtype=np.float64)
    magnitude = np.asarray(vector_magnitude(vectors))
    can_seed = np.ones(grid.cell_count, dtype=bool)
    in_region = np.zeros(grid.cell_count, dtype=bool)

    next_id = 1
    discarded = 0
    while next_id <= target_segment_count:
        candidates = can_seed & (np.asarray(labels) == 0)
        if not np.any(candidates):
            break
        seed = int(np.argmax(np.where(candidates, magnitude, -np.inf)))

        region = _flood_fill(grid, values, seed, labels, in_region, cfg.similarity_threshold)
        can_seed[region] = False
        if region.size < min_segment_size:
            discarded += 1
            continue
        labels[region] = next_id
        next_id += 1

    logger.debug("image_segmentation: %d regions kept, %d discarded", next_id - 1, discarded)
    return labels


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine of the angle between two vectors; two zero vectors count as identical."""

    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 1.0 if norm_a == norm_b else 0.0
    return float(np.dot(a, b)) / (norm_a * norm_b)


def _flood_fill(
    grid: Grid,
    values: np.ndarray,
    seed: int,
    labels: np.ndarray,
    in_region: np.ndarray,
    threshold: float,
) -> np.ndarray:
    indptr = grid.adjacency.indptr
    indices = grid.adjacency.indices
    representative = values[seed].copy()
    members = [seed]
    in_region[seed] = True
    queue = deque([seed])

    while queue:
        cell = queue.popleft()
        for neighbor in indices[indptr[cell] : indptr[cell + 1]]:
            if in_region[neighbor] or labels[neighbor] != 0:
                continue
            if cosine_similarity(values[neighbor], representative) <= threshold:
                continue
            in_region[neighbor] = True
            members.append(int(neighbor))
            representative += values[neighbor]
            queue.append(int(neighbor))

    region = np.asarray(members, dtype=np.int64)
    in_region[region] = False
    return region


def _check_count(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value <= 0:
        raise ValueError(f"{name} must be a positive integer")


def plate_mask(labels: Raster, plate_id: int) -> Raster:
    """Boolean mask of the cells carrying ``plate_id``."""

    return as_raster(np.asarray(labels) == plate_id, grid_of(labels))

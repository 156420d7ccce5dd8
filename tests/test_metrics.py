from __future__ import annotations

import logging

import numpy as np
import pytest

from tectonics.config import ModelConfig
from tectonics.crust import Crust
from tectonics.logging_config import setup_logging
from tectonics.metrics import connected_components_metrics, plate_metrics, reservoir_totals
from tectonics.raster import as_raster


def test_connected_components_follow_grid_arrows(ring_grid) -> None:
    grid = ring_grid(10)
    mask = np.zeros(10, dtype=bool)
    mask[[0, 1, 2, 5, 6, 9]] = True

    metrics = connected_components_metrics(as_raster(mask, grid))

    # 9 wraps around to 0 on the ring
    assert metrics.num_components == 2
    assert metrics.largest_component_area == 4
    assert metrics.total_cells == 6
    assert metrics.largest_ratio == pytest.approx(4 / 6)
    assert metrics.coverage_fraction == pytest.approx(0.6)


def test_empty_mask_metrics(ring_grid) -> None:
    grid = ring_grid(4)

    metrics = connected_components_metrics(as_raster(np.zeros(4, dtype=bool), grid))

    assert metrics.num_components == 0
    assert metrics.coverage_fraction == 0.0


def test_plate_metrics_counts_split_plates(ring_grid) -> None:
    grid = ring_grid(8)
    labels = as_raster(np.array([1, 1, 0, 2, 2, 1, 0, 0], dtype=np.int32), grid)

    metrics = plate_metrics(labels)

    assert metrics.plate_count == 2
    assert metrics.plate_sizes == (3, 2)
    assert metrics.largest_plate_size == 3
    assert metrics.unlabeled_cells == 3
    assert metrics.labeled_fraction == pytest.approx(5 / 8)
    assert metrics.max_components_per_plate == 2


def test_reservoir_totals_exclude_sima(ring_grid) -> None:
    grid = ring_grid(3)
    crust = Crust.from_arrays(
        grid,
        sediment=[1.0, 2.0, 3.0],
        sedimentary=[0.5, 0.5, 0.5],
        sial=[10.0, 0.0, 0.0],
        sima=[7000.0, 7000.0, 7000.0],
    )

    totals = reservoir_totals(crust)

    assert totals.sediment == pytest.approx(6.0)
    assert totals.metamorphic == 0.0
    assert totals.conserved == pytest.approx(17.5)
    assert crust.conserved_total() == pytest.approx(totals.conserved)


def test_crust_rejects_unknown_layers(ring_grid) -> None:
    with pytest.raises(ValueError):
        Crust.from_arrays(ring_grid(3), basalt=[1.0, 1.0, 1.0])


def test_model_config_round_trips_to_dict() -> None:
    payload = ModelConfig().to_dict()

    assert payload["erosion"]["precipitation_rate"] == pytest.approx(7.8e5)
    assert payload["asthenosphere"]["smoothing_iterations"] == 15
    assert payload["segmentation"]["morphology_radius"] == 5


def test_setup_logging_replaces_handlers(tmp_path) -> None:
    log_file = tmp_path / "run.log"

    setup_logging(logging.DEBUG)
    logger = setup_logging(logging.DEBUG, log_file=str(log_file))
    logging.getLogger("tectonics.erosion").debug("transport step")
    for handler in logger.handlers:
        handler.flush()

    assert len(logger.handlers) == 2
    assert "transport step" in log_file.read_text(encoding="utf-8")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

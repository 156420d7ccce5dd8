"""Crust simulation engines over mesh-indexed fields."""

from .asthenosphere import angular_velocity, asthenosphere_velocity, smooth_pressure
from .config import ModelConfig
from .crust import RESERVOIR_PRIORITY, Crust
from .erosion import transport, weather
from .grid import Grid, GridMismatchError
from .isostasy import isostatic_displacement
from .scratch import ScratchArena, ScratchScopeError
from .segmentation import segment_plates

__all__ = [
    "Crust",
    "Grid",
    "GridMismatchError",
    "ModelConfig",
    "RESERVOIR_PRIORITY",
    "ScratchArena",
    "ScratchScopeError",
    "angular_velocity",
    "asthenosphere_velocity",
    "isostatic_displacement",
    "segment_plates",
    "smooth_pressure",
    "transport",
    "weather",
]

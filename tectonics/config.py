"""Configuration models for crust simulation engines."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


RAIN_M_PER_MYR = 7.8e5


@dataclass(frozen=True)
class ErosionConfig:
    """Controls downhill reservoir transport."""

    # meters of rain per million years, global land average
    precipitation_rate: float = RAIN_M_PER_MYR
    # fraction of height difference moved per meter of rain per million years
    erosion_coefficient: float = 1.8e-7


@dataclass(frozen=True)
class WeatheringConfig:
    """Controls in-place conversion of bedrock into sediment."""

    precipitation_rate: float = RAIN_M_PER_MYR
    weathering_coefficient: float = 1.8e-7
    # sediment thickness (m) at which bedrock weathering stops
    critical_sediment_thickness: float = 1.0
    surface_gravity: float = 9.8
    earth_surface_gravity: float = 9.8
    min_conserved_thickness: float = 0.01


@dataclass(frozen=True)
class AsthenosphereConfig:
    """Controls pressure smoothing for asthenosphere flow."""

    smoothing_iterations: int = 15
    diffusion_constant: float = 1.0


@dataclass(frozen=True)
class SegmentationConfig:
    """Controls plate segmentation of a velocity field."""

    similarity_threshold: float = 0.8
    morphology_radius: int = 5


@dataclass(frozen=True)
class IsostasyConfig:
    """Controls isostatic displacement."""

    mantle_density: float = 3300.0


@dataclass(frozen=True)
class ModelConfig:
    """Aggregate configuration for one simulated world."""

    erosion: ErosionConfig = field(default_factory=ErosionConfig)
    weathering: WeatheringConfig = field(default_factory=WeatheringConfig)
    asthenosphere: AsthenosphereConfig = field(default_factory=AsthenosphereConfig)
    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    isostasy: IsostasyConfig = field(default_factory=IsostasyConfig)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

"""재료 모델."""

from .linear_elastic import (
    MaterialKind,
    MaterialRecord,
    micromodulus,
    neighbourhood_volume,
    CONCRETE,
    STEEL,
    PRESETS,
)

__all__ = [
    "MaterialKind",
    "MaterialRecord",
    "micromodulus",
    "neighbourhood_volume",
    "CONCRETE",
    "STEEL",
    "PRESETS",
]

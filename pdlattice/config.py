"""Discretization settings: Pydantic models loaded from TOML."""

import math
import tomllib
from pathlib import Path
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .material.linear_elastic import PRESETS, MaterialKind, MaterialRecord


class LatticeConfig(BaseModel):
    """Member geometry and lattice (defaults: 500 x 50 x 160 mm beam, 5 mm spacing)."""

    dim: Literal[2, 3] = 3
    spacing: float = Field(5.0e-3, gt=0)
    divisions: list[int] = Field(default_factory=lambda: [100, 10, 32])
    origin: Optional[list[float]] = None
    edge_inclusive: bool = False
    thickness: float = Field(1.0, gt=0)

    @model_validator(mode="after")
    def _check_axes(self):
        if len(self.divisions) != self.dim:
            raise ValueError(f"divisions needs {self.dim} entries, got {len(self.divisions)}")
        if any(n < 1 for n in self.divisions):
            raise ValueError(f"division counts must be >= 1, got {self.divisions}")
        if self.origin is not None and len(self.origin) != self.dim:
            raise ValueError(f"origin needs {self.dim} entries, got {len(self.origin)}")
        return self


class NeighborhoodConfig(BaseModel):
    """Neighbour search settings."""

    horizon_factor: float = Field(math.pi, gt=0)
    method: Literal["grid", "kdtree"] = "grid"


class NotchConfig(BaseModel):
    """Notch position and depth, both in lattice spacings."""

    eccentricity: float
    depth: float = Field(gt=0)
    normal_axis: int = Field(0, ge=0, le=2)
    depth_axis: Optional[int] = Field(None, ge=0, le=2)
    face: Literal["min", "max"] = "min"


class MaterialConfig(BaseModel):
    """Elastic and fracture properties of one material."""

    name: str
    E: float = Field(gt=0)
    density: float = Field(gt=0)
    fracture_energy: float = Field(gt=0)
    critical_stretch: Optional[float] = Field(None, gt=0)

    @classmethod
    def from_record(cls, record: MaterialRecord) -> "MaterialConfig":
        return cls(
            name=record.name,
            E=record.E,
            density=record.density,
            fracture_energy=record.fracture_energy,
            critical_stretch=record.critical_stretch,
        )

    def to_record(self) -> MaterialRecord:
        return MaterialRecord(
            name=self.name,
            E=self.E,
            density=self.density,
            fracture_energy=self.fracture_energy,
            critical_stretch=self.critical_stretch,
        )


def _preset_materials() -> Dict[str, MaterialConfig]:
    return {kind.name.lower(): MaterialConfig.from_record(rec) for kind, rec in PRESETS.items()}


class MaterialRegionConfig(BaseModel):
    """Region whose points get a material kind.

    ``box`` needs ``lower`` and ``upper``; ``cylinder`` needs ``center``,
    ``radius`` and ``axes`` (the axes the radius is measured in).
    """

    kind: Literal["concrete", "steel"]
    shape: Literal["box", "cylinder"] = "box"
    lower: Optional[list[float]] = None
    upper: Optional[list[float]] = None
    center: Optional[list[float]] = None
    radius: Optional[float] = Field(None, gt=0)
    axes: Optional[list[int]] = None

    @model_validator(mode="after")
    def _check_shape(self):
        if self.shape == "box" and (self.lower is None or self.upper is None):
            raise ValueError("box region needs lower and upper")
        if self.shape == "cylinder" and (self.center is None or self.radius is None):
            raise ValueError("cylinder region needs center and radius")
        return self


class StiffnessConfig(BaseModel):
    """Bond stiffness settings."""

    interface_policy: Literal["minimum", "harmonic_mean", "strict"] = "minimum"
    point_radius_factor: float = Field(0.5, gt=0)


class RuntimeConfig(BaseModel):
    """Taichi runtime settings (float64 backends only)."""

    backend: Literal["cpu", "cuda", "auto"] = "cpu"
    precision: Literal["f32", "f64"] = "f64"


class DiscretizationConfig(BaseModel):
    """Top-level discretization settings."""

    lattice: LatticeConfig = Field(default_factory=LatticeConfig)
    neighborhood: NeighborhoodConfig = Field(default_factory=NeighborhoodConfig)
    notch: Optional[NotchConfig] = None
    materials: Dict[str, MaterialConfig] = Field(default_factory=_preset_materials)
    default_material: Literal["concrete", "steel"] = "concrete"
    regions: list[MaterialRegionConfig] = Field(default_factory=list)
    stiffness: StiffnessConfig = Field(default_factory=StiffnessConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    @field_validator("materials")
    @classmethod
    def _check_material_kinds(cls, value: Dict[str, MaterialConfig]):
        known = {k.name.lower() for k in MaterialKind}
        unknown = set(value) - known
        if unknown:
            raise ValueError(f"unknown material kinds {sorted(unknown)}, expected {sorted(known)}")
        # kinds left out keep their presets
        merged = _preset_materials()
        merged.update(value)
        return merged

    @property
    def horizon(self) -> float:
        return self.neighborhood.horizon_factor * self.lattice.spacing

    @property
    def point_radius(self) -> float:
        return self.stiffness.point_radius_factor * self.lattice.spacing

    def material_records(self) -> Dict[MaterialKind, MaterialRecord]:
        """Material record per kind."""
        return {MaterialKind.from_name(name): cfg.to_record() for name, cfg in self.materials.items()}

    @classmethod
    def from_toml(cls, path: str | Path) -> "DiscretizationConfig":
        """Load settings from a TOML file.

        Args:
            path: TOML file path

        Returns:
            DiscretizationConfig instance
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls(**data)

    @classmethod
    def default(cls) -> "DiscretizationConfig":
        """Default settings."""
        return cls()

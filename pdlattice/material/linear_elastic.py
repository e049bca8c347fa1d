"""Linear elastic material records for bond-based peridynamics.

For the prototype microelastic brittle (PMB) bond the micromodulus is
fixed by matching the strain energy density of a point inside the bulk:

    3D:              c = 12 * E / (pi * delta^4)
    2D plane stress: c = 9 * E / (pi * h * delta^3)

where E is Young's modulus, h the thickness and delta the horizon.
Bond-based PD fixes Poisson's ratio (1/4 in 3D, 1/3 in 2D plane stress),
so E is the only elastic constant a record carries.
"""

import enum
import math
from dataclasses import dataclass
from typing import Dict, Optional

from ..validation import InvalidConfiguration, validate_horizon, validate_material


class MaterialKind(enum.IntEnum):
    """Material tag of a point (closed set)."""
    CONCRETE = 0
    STEEL = 1

    @classmethod
    def from_name(cls, name: str) -> "MaterialKind":
        try:
            return cls[name.upper()]
        except KeyError:
            raise InvalidConfiguration(
                f"unknown material kind '{name}'",
                parameter="kind",
                value=name,
                suggestion=", ".join(k.name.lower() for k in cls),
            ) from None


@dataclass
class MaterialRecord:
    """Material properties of one kind.

    Args:
        name: Material name
        E: Young's modulus [Pa]
        density: Density [kg/m^3]
        fracture_energy: Fracture energy G_f [J/m^2]
        critical_stretch: Calibrated critical stretch; derived from the
            fracture energy when None
    """
    name: str
    E: float
    density: float
    fracture_energy: float
    critical_stretch: Optional[float] = None

    def __post_init__(self):
        validate_material(
            self.E, self.density, self.fracture_energy,
            name=self.name, critical_stretch=self.critical_stretch,
        )

    def micromodulus(self, horizon: float, dim: int = 3, thickness: float = 1.0) -> float:
        """Bond micromodulus c for this material."""
        return micromodulus(self.E, horizon, dim=dim, thickness=thickness)


def micromodulus(E: float, horizon: float, dim: int = 3, thickness: float = 1.0) -> float:
    """Micromodulus constant of a PMB bond.

    Args:
        E: Young's modulus [Pa]
        horizon: Peridynamics horizon delta [m]
        dim: Spatial dimension (2 or 3)
        thickness: Plate thickness h [m] (2D only)
    """
    validate_horizon(horizon)
    if dim == 2:
        # 2D plane stress: c = 9*E / (pi * h * delta^3)
        return 9.0 * E / (math.pi * thickness * horizon**3)
    if dim == 3:
        return 12.0 * E / (math.pi * horizon**4)
    raise InvalidConfiguration(
        f"spatial dimension is {dim}, only 2 and 3 are supported",
        parameter="dim",
        value=dim,
    )


def neighbourhood_volume(horizon: float, dim: int = 3, thickness: float = 1.0) -> float:
    """Volume of the full neighbourhood of a point inside the bulk."""
    validate_horizon(horizon)
    if dim == 2:
        return math.pi * horizon**2 * thickness
    return 4.0 / 3.0 * math.pi * horizon**3


CONCRETE = MaterialRecord(
    name="concrete",
    E=37.0e9,
    density=2346.0,
    fracture_energy=143.2,
)

STEEL = MaterialRecord(
    name="steel",
    E=200.0e9,
    density=7850.0,
    fracture_energy=1.0e8,
    critical_stretch=1.0,
)

PRESETS: Dict[MaterialKind, MaterialRecord] = {
    MaterialKind.CONCRETE: CONCRETE,
    MaterialKind.STEEL: STEEL,
}

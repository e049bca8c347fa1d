"""Input validation and error types for the discretization core.

Every stage validates its inputs eagerly and raises before producing any
output, so a failed phase never hands partial arrays to the next one.
"""

import logging
import math
from typing import Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)


# ───────────────── exceptions ─────────────────


class InvalidConfiguration(ValueError):
    """Invalid discretization input.

    Attributes:
        parameter: Name of the offending parameter
        value: Value that was passed
        suggestion: Hint for fixing the input
    """

    def __init__(
        self,
        message: str,
        parameter: str = "",
        value=None,
        suggestion: str = "",
    ):
        self.parameter = parameter
        self.value = value
        self.suggestion = suggestion
        full_msg = f"[invalid configuration] {message}"
        if suggestion:
            full_msg += f" -> suggestion: {suggestion}"
        super().__init__(full_msg)


class InconsistentTopology(RuntimeError):
    """Bond/family arrays violate the symmetry invariant.

    Always an internal bug: the arrays are rebuilt from the pair list, so
    this is surfaced rather than patched.

    Attributes:
        point: Owning point of the first inconsistent family entry (or -1)
        partner: Partner index of that entry (or -1)
    """

    def __init__(self, message: str, point: int = -1, partner: int = -1):
        self.point = point
        self.partner = partner
        super().__init__(f"[inconsistent topology] {message}")


class UnsupportedMaterialPair(ValueError):
    """A bond joins materials for which no stiffness rule is defined.

    Attributes:
        pair: Sorted (kind_a, kind_b) tuple of material tags
    """

    def __init__(self, message: str, pair: tuple = ()):
        self.pair = pair
        super().__init__(f"[unsupported material pair] {message}")


# ───────────────── lattice checks ─────────────────


def validate_spacing(spacing: float):
    """Lattice spacing must be a positive finite number."""
    if not (spacing > 0) or not math.isfinite(spacing):
        raise InvalidConfiguration(
            f"lattice spacing is {spacing}, it must be positive",
            parameter="spacing",
            value=spacing,
            suggestion="5 mm (5e-3 m) for the beam tests",
        )


def validate_divisions(dim: int, divisions: Sequence[int]):
    """Check that the lattice has one positive division count per axis.

    Args:
        dim: Spatial dimension (2 or 3)
        divisions: Division counts per axis
    """
    if dim not in (2, 3):
        raise InvalidConfiguration(
            f"spatial dimension is {dim}, only 2 and 3 are supported",
            parameter="dim",
            value=dim,
        )
    if len(divisions) != dim:
        raise InvalidConfiguration(
            f"{len(divisions)} division counts given for a {dim}-D lattice",
            parameter="divisions",
            value=tuple(divisions),
            suggestion=f"pass exactly {dim} counts",
        )
    for axis, n in enumerate(divisions):
        if int(n) != n or n < 1:
            raise InvalidConfiguration(
                f"division count along axis {axis} is {n}, it must be an integer >= 1",
                parameter="divisions",
                value=tuple(divisions),
            )


# ───────────────── horizon checks ─────────────────


def validate_horizon(horizon: float, spacing: float = 0.0):
    """Horizon radius check.

    Args:
        horizon: Neighbourhood radius
        spacing: Lattice spacing (0 skips the comparison)
    """
    if not (horizon > 0) or not math.isfinite(horizon):
        raise InvalidConfiguration(
            f"horizon is {horizon}, it must be positive",
            parameter="horizon",
            value=horizon,
            suggestion="horizon = pi x lattice spacing is the usual choice",
        )
    if spacing > 0 and horizon < spacing:
        logger.warning(
            f"horizon ({horizon:.4e}) is smaller than the lattice spacing "
            f"({spacing:.4e}); no point will have neighbours"
        )


def validate_point_radius(radius: float):
    """Nominal half-spacing used by the volume correction."""
    if not (radius > 0) or not math.isfinite(radius):
        raise InvalidConfiguration(
            f"point radius is {radius}, it must be positive",
            parameter="point_radius",
            value=radius,
            suggestion="half the lattice spacing",
        )


def validate_coordinates(coordinates: np.ndarray, min_points: int = 2) -> np.ndarray:
    """Return coordinates as a float64 (N, dim) array or raise.

    Args:
        coordinates: Point coordinates
        min_points: Minimum number of points required
    """
    coords = np.asarray(coordinates, dtype=np.float64)
    if coords.ndim != 2 or coords.shape[1] not in (2, 3):
        raise InvalidConfiguration(
            f"coordinates must have shape (N, 2) or (N, 3), got {coords.shape}",
            parameter="coordinates",
            value=coords.shape,
        )
    if coords.shape[0] < min_points:
        raise InvalidConfiguration(
            f"{coords.shape[0]} points given, at least {min_points} are needed",
            parameter="coordinates",
            value=coords.shape[0],
        )
    if not np.all(np.isfinite(coords)):
        raise InvalidConfiguration(
            "coordinates contain NaN or inf",
            parameter="coordinates",
        )
    return coords


# ───────────────── material checks ─────────────────


def validate_material(
    E: float,
    density: float,
    fracture_energy: float,
    name: str = "material",
    critical_stretch: Optional[float] = None,
):
    """Material record check.

    Args:
        E: Young's modulus [Pa]
        density: Density [kg/m^3]
        fracture_energy: Fracture energy G_f [J/m^2]
        name: Material name (for messages)
        critical_stretch: Optional critical stretch override
    """
    if not (E > 0):
        raise InvalidConfiguration(
            f"Young's modulus of {name} is {E}, it must be positive",
            parameter="E",
            value=E,
            suggestion="concrete: 30-40 GPa, steel: 200 GPa",
        )
    if not (density > 0):
        raise InvalidConfiguration(
            f"density of {name} is {density} kg/m^3, it must be positive",
            parameter="density",
            value=density,
            suggestion="concrete: 2400 kg/m^3, steel: 7850 kg/m^3",
        )
    if not (fracture_energy > 0):
        raise InvalidConfiguration(
            f"fracture energy of {name} is {fracture_energy}, it must be positive",
            parameter="fracture_energy",
            value=fracture_energy,
            suggestion="plain concrete: 100-150 J/m^2",
        )
    if critical_stretch is not None and not (critical_stretch > 0):
        raise InvalidConfiguration(
            f"critical stretch of {name} is {critical_stretch}, it must be positive",
            parameter="critical_stretch",
            value=critical_stretch,
        )

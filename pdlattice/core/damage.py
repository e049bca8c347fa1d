"""Critical stretch per bond.

Bond failure is a solver concern; the discretization only hands over one
critical stretch per bond. The default calibration derives it from the
fracture energy of the bond's material,

    2D: s_c = sqrt(4 * pi * G_c / (9 * E * delta))
    3D: s_c = sqrt(5 * G_c / (9 * E * delta))

unless the material record carries its own calibrated value. Any other
routine with the :data:`CriticalStretchFn` signature can be plugged into
the pipeline instead.
"""

import math
from typing import Callable, Mapping

import numpy as np

from ..material.linear_elastic import MaterialRecord
from ..validation import UnsupportedMaterialPair, validate_horizon
from .bonds import BondSet

# (bonds, material_tags, materials, horizon, dim) -> critical stretch per bond
CriticalStretchFn = Callable[
    [BondSet, np.ndarray, Mapping[int, MaterialRecord], float, int], np.ndarray
]


def critical_stretch(
    youngs_modulus: float,
    fracture_energy: float,
    horizon: float,
    dim: int = 3,
) -> float:
    """Critical stretch from material properties.

    Args:
        youngs_modulus: Young's modulus E [Pa]
        fracture_energy: Fracture energy G_c [J/m^2]
        horizon: Peridynamics horizon delta [m]
        dim: Spatial dimension (2 or 3)
    """
    validate_horizon(horizon)
    if dim == 2:
        return math.sqrt(4 * math.pi * fracture_energy / (9 * youngs_modulus * horizon))
    return math.sqrt(5 * fracture_energy / (9 * youngs_modulus * horizon))


def calibrate_critical_stretch(
    bonds: BondSet,
    material_tags: np.ndarray,
    materials: Mapping[int, MaterialRecord],
    horizon: float,
    dim: int = 3,
) -> np.ndarray:
    """Default per-bond critical stretch.

    Same-material bonds take their material's value; an interface bond
    takes the smaller of its two endpoint values.
    """
    tags = np.asarray(material_tags).astype(np.int64)
    values = {}
    for kind, record in materials.items():
        if record.critical_stretch is not None:
            values[int(kind)] = record.critical_stretch
        else:
            values[int(kind)] = critical_stretch(record.E, record.fracture_energy, horizon, dim)

    present = np.unique(tags[bonds.pairs]) if bonds.n_bonds else np.array([], dtype=np.int64)
    missing = [int(k) for k in present if int(k) not in values]
    if missing:
        raise UnsupportedMaterialPair(
            f"no material record for kind {missing[0]}",
            pair=(missing[0],),
        )

    table = np.zeros(max(values, default=0) + 1)
    for kind, s in values.items():
        table[kind] = s
    si = table[tags[bonds.pairs[:, 0]]]
    sj = table[tags[bonds.pairs[:, 1]]]
    return np.minimum(si, sj)

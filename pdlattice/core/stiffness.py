"""Bond stiffness, bond type and surface correction.

Base stiffness comes from the micromodulus of the bond's material pair.
It is scaled by the bond's volume-correction factor and by a surface
correction: a point whose family is truncated (near a free face or the
notch) holds less neighbourhood volume than a point in the bulk, so its
bonds are stiffened by ``ideal volume / actual volume`` to keep the stored
strain energy equal to the bulk value. Each endpoint gets its own factor
and the bond takes their mean.

Mixed-material (interface) bonds follow an explicit policy, see
:class:`InterfacePolicy`.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Mapping

import numpy as np

from ..validation import InvalidConfiguration, UnsupportedMaterialPair
from .bonds import BondSet

logger = logging.getLogger(__name__)


class InterfacePolicy(str, enum.Enum):
    """Stiffness rule for bonds joining two different materials."""
    MINIMUM = "minimum"              # weaker material governs
    HARMONIC_MEAN = "harmonic_mean"
    STRICT = "strict"                # interface bonds are an error


def bond_type_codes(kind_i: np.ndarray, kind_j: np.ndarray, n_kinds: int) -> np.ndarray:
    """Integer type tag of each bond from its endpoint kinds.

    Same-material bonds of kind ``k`` get tag ``k``. A mixed pair
    ``a < b`` gets ``n_kinds`` plus its index among the mixed pairs in
    lexicographic order. With concrete (0) and steel (1) this gives
    concrete 0, steel 1, interface 2.
    """
    a = np.minimum(kind_i, kind_j).astype(np.int64)
    b = np.maximum(kind_i, kind_j).astype(np.int64)
    # mixed pairs before (a, b): sum_{r<a} (n-1-r) + (b - a - 1)
    mixed = n_kinds + a * (2 * n_kinds - a - 1) // 2 + (b - a - 1)
    return np.where(a == b, a, mixed)


@dataclass(frozen=True, eq=False)
class BondStiffness:
    """Per-bond stiffness data.

    Attributes:
        stiffness: Final bond stiffness (n_bonds,)
        bond_type: Type tag (n_bonds,)
        base_stiffness: Material-pair micromodulus before corrections
        surface_correction: Mean of the endpoint corrections (n_bonds,)
        point_volume: Volume-corrected neighbourhood volume per point
        point_correction: Ideal over actual volume per point
    """
    stiffness: np.ndarray
    bond_type: np.ndarray
    base_stiffness: np.ndarray
    surface_correction: np.ndarray
    point_volume: np.ndarray
    point_correction: np.ndarray


def _base_stiffness(
    kind_i: np.ndarray,
    kind_j: np.ndarray,
    micromoduli: Mapping[int, float],
    policy: InterfacePolicy,
) -> np.ndarray:
    n_table = max(int(k) for k in micromoduli) + 1 if micromoduli else 0
    table = np.full(max(n_table, 1), np.nan)
    for kind, c in micromoduli.items():
        if not (c >= 0):
            raise InvalidConfiguration(
                f"micromodulus of material kind {int(kind)} is {c}, it must be >= 0",
                parameter="micromoduli",
                value=c,
            )
        table[int(kind)] = c

    for kinds in (kind_i, kind_j):
        unknown = (kinds < 0) | (kinds >= n_table)
        unknown |= np.isnan(table[np.clip(kinds, 0, len(table) - 1)])
        if np.any(unknown):
            kind = int(kinds[unknown][0])
            raise UnsupportedMaterialPair(
                f"no micromodulus for material kind {kind}",
                pair=(kind,),
            )

    ci = table[kind_i]
    cj = table[kind_j]
    mixed = kind_i != kind_j
    if policy == InterfacePolicy.STRICT and np.any(mixed):
        a, b = sorted((int(kind_i[mixed][0]), int(kind_j[mixed][0])))
        raise UnsupportedMaterialPair(
            f"bond between material kinds {a} and {b} with the strict interface policy",
            pair=(a, b),
        )
    if policy == InterfacePolicy.HARMONIC_MEAN:
        total = ci + cj
        mixed_c = np.divide(2.0 * ci * cj, total, out=np.zeros_like(total), where=total > 0)
    else:
        mixed_c = np.minimum(ci, cj)
    return np.where(mixed, mixed_c, ci)


def assemble_bond_stiffness(
    bonds: BondSet,
    material_tags: np.ndarray,
    micromoduli: Mapping[int, float],
    cell_volume: float,
    neighbourhood_volume: float,
    volume_correction: np.ndarray,
    policy: InterfacePolicy = InterfacePolicy.MINIMUM,
) -> BondStiffness:
    """Stiffness and type of every bond.

    Must be called on the final topology (after the notch), since removing
    bonds shrinks the neighbourhood volume of the points involved.

    Args:
        bonds: Final bond set
        material_tags: Material kind of each point (n_points,)
        micromoduli: Micromodulus per material kind
        cell_volume: Volume of one lattice cell
        neighbourhood_volume: Ideal (bulk) neighbourhood volume
        volume_correction: Volume-correction factor per bond
        policy: Rule for interface bonds

    Returns:
        BondStiffness

    Raises:
        InvalidConfiguration: array sizes or volumes are inconsistent
        UnsupportedMaterialPair: a kind has no micromodulus, or an
            interface bond meets the strict policy
    """
    tags = np.asarray(material_tags).astype(np.int64)
    vcf = np.asarray(volume_correction, dtype=np.float64)
    policy = InterfacePolicy(policy)

    if tags.shape != (bonds.n_points,):
        raise InvalidConfiguration(
            f"{tags.shape[0] if tags.ndim else 0} material tags for {bonds.n_points} points",
            parameter="material_tags",
            value=tags.shape,
        )
    if vcf.shape != (bonds.n_bonds,):
        raise InvalidConfiguration(
            f"{vcf.shape} volume-correction factors for {bonds.n_bonds} bonds",
            parameter="volume_correction",
            value=vcf.shape,
        )
    if not (cell_volume > 0) or not (neighbourhood_volume > 0):
        raise InvalidConfiguration(
            f"cell volume ({cell_volume}) and neighbourhood volume "
            f"({neighbourhood_volume}) must be positive",
            parameter="cell_volume",
            value=(cell_volume, neighbourhood_volume),
        )

    i, j = bonds.pairs[:, 0], bonds.pairs[:, 1]
    kind_i, kind_j = tags[i], tags[j]
    base = _base_stiffness(kind_i, kind_j, micromoduli, policy)
    n_kinds = max(max((int(k) for k in micromoduli), default=0), int(tags.max(initial=0))) + 1
    bond_type = bond_type_codes(kind_i, kind_j, n_kinds)

    # each bond adds its corrected cell volume to both endpoints
    weighted = cell_volume * vcf
    point_volume = (
        np.bincount(i, weights=weighted, minlength=bonds.n_points)
        + np.bincount(j, weights=weighted, minlength=bonds.n_points)
    )
    point_correction = np.divide(
        neighbourhood_volume,
        point_volume,
        out=np.ones(bonds.n_points),
        where=point_volume > 0,
    )
    surface = 0.5 * (point_correction[i] + point_correction[j])
    stiffness = base * vcf * surface

    if bonds.n_bonds:
        logger.info(
            f"bond stiffness: {bonds.n_bonds} bonds, surface correction "
            f"{surface.min():.3f}-{surface.max():.3f}, "
            f"{int(np.count_nonzero(kind_i != kind_j))} interface bonds ({policy.value})"
        )

    return BondStiffness(
        stiffness=stiffness,
        bond_type=bond_type,
        base_stiffness=base,
        surface_correction=surface,
        point_volume=point_volume,
        point_correction=point_correction,
    )

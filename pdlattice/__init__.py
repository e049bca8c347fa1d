"""Peridynamic lattice discretization of (notched) members.

Turns a member geometry into the inputs of a bond-based peridynamic
solver: material points, deduplicated bonds with family lists, notch
cuts, volume correction, bond stiffness and critical stretch.

Full discretization:
    from pdlattice import DiscretizationConfig, discretize

    cfg = DiscretizationConfig.from_toml("beam.toml")
    disc = discretize(cfg)
    arrays = disc.to_arrays()

Stage by stage:
    from pdlattice import build_lattice, build_neighborhoods, NotchRegion, cut_notch
    import math

    lattice = build_lattice(spacing=5e-3, divisions=(100, 10, 32))
    bonds = build_neighborhoods(lattice.coordinates, horizon=math.pi * 5e-3)
    notch = NotchRegion.from_lattice(lattice, eccentricity=30, depth=8.16)
    bonds = cut_notch(lattice.coordinates, bonds, notch)
"""

from .runtime import init, Backend, Precision, get_backend, get_precision
from .validation import InvalidConfiguration, InconsistentTopology, UnsupportedMaterialPair
from .core import (
    Lattice,
    build_lattice,
    BondSet,
    FamilyIndex,
    build_neighborhoods,
    NotchRegion,
    cut_notch,
    cut_pairs,
    volume_correction_factors,
    InterfacePolicy,
    BondStiffness,
    assemble_bond_stiffness,
    critical_stretch,
    calibrate_critical_stretch,
)
from .material import MaterialKind, MaterialRecord, micromodulus, neighbourhood_volume, CONCRETE, STEEL
from .regions import select_within_radius, select_box
from .config import DiscretizationConfig
from .pipeline import Discretization, assign_material_tags, discretize

__all__ = [
    "init",
    "Backend",
    "Precision",
    "get_backend",
    "get_precision",
    "InvalidConfiguration",
    "InconsistentTopology",
    "UnsupportedMaterialPair",
    "Lattice",
    "build_lattice",
    "BondSet",
    "FamilyIndex",
    "build_neighborhoods",
    "NotchRegion",
    "cut_notch",
    "cut_pairs",
    "volume_correction_factors",
    "InterfacePolicy",
    "BondStiffness",
    "assemble_bond_stiffness",
    "critical_stretch",
    "calibrate_critical_stretch",
    "MaterialKind",
    "MaterialRecord",
    "micromodulus",
    "neighbourhood_volume",
    "CONCRETE",
    "STEEL",
    "select_within_radius",
    "select_box",
    "DiscretizationConfig",
    "Discretization",
    "assign_material_tags",
    "discretize",
]

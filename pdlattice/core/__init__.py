"""Discretization stages: lattice, neighbourhoods, notch, correction, stiffness."""

from .lattice import Lattice, build_lattice
from .bonds import BondSet, FamilyIndex, families_from_pairs
from .neighbor import NeighborSearch, build_neighborhoods
from .notch import NotchRegion, notch_mask, cut_notch, cut_pairs
from .volume import volume_correction_factors
from .stiffness import InterfacePolicy, BondStiffness, bond_type_codes, assemble_bond_stiffness
from .damage import critical_stretch, calibrate_critical_stretch

__all__ = [
    "Lattice",
    "build_lattice",
    "BondSet",
    "FamilyIndex",
    "families_from_pairs",
    "NeighborSearch",
    "build_neighborhoods",
    "NotchRegion",
    "notch_mask",
    "cut_notch",
    "cut_pairs",
    "volume_correction_factors",
    "InterfacePolicy",
    "BondStiffness",
    "bond_type_codes",
    "assemble_bond_stiffness",
    "critical_stretch",
    "calibrate_critical_stretch",
]

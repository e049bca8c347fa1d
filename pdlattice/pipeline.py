"""Discretization pipeline.

Stages run strictly in order, each consuming the previous stage's output
and returning new arrays:

    lattice -> neighbourhoods -> notch -> volume correction -> stiffness
            -> critical stretch

The stiffness stage always sees the final (post-notch) topology.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence

import numpy as np

from . import runtime
from .config import DiscretizationConfig, MaterialRegionConfig
from .core.bonds import BondSet
from .core.damage import CriticalStretchFn, calibrate_critical_stretch
from .core.lattice import Lattice, build_lattice
from .core.neighbor import build_neighborhoods
from .core.notch import NotchRegion, cut_notch
from .core.stiffness import BondStiffness, InterfacePolicy, assemble_bond_stiffness
from .core.volume import volume_correction_factors
from .material.linear_elastic import MaterialKind, MaterialRecord, neighbourhood_volume
from .regions import select_box, select_within_radius
from .validation import InvalidConfiguration

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, dict], None]


@dataclass(frozen=True, eq=False)
class Discretization:
    """Discretization snapshot handed to the solver.

    Attributes:
        lattice: Material point lattice
        material_tags: Material kind per point
        density: Mass density per point [kg/m^3]
        bonds: Final bond set (after the notch)
        volume_correction: Volume-correction factor per bond
        stiffness: Bond stiffness data
        critical_stretch: Critical stretch per bond
        horizon: Neighbourhood radius
        neighbourhood_volume: Ideal (bulk) neighbourhood volume
        notch: Notch that was cut, if any
        timings: Wall time per stage [s]
    """
    lattice: Lattice
    material_tags: np.ndarray
    density: np.ndarray
    bonds: BondSet
    volume_correction: np.ndarray
    stiffness: BondStiffness
    critical_stretch: np.ndarray
    horizon: float
    neighbourhood_volume: float
    notch: Optional[NotchRegion] = None
    timings: Dict[str, float] = field(default_factory=dict)

    @property
    def n_points(self) -> int:
        return self.lattice.n_points

    @property
    def n_bonds(self) -> int:
        return self.bonds.n_bonds

    def to_arrays(self) -> Dict[str, np.ndarray]:
        """Plain arrays for the solver input file."""
        return {
            "coordinates": np.asarray(self.lattice.coordinates),
            "material_tags": self.material_tags,
            "density": self.density,
            "bond_list": self.bonds.pairs,
            "rest_length": self.bonds.rest_length,
            "volume_correction": self.volume_correction,
            "bond_stiffness": self.stiffness.stiffness,
            "bond_type": self.stiffness.bond_type,
            "critical_stretch": self.critical_stretch,
            "family_counts": self.bonds.counts,
            "family_offsets": self.bonds.offsets,
            "family": self.bonds.members,
            "spacing": np.float64(self.lattice.spacing),
            "horizon": np.float64(self.horizon),
            "cell_volume": np.float64(self.lattice.cell_volume),
            "neighbourhood_volume": np.float64(self.neighbourhood_volume),
        }

    def summary(self) -> Dict[str, float]:
        counts = self.bonds.counts
        return {
            "points": self.n_points,
            "bonds": self.n_bonds,
            "horizon": self.horizon,
            "family_min": int(counts.min()),
            "family_max": int(counts.max()),
            "family_mean": float(counts.mean()),
            "surface_correction_max": float(self.stiffness.surface_correction.max(initial=1.0)),
            "interface_bonds": int(np.count_nonzero(
                self.material_tags[self.bonds.pairs[:, 0]] != self.material_tags[self.bonds.pairs[:, 1]]
            )),
        }


def assign_material_tags(
    points: np.ndarray,
    regions: Sequence[MaterialRegionConfig],
    default: str = "concrete",
) -> np.ndarray:
    """Material kind per point; later regions override earlier ones."""
    tags = np.full(points.shape[0], int(MaterialKind.from_name(default)), dtype=np.int32)
    for region in regions:
        if region.shape == "box":
            idx = select_box(points, region.lower, region.upper)
        else:
            idx = select_within_radius(points, region.center, region.radius, axes=region.axes)
        tags[idx] = int(MaterialKind.from_name(region.kind))
    return tags


def nodal_density(tags: np.ndarray, records: Dict[MaterialKind, MaterialRecord]) -> np.ndarray:
    """Mass density per point, looked up from its material record."""
    table = np.zeros(max(int(k) for k in MaterialKind) + 1, dtype=np.float64)
    for kind, rec in records.items():
        table[int(kind)] = rec.density
    density = table[tags]
    density.flags.writeable = False
    return density


def _check_tags(tags, n_points: int) -> np.ndarray:
    tags = np.asarray(tags).astype(np.int32)
    if tags.shape != (n_points,):
        raise InvalidConfiguration(
            f"material tags have shape {tags.shape}, expected ({n_points},)",
            parameter="material_tags",
            value=tags.shape,
        )
    valid = np.isin(tags, [int(k) for k in MaterialKind])
    if not np.all(valid):
        raise InvalidConfiguration(
            f"unknown material tag {int(tags[~valid][0])}",
            parameter="material_tags",
            value=int(tags[~valid][0]),
        )
    return tags


@contextmanager
def _stage(name: str, timings: Dict[str, float], progress_callback: Optional[ProgressCallback]):
    if progress_callback:
        progress_callback(name, {"message": "running"})
    start = time.perf_counter()
    yield
    elapsed = time.perf_counter() - start
    timings[name] = elapsed
    logger.info(f"{name}: {elapsed:.3f} s")
    if progress_callback:
        progress_callback(name, {"message": f"done ({elapsed:.2f} s)", "elapsed": elapsed})


def discretize(
    config: Optional[DiscretizationConfig] = None,
    material_tags: Optional[np.ndarray] = None,
    critical_stretch_fn: Optional[CriticalStretchFn] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> Discretization:
    """Build the full discretization of a member.

    Args:
        config: Discretization settings (defaults when None)
        material_tags: Material kind per point; taken from the config
            regions when None
        critical_stretch_fn: Per-bond critical stretch calibration
            (:func:`calibrate_critical_stretch` when None)
        progress_callback: Called with (stage, details) around each stage

    Returns:
        Discretization snapshot
    """
    config = config or DiscretizationConfig.default()
    timings: Dict[str, float] = {}
    lat = config.lattice
    horizon = config.horizon

    with _stage("lattice", timings, progress_callback):
        lattice = build_lattice(
            spacing=lat.spacing,
            divisions=tuple(lat.divisions),
            dim=lat.dim,
            origin=tuple(lat.origin) if lat.origin is not None else None,
            edge_inclusive=lat.edge_inclusive,
            thickness=lat.thickness,
        )
        if material_tags is None:
            tags = assign_material_tags(lattice.coordinates, config.regions, config.default_material)
        else:
            tags = _check_tags(material_tags, lattice.n_points)
        tags.flags.writeable = False

    if config.neighborhood.method == "grid":
        runtime.init(
            runtime.Backend(config.runtime.backend),
            runtime.Precision(config.runtime.precision),
        )

    with _stage("neighborhoods", timings, progress_callback):
        bonds = build_neighborhoods(lattice.coordinates, horizon, method=config.neighborhood.method)

    notch = None
    if config.notch is not None:
        with _stage("notch", timings, progress_callback):
            n = config.notch
            notch = NotchRegion.from_lattice(
                lattice,
                eccentricity=n.eccentricity,
                depth=n.depth,
                normal_axis=n.normal_axis,
                depth_axis=n.depth_axis,
                face=n.face,
            )
            bonds = cut_notch(lattice.coordinates, bonds, notch)

    with _stage("volume_correction", timings, progress_callback):
        vcf = volume_correction_factors(bonds.rest_length, horizon, config.point_radius)

    records = config.material_records()
    density = nodal_density(tags, records)
    ideal_volume = neighbourhood_volume(horizon, lattice.dim, lattice.thickness)
    with _stage("stiffness", timings, progress_callback):
        micromoduli = {
            kind: rec.micromodulus(horizon, lattice.dim, lattice.thickness)
            for kind, rec in records.items()
        }
        stiffness = assemble_bond_stiffness(
            bonds,
            tags,
            micromoduli,
            cell_volume=lattice.cell_volume,
            neighbourhood_volume=ideal_volume,
            volume_correction=vcf,
            policy=InterfacePolicy(config.stiffness.interface_policy),
        )

    with _stage("critical_stretch", timings, progress_callback):
        calibrate = critical_stretch_fn or calibrate_critical_stretch
        crit = np.asarray(calibrate(bonds, tags, records, horizon, lattice.dim), dtype=np.float64)
        if crit.shape != (bonds.n_bonds,):
            raise InvalidConfiguration(
                f"critical stretch calibration returned shape {crit.shape}, "
                f"expected ({bonds.n_bonds},)",
                parameter="critical_stretch_fn",
                value=crit.shape,
            )

    logger.info(
        f"discretization done: {lattice.n_points} points, {bonds.n_bonds} bonds, "
        f"{sum(timings.values()):.2f} s"
    )
    return Discretization(
        lattice=lattice,
        material_tags=tags,
        density=density,
        bonds=bonds,
        volume_correction=vcf,
        stiffness=stiffness,
        critical_stretch=crit,
        horizon=horizon,
        neighbourhood_volume=ideal_volume,
        notch=notch,
        timings=timings,
    )

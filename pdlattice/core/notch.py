"""Initial notch: removal of the bonds that cross a planar slot."""

import logging
from dataclasses import dataclass
from typing import Iterable, Literal, Optional, Tuple

import numpy as np

from ..validation import InvalidConfiguration
from .bonds import BondSet
from .lattice import Lattice

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotchRegion:
    """Planar slot of zero width cut into a free face.

    The slot lies in the plane ``x[normal_axis] == position`` and runs along
    ``depth_axis`` from the free face at ``mouth`` to the notch ``tip``,
    through the full extent of the remaining axis.

    Attributes:
        position: Plane coordinate along the normal axis
        mouth: Coordinate of the notched free face along the depth axis
        tip: Coordinate of the notch tip along the depth axis
        normal_axis: Axis normal to the notch plane
        depth_axis: Axis along which the notch depth is measured
    """
    position: float
    mouth: float
    tip: float
    normal_axis: int = 0
    depth_axis: int = 2

    @classmethod
    def from_lattice(
        cls,
        lattice: Lattice,
        eccentricity: float,
        depth: float,
        normal_axis: int = 0,
        depth_axis: Optional[int] = None,
        face: Literal["min", "max"] = "min",
    ) -> "NotchRegion":
        """Notch given in multiples of the lattice spacing.

        Args:
            lattice: Lattice of the member
            eccentricity: Plane offset from the member's lower face along
                ``normal_axis``, in lattice spacings
            depth: Notch depth from the notched face, in lattice spacings
            normal_axis: Axis normal to the notch plane
            depth_axis: Depth axis (defaults to the last axis)
            face: Which face along ``depth_axis`` is notched

        Raises:
            InvalidConfiguration: the notch does not fit inside the member
        """
        dim = lattice.dim
        if depth_axis is None:
            depth_axis = dim - 1
        for name, axis in (("normal_axis", normal_axis), ("depth_axis", depth_axis)):
            if not 0 <= axis < dim:
                raise InvalidConfiguration(
                    f"{name} is {axis}, it must be in [0, {dim})",
                    parameter=name,
                    value=axis,
                )
        if normal_axis == depth_axis:
            raise InvalidConfiguration(
                f"notch normal and depth axis are both {normal_axis}",
                parameter="depth_axis",
                value=depth_axis,
            )
        if face not in ("min", "max"):
            raise InvalidConfiguration(
                f"notched face is '{face}', expected 'min' or 'max'",
                parameter="face",
                value=face,
            )

        lower, upper = lattice.bounds
        dx = lattice.spacing
        position = lower[normal_axis] + eccentricity * dx
        if not lower[normal_axis] < position < upper[normal_axis]:
            raise InvalidConfiguration(
                f"notch plane at {position:.6g} lies outside the member "
                f"({lower[normal_axis]:.6g}, {upper[normal_axis]:.6g})",
                parameter="eccentricity",
                value=eccentricity,
                suggestion=f"0 < eccentricity < {lattice.divisions[normal_axis]}",
            )

        extent = upper[depth_axis] - lower[depth_axis]
        if not 0 < depth * dx <= extent:
            raise InvalidConfiguration(
                f"notch depth {depth * dx:.6g} is not in (0, {extent:.6g}]",
                parameter="depth",
                value=depth,
                suggestion=f"0 < depth <= {lattice.divisions[depth_axis]}",
            )

        if face == "min":
            mouth = lower[depth_axis]
            tip = mouth + depth * dx
        else:
            mouth = upper[depth_axis]
            tip = mouth - depth * dx

        return cls(
            position=float(position),
            mouth=float(mouth),
            tip=float(tip),
            normal_axis=normal_axis,
            depth_axis=depth_axis,
        )

    def crosses(self, xi: np.ndarray, xj: np.ndarray) -> np.ndarray:
        """Which segments ``xi -> xj`` pass through the notch.

        A segment crosses when its endpoints lie on opposite sides of the
        plane and it meets the plane between the face and the tip (tip
        included). A point lying on the plane counts as the upper side, so a
        bond from below onto the plane crosses and a bond from the plane
        upwards does not.

        Args:
            xi: Start points (n, dim)
            xj: End points (n, dim)

        Returns:
            Boolean array (n,)
        """
        xi = np.atleast_2d(np.asarray(xi, dtype=np.float64))
        xj = np.atleast_2d(np.asarray(xj, dtype=np.float64))
        a = xi[:, self.normal_axis] - self.position
        b = xj[:, self.normal_axis] - self.position
        straddle = ((a < 0) & (b >= 0)) | ((b < 0) & (a >= 0))

        # parameter of the plane intersection, only meaningful where straddling
        denom = np.where(straddle, a - b, 1.0)
        t = np.where(straddle, a / denom, 0.0)
        hit = xi[:, self.depth_axis] + t * (xj[:, self.depth_axis] - xi[:, self.depth_axis])

        lo, hi = min(self.mouth, self.tip), max(self.mouth, self.tip)
        return straddle & (hit >= lo) & (hit <= hi)

    def describe(self) -> str:
        axes = "xyz"
        return (
            f"plane {axes[self.normal_axis]} = {self.position:.6g}, "
            f"{axes[self.depth_axis]} from {self.mouth:.6g} to {self.tip:.6g}"
        )


def notch_mask(coordinates: np.ndarray, bonds: BondSet, notch: NotchRegion) -> np.ndarray:
    """Boolean mask of the bonds whose segment crosses ``notch``."""
    coords = np.asarray(coordinates, dtype=np.float64)
    return notch.crosses(coords[bonds.pairs[:, 0]], coords[bonds.pairs[:, 1]])


def cut_notch(coordinates: np.ndarray, bonds: BondSet, notch: NotchRegion) -> BondSet:
    """Remove every bond crossing the notch.

    Runs after the neighbour search and before any volume or stiffness
    computation. The result is a new bond set: removed rows are dropped,
    retained rest lengths are kept as they were, families are rebuilt and
    checked for symmetry. Cutting the member into disconnected parts is
    not an error here.

    Args:
        coordinates: Undeformed coordinates (n_points, dim)
        bonds: Bond set from the neighbour search
        notch: Notch geometry

    Returns:
        Bond set without the crossing bonds
    """
    coords = np.asarray(coordinates, dtype=np.float64)
    if coords.shape[0] != bonds.n_points:
        raise InvalidConfiguration(
            f"{coords.shape[0]} coordinates for a bond set of {bonds.n_points} points",
            parameter="coordinates",
            value=coords.shape[0],
        )
    removed = notch_mask(coords, bonds, notch)
    result = bonds.without(removed)
    logger.info(f"notch ({notch.describe()}): removed {int(removed.sum())} of {bonds.n_bonds} bonds")
    return result


def cut_pairs(bonds: BondSet, pairs: Iterable[Tuple[int, int]]) -> BondSet:
    """Remove an explicit list of bonds (pairs that are not bonded are ignored)."""
    rows = bonds.bond_lookup(pairs)
    removed = np.zeros(bonds.n_bonds, dtype=bool)
    removed[rows[rows >= 0]] = True
    logger.info(f"initial crack: removed {int(removed.sum())} of {bonds.n_bonds} bonds")
    return bonds.without(removed)

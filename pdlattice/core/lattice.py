"""Regular material point lattice for a prismatic member."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from ..validation import InvalidConfiguration, validate_divisions, validate_spacing


@dataclass(frozen=True, eq=False)
class Lattice:
    """Material points on a uniform grid.

    Attributes:
        coordinates: Undeformed coordinates (n_points, dim), axis 0 slowest
        spacing: Distance between neighbouring points along each axis
        divisions: Number of cells along each axis
        origin: Lower corner of the member
        edge_inclusive: Points on cell corners (n+1 per axis) instead of
            cell centres (n per axis)
        thickness: Out-of-plane thickness (2-D only)
    """
    coordinates: np.ndarray
    spacing: float
    divisions: Tuple[int, ...]
    origin: Tuple[float, ...]
    edge_inclusive: bool = False
    thickness: float = 1.0
    shape: Tuple[int, ...] = field(init=False)

    def __post_init__(self):
        extra = 1 if self.edge_inclusive else 0
        object.__setattr__(self, "shape", tuple(n + extra for n in self.divisions))
        self.coordinates.flags.writeable = False

    @property
    def dim(self) -> int:
        return len(self.divisions)

    @property
    def n_points(self) -> int:
        return self.coordinates.shape[0]

    @property
    def cell_volume(self) -> float:
        """Volume represented by one material point."""
        if self.dim == 2:
            return self.spacing ** 2 * self.thickness
        return self.spacing ** 3

    @property
    def point_radius(self) -> float:
        """Nominal half-spacing of a cell."""
        return 0.5 * self.spacing

    @property
    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Lower and upper corner of the member (same for both conventions)."""
        lower = np.asarray(self.origin, dtype=np.float64)
        upper = lower + np.asarray(self.divisions, dtype=np.float64) * self.spacing
        return lower, upper

    def index(self, *ijk: int) -> int:
        """Linear point index of a lattice site (row-major, axis 0 slowest)."""
        if len(ijk) != self.dim:
            raise InvalidConfiguration(
                f"{len(ijk)} lattice indices given for a {self.dim}-D lattice",
                parameter="ijk",
                value=ijk,
            )
        return int(np.ravel_multi_index(ijk, self.shape))


def build_lattice(
    spacing: float,
    divisions: Tuple[int, ...],
    dim: int = 3,
    origin: Optional[Tuple[float, ...]] = None,
    edge_inclusive: bool = False,
    thickness: float = 1.0,
) -> Lattice:
    """Build the regular lattice of material points.

    Cell-centred by default: a member of ``divisions[a] * spacing`` along
    axis ``a`` holds ``divisions[a]`` points at ``(k + 0.5) * spacing``.
    With ``edge_inclusive`` the points sit on the cell corners instead,
    ``divisions[a] + 1`` per axis. Spacing is uniform either way.

    Args:
        spacing: Lattice spacing
        divisions: Number of cells along each axis
        dim: Spatial dimension (2 or 3)
        origin: Lower corner of the member (defaults to the origin)
        edge_inclusive: Place points on cell corners
        thickness: Out-of-plane thickness for 2-D members

    Returns:
        Lattice with coordinates ordered row-major by axis
    """
    validate_spacing(spacing)
    validate_divisions(dim, divisions)
    if not (thickness > 0):
        raise InvalidConfiguration(
            f"thickness is {thickness}, it must be positive",
            parameter="thickness",
            value=thickness,
        )
    if origin is None:
        origin = (0.0,) * dim
    if len(origin) != dim:
        raise InvalidConfiguration(
            f"origin has {len(origin)} components for a {dim}-D lattice",
            parameter="origin",
            value=tuple(origin),
        )

    divisions = tuple(int(n) for n in divisions)
    offset = 0.0 if edge_inclusive else 0.5
    extra = 1 if edge_inclusive else 0

    axes = [
        origin[a] + (np.arange(divisions[a] + extra, dtype=np.float64) + offset) * spacing
        for a in range(dim)
    ]
    grids = np.meshgrid(*axes, indexing="ij")
    coordinates = np.stack([g.ravel() for g in grids], axis=1)

    return Lattice(
        coordinates=coordinates,
        spacing=float(spacing),
        divisions=divisions,
        origin=tuple(float(o) for o in origin),
        edge_inclusive=edge_inclusive,
        thickness=float(thickness),
    )

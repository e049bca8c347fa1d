"""Point selection by region (supports, penetrators, reinforcement)."""

from typing import Optional, Sequence

import numpy as np
from scipy.spatial import cKDTree

from .validation import InvalidConfiguration


def select_within_radius(
    points: np.ndarray,
    center: Sequence[float],
    radius: float,
    axes: Optional[Sequence[int]] = None,
) -> np.ndarray:
    """Indices of the points within ``radius`` of ``center`` (inclusive).

    With ``axes`` the distance is measured in the projection onto those
    axes only, so two axes of a 3-D member select a cylinder (e.g. a
    penetrator or a reinforcing bar running along the remaining axis).

    Args:
        points: Coordinates (n_points, dim)
        center: Center in the (projected) coordinates
        radius: Selection radius
        axes: Axes to measure the distance in (all when None)

    Returns:
        Sorted index array
    """
    pts = np.asarray(points, dtype=np.float64)
    if axes is not None:
        pts = pts[:, list(axes)]
    center = np.asarray(center, dtype=np.float64)
    if center.shape != (pts.shape[1],):
        raise InvalidConfiguration(
            f"center has {center.size} components, expected {pts.shape[1]}",
            parameter="center",
            value=tuple(center.tolist()),
        )
    if not (radius > 0):
        raise InvalidConfiguration(
            f"selection radius is {radius}, it must be positive",
            parameter="radius",
            value=radius,
        )
    tree = cKDTree(pts)
    return np.sort(np.asarray(tree.query_ball_point(center, r=radius), dtype=np.int64))


def select_box(
    points: np.ndarray,
    lower: Sequence[float],
    upper: Sequence[float],
) -> np.ndarray:
    """Indices of the points inside the axis-aligned box (inclusive)."""
    pts = np.asarray(points, dtype=np.float64)
    lower = np.asarray(lower, dtype=np.float64)
    upper = np.asarray(upper, dtype=np.float64)
    if lower.shape != (pts.shape[1],) or upper.shape != (pts.shape[1],):
        raise InvalidConfiguration(
            f"box corners must have {pts.shape[1]} components",
            parameter="lower/upper",
            value=(lower.size, upper.size),
        )
    inside = np.all((pts >= lower) & (pts <= upper), axis=1)
    return np.nonzero(inside)[0]

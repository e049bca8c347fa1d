"""Partial-volume correction for bonds near the horizon boundary."""

import numpy as np

from ..validation import validate_horizon, validate_point_radius


def volume_correction_factors(
    rest_length: np.ndarray,
    horizon: float,
    point_radius: float,
) -> np.ndarray:
    """Fraction of the far cell that lies inside the neighbourhood sphere.

    A cell of half-width ``r`` centred at distance ``L`` spans
    ``[L - r, L + r]`` along the bond. It counts fully when
    ``L + r <= horizon``, not at all when ``L - r >= horizon``, and
    linearly in between:

        factor = clip((horizon + r - L) / (2 r), 0, 1)

    Args:
        rest_length: Undeformed bond lengths (n_bonds,)
        horizon: Neighbourhood radius
        point_radius: Half the lattice spacing

    Returns:
        Correction factor per bond in [0, 1]
    """
    validate_horizon(horizon)
    validate_point_radius(point_radius)
    length = np.asarray(rest_length, dtype=np.float64)
    partial = np.clip((horizon + point_radius - length) / (2.0 * point_radius), 0.0, 1.0)
    # the two limits are exact, not subject to rounding of the interpolation
    factors = np.where(length + point_radius <= horizon, 1.0, partial)
    return np.where(length - point_radius >= horizon, 0.0, factors)

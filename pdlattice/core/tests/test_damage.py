"""Critical stretch tests."""

import math

import numpy as np
import pytest

from pdlattice.core.bonds import BondSet
from pdlattice.core.damage import calibrate_critical_stretch, critical_stretch
from pdlattice.material.linear_elastic import CONCRETE, STEEL, MaterialKind, MaterialRecord
from pdlattice.validation import InvalidConfiguration, UnsupportedMaterialPair

HORIZON = math.pi * 5e-3


class TestCriticalStretch:

    def test_3d(self):
        expected = math.sqrt(5 * 143.2 / (9 * 37e9 * HORIZON))
        assert critical_stretch(37e9, 143.2, HORIZON) == pytest.approx(expected)

    def test_2d(self):
        expected = math.sqrt(4 * math.pi * 143.2 / (9 * 37e9 * HORIZON))
        assert critical_stretch(37e9, 143.2, HORIZON, dim=2) == pytest.approx(expected)

    def test_bad_horizon(self):
        with pytest.raises(InvalidConfiguration):
            critical_stretch(37e9, 143.2, 0.0)


class TestCalibrate:

    def _bonds(self):
        return BondSet.from_pairs(np.array([[0, 1], [1, 2], [2, 3]]), np.ones(3), n_points=4)

    def test_interface_takes_smaller_value(self):
        tags = np.array([0, 0, 1, 1])
        materials = {MaterialKind.CONCRETE: CONCRETE, MaterialKind.STEEL: STEEL}
        s = calibrate_critical_stretch(self._bonds(), tags, materials, HORIZON)
        s_concrete = critical_stretch(CONCRETE.E, CONCRETE.fracture_energy, HORIZON)
        np.testing.assert_allclose(s, [s_concrete, s_concrete, STEEL.critical_stretch])

    def test_record_override(self):
        tags = np.zeros(4, dtype=int)
        record = MaterialRecord("concrete", E=30e9, density=2400.0, fracture_energy=100.0, critical_stretch=0.002)
        s = calibrate_critical_stretch(self._bonds(), tags, {0: record}, HORIZON)
        np.testing.assert_allclose(s, 0.002)

    def test_missing_record(self):
        tags = np.array([0, 0, 1, 1])
        with pytest.raises(UnsupportedMaterialPair):
            calibrate_critical_stretch(self._bonds(), tags, {0: CONCRETE}, HORIZON)

"""Bond list and family arena tests."""

import numpy as np
import pytest

from pdlattice.core.bonds import BondSet, families_from_pairs
from pdlattice.validation import InconsistentTopology, InvalidConfiguration


def _triangle():
    return BondSet.from_pairs(
        np.array([[2, 0], [1, 0], [1, 2]]),
        np.array([2.0, 1.0, 3.0]),
        n_points=4,
    )


class TestFromPairs:

    def test_pairs_normalized_and_sorted(self):
        bonds = _triangle()
        np.testing.assert_array_equal(bonds.pairs, [[0, 1], [0, 2], [1, 2]])
        # rest lengths follow their pair
        np.testing.assert_allclose(bonds.rest_length, [1.0, 2.0, 3.0])
        assert bonds.n_bonds == 3

    def test_families(self):
        bonds = _triangle()
        np.testing.assert_array_equal(bonds.counts, [2, 2, 2, 0])
        np.testing.assert_array_equal(bonds.offsets, [0, 2, 4, 6])
        np.testing.assert_array_equal(bonds.family(0), [1, 2])
        np.testing.assert_array_equal(bonds.family(2), [0, 1])
        assert bonds.family(3).size == 0
        np.testing.assert_array_equal(bonds.families.family_bonds(1), [0, 2])

    def test_every_entry_has_a_mirror(self):
        bonds = _triangle()
        bonds.check_symmetry()
        owners = bonds.families.owners()
        entries = set(zip(owners.tolist(), bonds.members.tolist()))
        assert all((j, i) in entries for i, j in entries)
        assert bonds.counts.sum() == 2 * bonds.n_bonds

    def test_self_bond_rejected(self):
        with pytest.raises(InconsistentTopology, match="itself"):
            BondSet.from_pairs(np.array([[1, 1]]), np.array([0.0]), n_points=2)

    def test_duplicate_rejected(self):
        """(i, j) and (j, i) are the same bond."""
        with pytest.raises(InconsistentTopology, match="twice"):
            BondSet.from_pairs(np.array([[0, 1], [1, 0]]), np.array([1.0, 1.0]), n_points=2)

    def test_out_of_range(self):
        with pytest.raises(InvalidConfiguration):
            BondSet.from_pairs(np.array([[0, 5]]), np.array([1.0]), n_points=3)

    def test_length_mismatch(self):
        with pytest.raises(InvalidConfiguration):
            BondSet.from_pairs(np.array([[0, 1]]), np.array([1.0, 2.0]), n_points=3)

    def test_empty(self):
        bonds = BondSet.from_pairs(np.zeros((0, 2)), np.zeros(0), n_points=3)
        assert bonds.n_bonds == 0
        np.testing.assert_array_equal(bonds.counts, [0, 0, 0])
        bonds.check_symmetry()


class TestWithout:

    def test_removes_masked_bonds(self):
        bonds = _triangle()
        trimmed = bonds.without(np.array([False, True, False]))
        np.testing.assert_array_equal(trimmed.pairs, [[0, 1], [1, 2]])
        np.testing.assert_allclose(trimmed.rest_length, [1.0, 3.0])
        np.testing.assert_array_equal(trimmed.counts, [1, 2, 1, 0])
        # original untouched
        assert bonds.n_bonds == 3

    def test_mask_shape(self):
        with pytest.raises(InvalidConfiguration):
            _triangle().without(np.array([True]))


class TestLookup:

    def test_lookup_either_order(self):
        bonds = _triangle()
        np.testing.assert_array_equal(bonds.bond_lookup([(2, 0), (1, 2), (0, 3)]), [1, 2, -1])

    def test_lookup_on_empty_set(self):
        bonds = BondSet.from_pairs(np.zeros((0, 2)), np.zeros(0), n_points=2)
        np.testing.assert_array_equal(bonds.bond_lookup([(0, 1)]), [-1])


class TestSymmetryCheck:

    def test_families_out_of_sync(self):
        pairs = np.array([[0, 1], [0, 2]])
        bonds = BondSet(
            n_points=3,
            pairs=pairs,
            rest_length=np.ones(2),
            families=families_from_pairs(pairs[:1], 3),
        )
        with pytest.raises(InconsistentTopology):
            bonds.check_symmetry()

    def test_wrong_bond_ids(self):
        pairs = np.array([[0, 1], [0, 2]])
        fam = families_from_pairs(pairs[::-1].copy(), 3)
        bonds = BondSet(n_points=3, pairs=pairs, rest_length=np.ones(2), families=fam)
        with pytest.raises(InconsistentTopology, match="wrong bond"):
            bonds.check_symmetry()

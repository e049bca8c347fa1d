"""노치 본드 제거 테스트."""

import numpy as np
import pytest

from pdlattice.core.bonds import BondSet
from pdlattice.core.lattice import build_lattice
from pdlattice.core.neighbor import build_neighborhoods
from pdlattice.core.notch import NotchRegion, cut_notch, cut_pairs, notch_mask
from pdlattice.validation import InvalidConfiguration


@pytest.fixture
def plate():
    """3 x 3 x 1 격자, 호라이즌 1.5 (KD-tree)."""
    lat = build_lattice(spacing=1.0, divisions=(3, 3, 1))
    bonds = build_neighborhoods(lat.coordinates, 1.5, method="kdtree")
    return lat, bonds


class TestFromLattice:

    def test_geometry(self, plate):
        lat, _ = plate
        notch = NotchRegion.from_lattice(lat, eccentricity=1.0, depth=0.75, normal_axis=0, depth_axis=1)
        assert notch.position == pytest.approx(1.0)
        assert notch.mouth == pytest.approx(0.0)
        assert notch.tip == pytest.approx(0.75)

    def test_default_depth_axis_is_last(self, plate):
        lat, _ = plate
        notch = NotchRegion.from_lattice(lat, eccentricity=1.5, depth=1.0)
        assert notch.depth_axis == 2

    def test_notch_from_top_face(self, plate):
        lat, _ = plate
        notch = NotchRegion.from_lattice(lat, eccentricity=1.0, depth=1.0, depth_axis=1, face="max")
        assert notch.mouth == pytest.approx(3.0)
        assert notch.tip == pytest.approx(2.0)

    @pytest.mark.parametrize("eccentricity", [0.0, 3.0, -1.0, 4.0])
    def test_plane_outside_member(self, plate, eccentricity):
        lat, _ = plate
        with pytest.raises(InvalidConfiguration, match="outside"):
            NotchRegion.from_lattice(lat, eccentricity=eccentricity, depth=1.0, depth_axis=1)

    @pytest.mark.parametrize("depth", [0.0, -1.0, 3.5])
    def test_bad_depth(self, plate, depth):
        lat, _ = plate
        with pytest.raises(InvalidConfiguration):
            NotchRegion.from_lattice(lat, eccentricity=1.0, depth=depth, depth_axis=1)

    def test_same_axes(self, plate):
        lat, _ = plate
        with pytest.raises(InvalidConfiguration):
            NotchRegion.from_lattice(lat, eccentricity=1.0, depth=1.0, normal_axis=1, depth_axis=1)

    def test_axis_out_of_range(self):
        lat = build_lattice(spacing=1.0, divisions=(3, 3), dim=2)
        with pytest.raises(InvalidConfiguration):
            NotchRegion.from_lattice(lat, eccentricity=1.0, depth=1.0, depth_axis=2)


class TestCrosses:

    def test_straddling_segment(self):
        notch = NotchRegion(position=1.0, mouth=0.0, tip=0.75, normal_axis=0, depth_axis=1)
        xi = np.array([[0.5, 0.5, 0.0]])
        xj = np.array([[1.5, 0.5, 0.0]])
        assert notch.crosses(xi, xj)[0]
        assert notch.crosses(xj, xi)[0]

    def test_endpoint_on_plane_counts_as_upper_side(self):
        """평면 위의 점은 위쪽(+) 편으로 본다."""
        notch = NotchRegion(position=1.0, mouth=0.0, tip=0.75, normal_axis=0, depth_axis=1)
        assert not notch.crosses([[1.0, 0.2, 0.0]], [[1.5, 0.2, 0.0]])[0]
        assert notch.crosses([[0.5, 0.2, 0.0]], [[1.0, 0.2, 0.0]])[0]
        assert notch.crosses([[1.0, 0.2, 0.0]], [[0.5, 0.2, 0.0]])[0]

    def test_both_endpoints_on_plane(self):
        notch = NotchRegion(position=1.0, mouth=0.0, tip=0.75, normal_axis=0, depth_axis=1)
        assert not notch.crosses([[1.0, 0.1, 0.0]], [[1.0, 0.5, 0.0]])[0]

    def test_tip_is_inclusive(self):
        notch = NotchRegion(position=1.0, mouth=0.0, tip=0.75, normal_axis=0, depth_axis=1)
        assert notch.crosses([[0.5, 0.75, 0.0]], [[1.5, 0.75, 0.0]])[0]
        assert not notch.crosses([[0.5, 0.76, 0.0]], [[1.5, 0.76, 0.0]])[0]

    def test_intersection_past_tip(self):
        """대각 본드: 교차점이 팁 너머."""
        notch = NotchRegion(position=1.0, mouth=0.0, tip=0.75, normal_axis=0, depth_axis=1)
        assert not notch.crosses([[0.5, 0.5, 0.0]], [[1.5, 1.5, 0.0]])[0]

    def test_same_side(self):
        notch = NotchRegion(position=1.0, mouth=0.0, tip=0.75)
        assert not notch.crosses([[0.2, 0.0, 0.1]], [[0.8, 0.0, 0.1]])[0]


class TestCutNotch:

    def test_removes_only_crossing_bond(self, plate):
        lat, bonds = plate
        notch = NotchRegion.from_lattice(lat, eccentricity=1.0, depth=0.75, normal_axis=0, depth_axis=1)
        cut = cut_notch(lat.coordinates, bonds, notch)

        assert cut.n_bonds == bonds.n_bonds - 1
        assert bonds.bond_lookup([(0, 3)])[0] >= 0
        assert cut.bond_lookup([(0, 3)])[0] == -1
        expected = bonds.counts.copy()
        expected[[0, 3]] -= 1
        np.testing.assert_array_equal(cut.counts, expected)
        cut.check_symmetry()

    def test_no_remaining_bond_crosses(self):
        lat = build_lattice(spacing=1.0, divisions=(8, 3, 6))
        bonds = build_neighborhoods(lat.coordinates, 3.0, method="kdtree")
        notch = NotchRegion.from_lattice(lat, eccentricity=4.0, depth=3.0)
        cut = cut_notch(lat.coordinates, bonds, notch)
        assert cut.n_bonds < bonds.n_bonds
        assert not np.any(notch_mask(lat.coordinates, cut, notch))

    def test_rest_lengths_kept(self, plate):
        lat, bonds = plate
        notch = NotchRegion.from_lattice(lat, eccentricity=1.0, depth=3.0, normal_axis=0, depth_axis=1)
        cut = cut_notch(lat.coordinates, bonds, notch)
        rows = bonds.bond_lookup(cut.pairs.tolist())
        np.testing.assert_array_equal(cut.rest_length, bonds.rest_length[rows])

    def test_full_depth_cut_separates_parts(self, plate):
        lat, bonds = plate
        notch = NotchRegion.from_lattice(lat, eccentricity=1.0, depth=3.0, normal_axis=0, depth_axis=1)
        cut = cut_notch(lat.coordinates, bonds, notch)
        left = lat.coordinates[cut.pairs[:, 0], 0] < 1.0
        right = lat.coordinates[cut.pairs[:, 1], 0] > 1.0
        assert not np.any(left & right)

    def test_edge_inclusive_full_depth_cut(self):
        """격자점이 노치 평면 위에 있어도 관통 노치는 양쪽을 완전히 끊는다."""
        lat = build_lattice(spacing=1.0, divisions=(4, 3, 1), edge_inclusive=True)
        bonds = build_neighborhoods(lat.coordinates, 1.5, method="kdtree")
        notch = NotchRegion.from_lattice(lat, 2.0, 3.0, 0, 1)
        cut = cut_notch(lat.coordinates, bonds, notch)

        assert cut.n_bonds < bonds.n_bonds
        x = lat.coordinates[:, 0]
        below = x[cut.pairs] < 2.0
        assert not np.any(below[:, 0] != below[:, 1])
        # 평면 위 점과 오른쪽 점 사이의 본드는 남는다
        on_plane = x[cut.pairs] == 2.0
        assert np.any(on_plane.any(axis=1) & ~below.any(axis=1))
        cut.check_symmetry()

    def test_coordinate_count_mismatch(self, plate):
        lat, bonds = plate
        notch = NotchRegion.from_lattice(lat, eccentricity=1.0, depth=1.0, depth_axis=1)
        with pytest.raises(InvalidConfiguration):
            cut_notch(lat.coordinates[:4], bonds, notch)


class TestCutPairs:

    def test_explicit_pairs(self, plate):
        _, bonds = plate
        cut = cut_pairs(bonds, [(1, 0), (4, 8), (0, 8)])
        assert cut.n_bonds == bonds.n_bonds - 2
        np.testing.assert_array_equal(cut.bond_lookup([(0, 1), (4, 8)]), [-1, -1])

    def test_no_pairs(self):
        bonds = BondSet.from_pairs(np.array([[0, 1]]), np.array([1.0]), n_points=2)
        assert cut_pairs(bonds, []).n_bonds == 1

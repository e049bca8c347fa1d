"""설정 시스템 테스트."""

import math

import pytest
from pydantic import ValidationError

from pdlattice.config import (
    DiscretizationConfig,
    LatticeConfig,
    MaterialRegionConfig,
    NotchConfig,
    RuntimeConfig,
)
from pdlattice.material.linear_elastic import MaterialKind


class TestDefaults:

    def test_default_beam(self):
        cfg = DiscretizationConfig.default()
        assert cfg.lattice.spacing == 5e-3
        assert cfg.lattice.divisions == [100, 10, 32]
        assert cfg.neighborhood.method == "grid"
        assert cfg.notch is None
        assert cfg.stiffness.interface_policy == "minimum"
        assert cfg.runtime.precision == "f64"

    def test_derived_lengths(self):
        cfg = DiscretizationConfig.default()
        assert cfg.horizon == pytest.approx(math.pi * 5e-3)
        assert cfg.point_radius == pytest.approx(2.5e-3)

    def test_material_records(self):
        records = DiscretizationConfig.default().material_records()
        assert set(records) == {MaterialKind.CONCRETE, MaterialKind.STEEL}
        assert records[MaterialKind.STEEL].E == pytest.approx(200e9)


class TestValidation:

    def test_divisions_match_dim(self):
        with pytest.raises(ValidationError):
            LatticeConfig(dim=2, divisions=[10, 10, 10])

    def test_nonpositive_spacing(self):
        with pytest.raises(ValidationError):
            LatticeConfig(spacing=0.0)

    def test_notch_depth_positive(self):
        with pytest.raises(ValidationError):
            NotchConfig(eccentricity=30, depth=0)

    def test_unknown_material(self):
        with pytest.raises(ValidationError):
            DiscretizationConfig(materials={
                "timber": {"name": "timber", "E": 1e10, "density": 500, "fracture_energy": 300},
            })

    def test_region_needs_geometry(self):
        with pytest.raises(ValidationError):
            MaterialRegionConfig(kind="steel", shape="cylinder", center=[0.0, 0.0])

    def test_partial_materials_keep_presets(self):
        cfg = DiscretizationConfig(materials={
            "concrete": {"name": "c40", "E": 35e9, "density": 2400, "fracture_energy": 120},
        })
        assert cfg.materials["concrete"].E == pytest.approx(35e9)
        assert cfg.materials["steel"].E == pytest.approx(200e9)

    @pytest.mark.parametrize("backend", ["cpu", "cuda", "auto"])
    def test_float64_backends(self, backend):
        assert RuntimeConfig(backend=backend).backend == backend

    @pytest.mark.parametrize("backend", ["metal", "vulkan", "opengl"])
    def test_backend_without_float64(self, backend):
        """그리드 탐색은 f64 필드를 쓰므로 f64가 없는 백엔드는 거부한다."""
        with pytest.raises(ValidationError):
            RuntimeConfig(backend=backend)
        with pytest.raises(ValidationError):
            DiscretizationConfig(runtime={"backend": backend})


class TestFromToml:

    def test_load(self, tmp_path):
        toml_file = tmp_path / "beam.toml"
        toml_file.write_text(
            "[lattice]\n"
            "spacing = 0.01\n"
            "divisions = [20, 4, 6]\n"
            "\n"
            "[neighborhood]\n"
            "horizon_factor = 3.0\n"
            "method = \"kdtree\"\n"
            "\n"
            "[notch]\n"
            "eccentricity = 10.0\n"
            "depth = 2.0\n"
            "\n"
            "[[regions]]\n"
            "kind = \"steel\"\n"
            "shape = \"cylinder\"\n"
            "center = [0.02, 0.01]\n"
            "radius = 0.006\n"
            "axes = [1, 2]\n",
            encoding="utf-8",
        )
        cfg = DiscretizationConfig.from_toml(toml_file)
        assert cfg.lattice.divisions == [20, 4, 6]
        assert cfg.horizon == pytest.approx(0.03)
        assert cfg.notch.depth == 2.0
        assert cfg.regions[0].kind == "steel"
        assert cfg.regions[0].axes == [1, 2]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            DiscretizationConfig.from_toml(tmp_path / "nope.toml")

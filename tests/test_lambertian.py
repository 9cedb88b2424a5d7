"""Unit tests for the Lambertian material."""

import numpy as np
import pytest
import taichi as ti

N = 2048


class TestLambertianScatter:
    """Tests for scatter_lambertian."""

    def test_scatter_always_succeeds_with_albedo_attenuation(self):
        from src.raytrace.core.sampler import seed_rng
        from src.raytrace.materials.lambertian import scatter_lambertian, vec3

        did = ti.field(dtype=ti.i32, shape=N)
        attenuation = ti.Vector.field(3, dtype=ti.f32, shape=N)

        @ti.kernel
        def test_kernel():
            for i in range(N):
                rng = seed_rng(1, i, 0)
                _, att, did_scatter, rng = scatter_lambertian(
                    vec3(0.2, 0.4, 0.6), vec3(0.0, 1.0, 0.0), rng
                )
                did[i] = did_scatter
                attenuation[i] = att

        test_kernel()
        assert np.all(did.to_numpy() == 1)
        np.testing.assert_allclose(
            attenuation.to_numpy(), np.tile([0.2, 0.4, 0.6], (N, 1)), atol=1e-6
        )

    def test_directions_lie_in_ball_around_normal(self):
        """normal + s with |s| < 1 lies in the unit ball centered at the normal."""
        from src.raytrace.core.sampler import seed_rng
        from src.raytrace.materials.lambertian import scatter_lambertian, vec3

        directions = ti.Vector.field(3, dtype=ti.f32, shape=N)

        @ti.kernel
        def test_kernel():
            for i in range(N):
                rng = seed_rng(2, i, 0)
                direction, _, _, rng = scatter_lambertian(
                    vec3(0.5, 0.5, 0.5), vec3(0.0, 0.0, 1.0), rng
                )
                directions[i] = direction

        test_kernel()
        d = directions.to_numpy()
        offsets = d - np.array([0.0, 0.0, 1.0])
        assert np.all(np.sum(offsets * offsets, axis=1) < 1.0 + 1e-5)
        # Biased toward the normal: every direction is in the upper hemisphere
        assert np.all(d[:, 2] >= -1e-6)
        assert d[:, 2].mean() > 0.9


class TestLambertianRegistry:
    """Tests for the Lambertian material registry."""

    def test_add_and_read_back(self):
        from src.raytrace.materials.lambertian import (
            add_lambertian_material,
            get_lambertian_albedo,
            get_lambertian_material_count,
        )

        idx0 = add_lambertian_material((0.1, 0.2, 0.3))
        idx1 = add_lambertian_material((0.9, 0.8, 0.7))
        assert (idx0, idx1) == (0, 1)
        assert get_lambertian_material_count() == 2

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = get_lambertian_albedo(1)

        test_kernel()
        np.testing.assert_allclose(result.to_numpy(), [0.9, 0.8, 0.7], atol=1e-6)

    @pytest.mark.parametrize("albedo", [(1.1, 0.5, 0.5), (0.5, -0.1, 0.5), (0.5, 0.5)])
    def test_invalid_albedo_rejected(self, albedo):
        from src.raytrace.errors import MaterialConfigError
        from src.raytrace.materials.lambertian import (
            add_lambertian_material,
            get_lambertian_material_count,
        )

        with pytest.raises(MaterialConfigError):
            add_lambertian_material(albedo)
        assert get_lambertian_material_count() == 0

    def test_boundary_albedo_accepted(self):
        from src.raytrace.materials.lambertian import add_lambertian_material

        assert add_lambertian_material((0.0, 1.0, 0.0)) == 0

"""Unit tests for the metal material."""

import math

import numpy as np
import pytest
import taichi as ti

N = 1024


def _scatter_many(albedo, fuzz, incident, normal, seed=3):
    from src.raytrace.core.sampler import seed_rng
    from src.raytrace.materials.metal import scatter_metal, vec3

    directions = ti.Vector.field(3, dtype=ti.f32, shape=N)
    attenuations = ti.Vector.field(3, dtype=ti.f32, shape=N)
    did = ti.field(dtype=ti.i32, shape=N)

    @ti.kernel
    def test_kernel():
        for i in range(N):
            rng = seed_rng(seed, i, 0)
            direction, att, did_scatter, rng = scatter_metal(
                vec3(albedo[0], albedo[1], albedo[2]),
                fuzz,
                vec3(incident[0], incident[1], incident[2]),
                vec3(normal[0], normal[1], normal[2]),
                rng,
            )
            directions[i] = direction
            attenuations[i] = att
            did[i] = did_scatter

    test_kernel()
    return directions.to_numpy(), attenuations.to_numpy(), did.to_numpy()


class TestMetalScatter:
    """Tests for scatter_metal."""

    def test_zero_fuzz_is_mirror(self):
        """With fuzz = 0 the scattered direction is the unit mirror direction."""
        directions, attenuations, did = _scatter_many(
            (0.8, 0.6, 0.2), 0.0, (1.0, -1.0, 0.0), (0.0, 1.0, 0.0)
        )
        expected = np.array([1.0, 1.0, 0.0]) / math.sqrt(2.0)
        np.testing.assert_allclose(directions, np.tile(expected, (N, 1)), atol=1e-5)
        assert np.all(did == 1)
        np.testing.assert_allclose(attenuations, np.tile([0.8, 0.6, 0.2], (N, 1)), atol=1e-6)

    def test_fuzz_stays_within_radius(self):
        """Scattered directions lie within fuzz of the mirror direction."""
        fuzz = 0.3
        directions, _, did = _scatter_many(
            (0.5, 0.5, 0.5), fuzz, (0.0, -1.0, 0.0), (0.0, 1.0, 0.0)
        )
        offsets = directions - np.array([0.0, 1.0, 0.0])
        assert np.all(np.linalg.norm(offsets, axis=1) < fuzz + 1e-5)
        # Reflection straight up with fuzz < 1 never points into the surface
        assert np.all(did == 1)

    def test_grazing_fuzzy_reflection_can_be_absorbed(self):
        """A fuzzed grazing reflection that dips below the surface is absorbed."""
        directions, attenuations, did = _scatter_many(
            (0.9, 0.9, 0.9), 1.0, (1.0, -0.05, 0.0), (0.0, 1.0, 0.0)
        )
        absorbed = did == 0
        assert absorbed.any()
        assert (~absorbed).any()
        # did_scatter is exactly the sign test on the scattered direction
        np.testing.assert_array_equal(absorbed, directions[:, 1] <= 0.0)
        # Attenuation is the albedo whether or not the ray scattered
        np.testing.assert_allclose(attenuations, np.tile([0.9, 0.9, 0.9], (N, 1)), atol=1e-6)


class TestMetalRegistry:
    """Tests for the metal material registry."""

    @pytest.mark.parametrize("fuzz,expected", [(-0.5, 0.0), (0.25, 0.25), (2.0, 1.0)])
    def test_fuzz_is_clamped(self, fuzz, expected):
        from src.raytrace.materials.metal import add_metal_material, metal_fuzz

        idx = add_metal_material((0.5, 0.5, 0.5), fuzz)
        assert abs(metal_fuzz[idx] - expected) < 1e-6

    def test_invalid_albedo_rejected(self):
        from src.raytrace.errors import MaterialConfigError
        from src.raytrace.materials.metal import add_metal_material, get_metal_material_count

        with pytest.raises(MaterialConfigError):
            add_metal_material((0.5, 1.5, 0.5), 0.1)
        assert get_metal_material_count() == 0

    def test_scatter_by_id_uses_stored_parameters(self):
        from src.raytrace.core.sampler import seed_rng
        from src.raytrace.materials.metal import add_metal_material, scatter_metal_by_id, vec3

        add_metal_material((0.1, 0.1, 0.1), 0.5)
        idx = add_metal_material((0.7, 0.6, 0.5), 0.0)

        direction = ti.Vector.field(3, dtype=ti.f32, shape=())
        attenuation = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            rng = seed_rng(0, 0, 0)
            d, att, _, rng = scatter_metal_by_id(
                idx, vec3(0.0, -2.0, 0.0), vec3(0.0, 1.0, 0.0), rng
            )
            direction[None] = d
            attenuation[None] = att

        test_kernel()
        np.testing.assert_allclose(direction.to_numpy(), [0.0, 1.0, 0.0], atol=1e-6)
        np.testing.assert_allclose(attenuation.to_numpy(), [0.7, 0.6, 0.5], atol=1e-6)

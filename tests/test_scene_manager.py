"""Unit tests for the SceneManager.

Tests cover:
- Material registration (Lambertian, Metal, Dielectric)
- Material type tracking and lookup
- Sphere addition with materials
- Convenience methods (add_*_sphere)
- Scene serialization (to_config, from_config)
- Scene clearing
- Kernel-side material type lookup and scatter dispatch
"""

import numpy as np
import pytest
import taichi as ti


@pytest.fixture
def fresh_scene():
    """Create a fresh SceneManager for each test."""
    from src.raytrace.scene.manager import SceneManager

    scene = SceneManager()
    yield scene
    scene.clear()


class TestMaterialRegistration:
    """Tests for material registration."""

    def test_add_materials_of_each_type(self, fresh_scene):
        id0 = fresh_scene.add_lambertian_material(albedo=(0.8, 0.3, 0.3))
        id1 = fresh_scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        id2 = fresh_scene.add_dielectric_material(ref_idx=1.5)
        id3 = fresh_scene.add_lambertian_material(albedo=(0.1, 0.8, 0.1))

        assert (id0, id1, id2, id3) == (0, 1, 2, 3)
        assert fresh_scene.get_material_count() == 4

    def test_material_validation(self, fresh_scene):
        from src.raytrace.errors import MaterialConfigError

        with pytest.raises(MaterialConfigError):
            fresh_scene.add_lambertian_material(albedo=(1.5, 0.5, 0.5))
        with pytest.raises(MaterialConfigError):
            fresh_scene.add_metal_material(albedo=(0.5, -0.5, 0.5))
        with pytest.raises(MaterialConfigError):
            fresh_scene.add_dielectric_material(ref_idx=0.0)
        assert fresh_scene.get_material_count() == 0

    def test_metal_fuzz_recorded_clamped(self, fresh_scene):
        mat_id = fresh_scene.add_metal_material(albedo=(0.5, 0.5, 0.5), fuzz=3.0)
        assert fresh_scene.get_material_info(mat_id).params["fuzz"] == 1.0

    def test_get_material_type_python(self, fresh_scene):
        from src.raytrace.scene.manager import MaterialType

        lamb = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        metal = fresh_scene.add_metal_material(albedo=(0.5, 0.5, 0.5))
        glass = fresh_scene.add_dielectric_material()

        assert fresh_scene.get_material_type_python(lamb) == MaterialType.LAMBERTIAN
        assert fresh_scene.get_material_type_python(metal) == MaterialType.METAL
        assert fresh_scene.get_material_type_python(glass) == MaterialType.DIELECTRIC
        assert fresh_scene.get_material_type_python(99) is None

    def test_get_material_info(self, fresh_scene):
        from src.raytrace.scene.manager import MaterialType

        fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        metal = fresh_scene.add_metal_material(albedo=(0.7, 0.6, 0.5), fuzz=0.2)

        info = fresh_scene.get_material_info(metal)
        assert info.material_id == 1
        assert info.material_type == MaterialType.METAL
        # First metal in the metal registry
        assert info.type_index == 0
        assert info.params["albedo"] == (0.7, 0.6, 0.5)
        assert fresh_scene.get_material_info(-1) is None

    def test_material_type_lookup_in_kernel(self, fresh_scene):
        from src.raytrace.scene.manager import get_material_type, get_material_type_index

        fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        fresh_scene.add_dielectric_material(ref_idx=1.5)
        fresh_scene.add_lambertian_material(albedo=(0.2, 0.2, 0.2))

        types = ti.field(dtype=ti.i32, shape=4)
        indices = ti.field(dtype=ti.i32, shape=4)

        @ti.kernel
        def test_kernel():
            for i in range(4):
                types[i] = get_material_type(i)
                indices[i] = get_material_type_index(i)

        test_kernel()
        assert [types[i] for i in range(4)] == [0, 2, 0, -1]
        assert [indices[i] for i in range(4)] == [0, 0, 1, -1]


class TestSphereManagement:
    """Tests for adding spheres through the manager."""

    def test_add_sphere_with_material(self, fresh_scene):
        mat_id = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        idx = fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.5, mat_id)
        assert idx == 0
        assert fresh_scene.get_sphere_count() == 1
        assert fresh_scene.spheres[0].material_id == mat_id

    def test_add_sphere_invalid_material(self, fresh_scene):
        from src.raytrace.errors import MaterialConfigError

        with pytest.raises(MaterialConfigError, match="Invalid material_id"):
            fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.5, 0)
        assert fresh_scene.get_sphere_count() == 0

    def test_add_sphere_zero_radius(self, fresh_scene):
        from src.raytrace.errors import GeometryError

        mat_id = fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        with pytest.raises(GeometryError):
            fresh_scene.add_sphere((0.0, 0.0, -1.0), 0.0, mat_id)
        assert fresh_scene.spheres == []

    def test_shared_material(self, fresh_scene):
        """Many spheres can reference one material."""
        glass = fresh_scene.add_dielectric_material(ref_idx=1.5)
        fresh_scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
        fresh_scene.add_sphere((-1.0, 0.0, -1.0), -0.45, glass)
        assert fresh_scene.get_sphere_count() == 2
        assert fresh_scene.get_material_count() == 1

    def test_convenience_methods(self, fresh_scene):
        s0, m0 = fresh_scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.5, 0.5, 0.5))
        s1, m1 = fresh_scene.add_metal_sphere((1.0, 0.0, -1.0), 0.5, (0.8, 0.6, 0.2), 0.3)
        s2, m2 = fresh_scene.add_dielectric_sphere((-1.0, 0.0, -1.0), 0.5, 1.5)
        assert (s0, s1, s2) == (0, 1, 2)
        assert (m0, m1, m2) == (0, 1, 2)

    def test_clear_scene(self, fresh_scene):
        fresh_scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.5, 0.5, 0.5))
        fresh_scene.add_metal_sphere((1.0, 0.0, -1.0), 0.5, (0.8, 0.6, 0.2))
        fresh_scene.clear()
        assert fresh_scene.get_sphere_count() == 0
        assert fresh_scene.get_material_count() == 0
        assert fresh_scene.materials == []
        assert fresh_scene.spheres == []

    def test_intersection_returns_material_id(self, fresh_scene):
        from src.raytrace.scene.intersection import intersect_scene, vec3

        fresh_scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        metal = fresh_scene.add_metal_material(albedo=(0.8, 0.8, 0.8))
        fresh_scene.add_sphere((0.0, 0.0, -3.0), 1.0, metal)

        result = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            rec = intersect_scene(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0), 0.001, 1.0e30)
            result[None] = rec.material_id

        test_kernel()
        assert result[None] == metal


class TestSceneSerialization:
    """Tests for to_config/from_config and dict round trips."""

    def _build(self, scene):
        scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, (0.8, 0.8, 0.0))
        scene.add_metal_sphere((1.0, 0.0, -1.0), 0.5, (0.8, 0.6, 0.2), 0.3)
        glass = scene.add_dielectric_material(1.5)
        scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
        scene.add_sphere((-1.0, 0.0, -1.0), -0.45, glass)

    def test_to_config(self, fresh_scene):
        self._build(fresh_scene)
        config = fresh_scene.to_config()

        assert [m["type"] for m in config.materials] == ["lambertian", "metal", "dielectric"]
        assert config.materials[1]["albedo"] == [0.8, 0.6, 0.2]
        assert config.materials[1]["fuzz"] == 0.3
        assert config.materials[2]["ref_idx"] == 1.5
        assert len(config.spheres) == 4
        assert config.spheres[3] == {
            "center": [-1.0, 0.0, -1.0],
            "radius": -0.45,
            "material_id": 2,
        }

    def test_dict_round_trip(self, fresh_scene):
        self._build(fresh_scene)
        data = fresh_scene.to_dict()

        fresh_scene.from_dict(data)
        assert fresh_scene.get_sphere_count() == 4
        assert fresh_scene.get_material_count() == 3
        assert fresh_scene.to_dict() == data

    def test_from_config_invalid_material_type(self, fresh_scene):
        from src.raytrace.errors import MaterialConfigError
        from src.raytrace.scene.manager import SceneConfig

        config = SceneConfig(materials=[{"type": "emissive", "color": [1, 1, 1]}])
        with pytest.raises(MaterialConfigError, match="Unknown material type"):
            fresh_scene.from_config(config)

    def test_from_config_bad_sphere_reference(self, fresh_scene):
        from src.raytrace.errors import MaterialConfigError
        from src.raytrace.scene.manager import SceneConfig

        config = SceneConfig(
            materials=[{"type": "lambertian", "albedo": [0.5, 0.5, 0.5]}],
            spheres=[{"center": [0, 0, -1], "radius": 0.5, "material_id": 4}],
        )
        with pytest.raises(MaterialConfigError):
            fresh_scene.from_config(config)

    @pytest.mark.parametrize("missing", ["center", "radius", "material_id"])
    def test_from_config_sphere_missing_key(self, fresh_scene, missing):
        from src.raytrace.errors import GeometryError
        from src.raytrace.scene.manager import SceneConfig

        sphere = {"center": [0, 0, -1], "radius": 0.5, "material_id": 0}
        del sphere[missing]
        config = SceneConfig(
            materials=[{"type": "lambertian", "albedo": [0.5, 0.5, 0.5]}],
            spheres=[sphere],
        )
        with pytest.raises(GeometryError, match=missing):
            fresh_scene.from_config(config)
        assert fresh_scene.get_sphere_count() == 0

    def test_capacity_methods(self, fresh_scene):
        from src.raytrace.scene.manager import SceneManager

        assert SceneManager.get_max_spheres() == 1024
        assert SceneManager.get_max_materials() == 3 * 1024


class TestScatterDispatch:
    """Tests for the integrator's material dispatch."""

    def test_dispatch_by_material_type(self, fresh_scene):
        from src.raytrace.core.integrator import _scatter_material
        from src.raytrace.core.sampler import seed_rng
        from src.raytrace.scene.intersection import vec3

        lamb = fresh_scene.add_lambertian_material(albedo=(0.2, 0.3, 0.4))
        metal = fresh_scene.add_metal_material(albedo=(0.7, 0.6, 0.5), fuzz=0.0)
        glass = fresh_scene.add_dielectric_material(ref_idx=1.5)

        attenuation = ti.Vector.field(3, dtype=ti.f32, shape=4)
        did = ti.field(dtype=ti.i32, shape=4)

        @ti.kernel
        def test_dispatch():
            for k in range(4):
                rng = seed_rng(0, k, 0)
                material_id = lamb
                if k == 1:
                    material_id = metal
                elif k == 2:
                    material_id = glass
                elif k == 3:
                    material_id = 99
                _, att, did_scatter, rng = _scatter_material(
                    material_id, vec3(0.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0), rng
                )
                attenuation[k] = att
                did[k] = did_scatter

        test_dispatch()
        a = attenuation.to_numpy()
        np.testing.assert_allclose(a[0], [0.2, 0.3, 0.4], atol=1e-6)
        np.testing.assert_allclose(a[1], [0.7, 0.6, 0.5], atol=1e-6)
        np.testing.assert_allclose(a[2], [1.0, 1.0, 1.0], atol=1e-6)
        assert [did[k] for k in range(4)] == [1, 1, 1, 0]

"""Scene module for scene storage, queries and example scenes.

Components:
    intersection: Sphere storage in Taichi fields and nearest-hit queries
    manager: Scene manager coordinating spheres and materials
    random_scene: Factory functions for the example scenes

Scene data is laid out as Structure-of-Arrays Taichi fields (centers, radii,
material IDs) that the render kernels read but never write.
"""

from .intersection import (
    MAX_SPHERES,
    SceneHitRecord,
    add_sphere,
    clear_scene,
    get_sphere_count,
    intersect_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneConfig,
    SceneManager,
    SphereInfo,
    get_material_type,
    get_material_type_index,
)
from .random_scene import (
    SCENES,
    create_material_showcase_scene,
    create_random_scene,
    create_single_sphere_scene,
    create_two_sphere_scene,
    random_scene_camera,
)

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "intersect_scene",
    "MAX_SPHERES",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "SceneConfig",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    # Example scenes
    "SCENES",
    "create_random_scene",
    "create_single_sphere_scene",
    "create_two_sphere_scene",
    "create_material_showcase_scene",
    "random_scene_camera",
]

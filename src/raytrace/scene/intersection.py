"""Scene-level sphere storage and nearest-hit queries.

Spheres are kept in one preallocated Taichi struct field, with material IDs
in a parallel field, so render kernels read them directly. Spheres are only
appended while a scene is built; ``clear_scene`` drops them all at once.

Every ray is tested against every sphere. Each test uses the closest hit
found so far as its upper bound, so the record that comes out is the nearest
intersection in [t_min, t_max).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytrace.scene.intersection import add_sphere, clear_scene
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, -1.0), 0.5, material_id=0)
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from src.raytrace.geometry.sphere import Sphere, hit_sphere, validate_sphere

vec3 = tm.vec3


@ti.dataclass
class SceneHitRecord:
    """Nearest intersection of a ray with the scene.

    Attributes:
        hit: 1 if any sphere was hit, otherwise 0.
        t: Ray parameter of the hit.
        point: World-space hit point.
        normal: (point - center) / radius of the hit sphere.
        material_id: Material of the hit sphere, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    material_id: ti.i32


MAX_SPHERES = 1024

spheres = Sphere.field(shape=MAX_SPHERES)
material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
sphere_count = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all spheres. Stale field entries are overwritten on the next add."""
    sphere_count[None] = 0


def add_sphere(center: Sequence[float], radius: float, material_id: int = 0) -> int:
    """Append a sphere to the scene.

    Args:
        center: Center as (x, y, z).
        radius: Signed radius; negative radii turn the normals inward.
        material_id: Global material ID from the SceneManager.

    Returns:
        Index of the new sphere.

    Raises:
        GeometryError: If the radius is zero or any value is not finite.
        RuntimeError: If the scene already holds MAX_SPHERES spheres.
    """
    validate_sphere(center, radius)

    index = get_sphere_count()
    if index >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")

    spheres[index] = {"center": [float(c) for c in center], "radius": float(radius)}
    material_ids[index] = material_id
    sphere_count[None] = index + 1
    return index


def get_sphere_count() -> int:
    return int(sphere_count[None])


@ti.func
def miss_record() -> SceneHitRecord:
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        material_id=-1,
    )


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Find the nearest sphere hit along a ray.

    Spheres are tested in insertion order, each over [t_min, nearest) where
    nearest starts at t_max and shrinks to every accepted hit.

    Args:
        ray_origin: Ray origin.
        ray_direction: Ray direction, not necessarily normalized.
        t_min: Smallest accepted ray parameter (inclusive).
        t_max: Largest accepted ray parameter (exclusive).

    Returns:
        The nearest hit, or miss_record() if nothing is hit.
    """
    result = miss_record()
    nearest = t_max

    for i in range(sphere_count[None]):
        rec = hit_sphere(ray_origin, ray_direction, spheres[i], t_min, nearest)
        if rec.hit == 1:
            nearest = rec.t
            result.hit = 1
            result.t = rec.t
            result.point = rec.point
            result.normal = rec.normal
            result.material_id = material_ids[i]

    return result

"""Sphere primitive and ray-sphere intersection.

The intersection solves |O + tD - C|^2 = r^2 in its half-b form:

    a = D . D
    half_b = (O - C) . D
    c = (O - C) . (O - C) - r^2
    discriminant = half_b^2 - a * c

The nearer root is tried first and the first root inside [t_min, t_max) is
reported.

The normal is computed as (p - center) / radius, so a sphere with a negative
radius has inward-facing normals. Together with a dielectric material this
models a hollow glass shell (an outer sphere with a positive radius and an
inner one with a negative radius). Zero radii are rejected when the sphere is
added to a scene.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytrace.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import math
from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from src.raytrace.errors import GeometryError

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and signed radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere. Negative values flip the normal.
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-sphere intersection.

    Attributes:
        hit: Whether the ray intersected the sphere (1 if hit, 0 if miss).
        t: The ray parameter of the intersection. Only valid if hit == 1.
        point: The intersection point. Only valid if hit == 1.
        normal: (point - center) / radius, unit length. Points outward for
            a positive radius and inward for a negative one regardless of
            which side the ray came from. Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray. Must be non-zero; it need
            not be normalized.
        sphere: The sphere to test intersection against.
        t_min: Smallest accepted ray parameter (inclusive).
        t_max: Largest accepted ray parameter (exclusive).

    Returns:
        A HitRecord for the smaller root in [t_min, t_max), or a record with
        hit == 0 if the discriminant is negative or neither root qualifies.
    """
    # The quadratic is solved in f64. In f32, |oc|^2 - r^2 on a radius-1000
    # sphere rounds by ~0.06 and lets a ray re-hit the surface it just left.
    oc = ti.cast(ray_origin, ti.f64) - ti.cast(sphere.center, ti.f64)
    direction = ti.cast(ray_direction, ti.f64)
    radius = ti.cast(sphere.radius, ti.f64)
    a = tm.dot(direction, direction)
    half_b = tm.dot(oc, direction)
    c = tm.dot(oc, oc) - radius * radius
    discriminant = half_b * half_b - a * c

    # Initialize result fields (Taichi requires outer-scope declaration)
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)

        t = (-half_b - sqrt_d) / a
        valid = t >= t_min and t < t_max

        if not valid:
            t = (-half_b + sqrt_d) / a
            valid = t >= t_min and t < t_max

        if valid:
            did_hit = 1
            hit_t = ti.cast(t, ti.f32)
            hit_point = ray_origin + hit_t * ray_direction
            hit_normal = (hit_point - sphere.center) / sphere.radius

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
    )


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from center and radius inside a kernel."""
    return Sphere(center=center, radius=radius)


def validate_sphere(center: Sequence[float], radius: float) -> None:
    """Check sphere parameters before they are stored in a scene.

    Args:
        center: The center point as (x, y, z).
        radius: The signed radius. Negative values are allowed.

    Raises:
        GeometryError: If the center is not three finite numbers, or the
            radius is zero or not finite.
    """
    if len(center) != 3 or not all(math.isfinite(c) for c in center):
        raise GeometryError(f"Sphere center must be three finite numbers, got {center!r}")
    if not math.isfinite(radius):
        raise GeometryError(f"Sphere radius must be finite, got {radius}")
    if radius == 0.0:
        raise GeometryError("Sphere radius must be non-zero")

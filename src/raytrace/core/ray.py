"""Ray data structure and vector helpers used by the path tracer.

This module provides the Ray dataclass along with the reflection, refraction
and Fresnel helpers shared by the material models. All functions are Taichi
functions and are meant to be called from inside kernels.

Ray directions are not required to be unit length. Every direction produced
by the camera or by a material is non-zero, which keeps the quadratic in the
sphere intersection well defined.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Not normalized;
            only required to be non-zero.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction inside a kernel."""
    return Ray(origin=origin, direction=direction)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    return tm.dot(v, v)


@ti.func
def unit_vector(v: vec3) -> vec3:
    return v / tm.length(v)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (unit length).

    Returns:
        incident - 2 * (incident . normal) * normal
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, ni_over_nt: ti.f32):
    """Refract an incident vector through a surface using Snell's law.

    The incident direction is normalized first. The normal must face the
    incoming ray (incident . normal <= 0).

    Args:
        incident: The incoming direction vector (any non-zero length).
        normal: The unit surface normal on the incident side.
        ni_over_nt: Ratio of refractive indices, n_incident / n_transmitted.

    Returns:
        A tuple (direction, ok). When the discriminant is not positive the
        ray is totally internally reflected, ok is 0 and direction is zero.
    """
    uv = unit_vector(incident)
    dt = tm.dot(uv, normal)
    discriminant = 1.0 - ni_over_nt * ni_over_nt * (1.0 - dt * dt)
    direction = vec3(0.0, 0.0, 0.0)
    ok = 0
    if discriminant > 0.0:
        direction = ni_over_nt * (uv - normal * dt) - normal * ti.sqrt(discriminant)
        ok = 1
    return direction, ok


@ti.func
def schlick(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Fresnel reflectance by Schlick's approximation.

    Args:
        cosine: Cosine of the angle between the incident ray and the normal.
        ref_idx: Refractive index of the medium (relative to air).

    Returns:
        r0 + (1 - r0) * (1 - cosine)^5 with r0 = ((1 - ref_idx) / (1 + ref_idx))^2.
    """
    r0 = (1.0 - ref_idx) / (1.0 + ref_idx)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Return 1 if every component of v is within 1e-8 of zero."""
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


# Step off a surface, relative to the hit point's largest coordinate. f32
# spacing near x is about 1.2e-7 * |x|.
SPAWN_OFFSET_SCALE = 1.0e-6


@ti.func
def spawn_origin(point: vec3, normal: vec3, direction: vec3) -> vec3:
    """Origin for a ray leaving a surface at point along direction.

    The hit point is rounded to f32 and can land a hair on the wrong side of
    the surface. Moving it a few ulps along the normal, toward the side the
    new direction points into, keeps the next intersection query from finding
    the surface again at the point it is leaving.

    Args:
        point: The hit point.
        normal: The surface normal at point (either orientation).
        direction: The direction of the outgoing ray.

    Returns:
        point shifted by SPAWN_OFFSET_SCALE * max(1, |point|_inf) along the
        normal, on the side of the surface direction points into.
    """
    scale = tm.max(1.0, tm.max(ti.abs(point.x), tm.max(ti.abs(point.y), ti.abs(point.z))))
    side = 1.0
    if tm.dot(direction, normal) < 0.0:
        side = -1.0
    return point + side * SPAWN_OFFSET_SCALE * scale * normal

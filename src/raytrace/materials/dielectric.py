"""Dielectric (glass/water) material.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when refraction has no solution

Whether a ray is entering or leaving the medium is decided by the sign of
incoming . normal. Normals from the sphere are not flipped toward the ray,
so a positive dot product means the ray is inside (for a positive radius)
and the normal and index ratio are inverted.

When refraction is possible the material reflects with probability equal to
the Schlick reflectance and refracts otherwise. The medium is perfectly
clear: attenuation is always white.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytrace.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, rng = scatter_dielectric(
    >>> #     ref_idx, incident_dir, normal, rng
    >>> # )
"""

import math

import taichi as ti
import taichi.math as tm

from src.raytrace.core.ray import reflect, refract, schlick, unit_vector
from src.raytrace.core.sampler import random_f32
from src.raytrace.errors import MaterialConfigError
from src.raytrace.materials.material import MAX_MATERIALS_PER_TYPE

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.dataclass
class DielectricMaterial:
    """Dielectric material properties.

    Attributes:
        ref_idx: Refractive index relative to the surrounding air. Common
            values: water 1.33, glass 1.5, diamond 2.4.
    """

    ref_idx: ti.f32


@ti.func
def _orient(ref_idx: ti.f32, unit_direction: vec3, normal: vec3):
    """Pick the normal facing the ray and the matching index ratio."""
    outward_normal = normal
    ni_over_nt = 1.0 / ref_idx
    if tm.dot(unit_direction, normal) > 0.0:
        # Leaving the medium
        outward_normal = -normal
        ni_over_nt = ref_idx
    return outward_normal, ni_over_nt


@ti.func
def scatter_dielectric(
    ref_idx: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    rng: ti.u32,
):
    """Reflect or refract a ray at a dielectric boundary.

    Args:
        ref_idx: Refractive index of the material.
        incident_direction: The incoming ray direction (any non-zero length).
        normal: The unit normal as reported by the intersection.
        rng: The current generator state.

    Returns:
        A tuple (scattered_direction, attenuation, did_scatter, rng).
        attenuation is (1, 1, 1) and did_scatter is always 1.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    unit_direction = unit_vector(incident_direction)
    outward_normal, ni_over_nt = _orient(ref_idx, unit_direction, normal)
    cosine = tm.min(-tm.dot(unit_direction, outward_normal), 1.0)

    refracted, can_refract = refract(unit_direction, outward_normal, ni_over_nt)

    # Total internal reflection leaves reflection as the only option
    reflect_prob = 1.0
    if can_refract == 1:
        reflect_prob = schlick(cosine, ref_idx)

    u, state = random_f32(rng)
    scattered_direction = refracted
    if u < reflect_prob:
        scattered_direction = reflect(unit_direction, outward_normal)

    did_scatter = 1
    return scattered_direction, attenuation, did_scatter, state


@ti.func
def will_reflect(ref_idx: ti.f32, incident_direction: vec3, normal: vec3) -> ti.i32:
    """Return 1 if the ray is totally internally reflected, 0 otherwise."""
    unit_direction = unit_vector(incident_direction)
    outward_normal, ni_over_nt = _orient(ref_idx, unit_direction, normal)
    _, can_refract = refract(unit_direction, outward_normal, ni_over_nt)
    return 1 - can_refract


@ti.func
def fresnel_reflectance(ref_idx: ti.f32, incident_direction: vec3, normal: vec3) -> ti.f32:
    """Schlick reflectance for a ray meeting the boundary."""
    unit_direction = unit_vector(incident_direction)
    outward_normal, _ = _orient(ref_idx, unit_direction, normal)
    cosine = tm.min(-tm.dot(unit_direction, outward_normal), 1.0)
    return schlick(cosine, ref_idx)


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

MAX_DIELECTRIC_MATERIALS = MAX_MATERIALS_PER_TYPE

dielectric_ref_idx = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ref_idx: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        ref_idx: Refractive index. Default is 1.5 (typical glass).

    Returns:
        The index of the added material.

    Raises:
        MaterialConfigError: If ref_idx is not a finite positive number.
        RuntimeError: If the maximum number of materials is exceeded.
    """
    if not math.isfinite(ref_idx) or ref_idx <= 0.0:
        raise MaterialConfigError(
            f"Refractive index = {ref_idx} must be a finite positive number."
        )

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_ref_idx[idx] = float(ref_idx)
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ref_idx(material_idx: ti.i32) -> ti.f32:
    return dielectric_ref_idx[material_idx]


@ti.func
def scatter_dielectric_by_id(
    material_idx: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    rng: ti.u32,
):
    """Scatter off the dielectric material stored at material_idx."""
    ref_idx = get_dielectric_ref_idx(material_idx)
    return scatter_dielectric(ref_idx, incident_direction, normal, rng)

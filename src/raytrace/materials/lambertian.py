"""Lambertian (ideal diffuse) material.

A diffuse surface scatters toward the point normal + s, where s is uniformly
distributed inside the unit ball. The resulting directions are biased toward
the normal, approximating a cosine-weighted hemisphere. The scattered ray is
always produced; the fraction of light returned along it is the albedo.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytrace.materials.lambertian import scatter_lambertian
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, rng = scatter_lambertian(albedo, normal, rng)
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from src.raytrace.core.ray import near_zero
from src.raytrace.core.sampler import random_in_unit_sphere
from src.raytrace.materials.material import MAX_MATERIALS_PER_TYPE, validate_albedo

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.dataclass
class LambertianMaterial:
    """Lambertian (ideal diffuse) material properties.

    Attributes:
        albedo: The diffuse reflectance color (RGB, each component in [0, 1]).
    """

    albedo: vec3


@ti.func
def scatter_lambertian(albedo: vec3, normal: vec3, rng: ti.u32):
    """Scatter a ray off a diffuse surface.

    Args:
        albedo: The diffuse reflectance color (RGB, each component in [0, 1]).
        normal: The unit surface normal at the hit point.
        rng: The current generator state.

    Returns:
        A tuple (scattered_direction, attenuation, did_scatter, rng) where
        scattered_direction is normal + a random point in the unit ball (the
        normal itself if that sum is degenerate), attenuation is the albedo
        and did_scatter is always 1.
    """
    offset, state = random_in_unit_sphere(rng)
    scattered_direction = normal + offset

    # normal + offset can cancel when the sample lands opposite the normal
    if near_zero(scattered_direction):
        scattered_direction = normal

    did_scatter = 1
    return scattered_direction, albedo, did_scatter, state


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

MAX_LAMBERTIAN_MATERIALS = MAX_MATERIALS_PER_TYPE

lambertian_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Clear all Lambertian materials."""
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: Sequence[float]) -> int:
    """Add a Lambertian material to the material registry.

    Args:
        albedo: The diffuse reflectance color as (R, G, B) tuple.

    Returns:
        The index of the added material.

    Raises:
        MaterialConfigError: If any albedo component is outside [0, 1].
        RuntimeError: If the maximum number of materials is exceeded.
    """
    r, g, b = validate_albedo(albedo)

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = [r, g, b]
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of Lambertian materials in the registry."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    return lambertian_albedos[material_idx]


@ti.func
def scatter_lambertian_by_id(material_idx: ti.i32, normal: vec3, rng: ti.u32):
    """Scatter off the Lambertian material stored at material_idx."""
    albedo = get_lambertian_albedo(material_idx)
    return scatter_lambertian(albedo, normal, rng)

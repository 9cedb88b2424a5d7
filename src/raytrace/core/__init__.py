"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    ray: Ray data structure, reflection, refraction and Schlick reflectance
    sampler: Counter-based random numbers and rejection samplers
    integrator: Radiance estimator and the parallel sampling kernel
    progressive: Batched sample accumulation over the integrator

Random numbers are derived from (seed, pixel, sample) so that a render is
reproducible regardless of how Taichi schedules pixels over threads.
"""

from .ray import (
    Ray,
    length_squared,
    make_ray,
    near_zero,
    ray_at,
    reflect,
    refract,
    schlick,
    unit_vector,
    vec3,
)
from .sampler import (
    MAX_REJECTION_ITERATIONS,
    hash_u32,
    next_u32,
    random_f32,
    random_in_unit_disk,
    random_in_unit_sphere,
    seed_rng,
)

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from src.raytrace.core.integrator or src.raytrace.core.progressive.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length_squared",
    "unit_vector",
    "reflect",
    "refract",
    "schlick",
    "near_zero",
    "MAX_REJECTION_ITERATIONS",
    "hash_u32",
    "seed_rng",
    "next_u32",
    "random_f32",
    "random_in_unit_sphere",
    "random_in_unit_disk",
]

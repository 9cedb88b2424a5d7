"""Geometry module for shape primitives.

Components:
    sphere: Sphere primitive with ray-sphere intersection

The intersection routine is a Taichi function (@ti.func) so it can be called
from the parallel render kernels. Spheres are the only primitive; the scene
tests every sphere for each ray, without an acceleration structure.
"""

from .sphere import HitRecord, Sphere, hit_sphere, make_sphere, validate_sphere

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "make_sphere",
    "validate_sphere",
]

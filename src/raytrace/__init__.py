"""Monte Carlo path tracer for scenes of analytic spheres, built on Taichi.

This package renders images by tracing camera rays through a scene of spheres
with diffuse, metal, and dielectric materials. Per-ray work runs inside Taichi
kernels on the CPU backend, parallelized across pixels.

Subpackages:
    core: Ray helpers, random sampling, the radiance estimator and render loop
    geometry: Sphere primitive and ray-sphere intersection
    materials: Lambertian, metal and dielectric scattering
    scene: Scene storage, nearest-hit queries and example scenes
    camera: Thin-lens camera with field of view and depth of field
    preview: Image encoders (PPM, PNG)
"""

__version__ = "0.1.0"

"""Example scenes.

This module provides factory functions for the scenes used by the CLI and
the tests. Each factory builds a fresh SceneManager (clearing the global
scene) and returns it together with a matching camera.

The random scene is the classic "final" scene: a large grey ground sphere,
a 22 x 22 grid of small randomly placed spheres with random materials, and
three large feature spheres (glass, diffuse and metal).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytrace.scene.random_scene import create_random_scene
    >>> from src.raytrace.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_random_scene(seed=1)
    >>> setup_camera(camera)
"""

import logging

import numpy as np

from src.raytrace.camera.thin_lens import ThinLensCamera, default_camera
from src.raytrace.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# =============================================================================
# Random Scene Constants
# =============================================================================

GROUND_CENTER = (0.0, -1000.0, 0.0)
GROUND_RADIUS = 1000.0
GROUND_ALBEDO = (0.5, 0.5, 0.5)

# Small spheres are placed on a grid a, b in [-GRID_EXTENT, GRID_EXTENT)
GRID_EXTENT = 11
SMALL_RADIUS = 0.2

# Small spheres this close to the metal feature sphere are skipped
CLEAR_POINT = np.array([4.0, 0.2, 0.0])
CLEAR_DISTANCE = 0.9

# Material choice thresholds for the small spheres
DIFFUSE_PROBABILITY = 0.8
METAL_PROBABILITY = 0.95  # cumulative; the remainder is glass

GLASS_REF_IDX = 1.5


def random_scene_camera() -> ThinLensCamera:
    """Camera for the random scene: low, wide view with a shallow focus."""
    return ThinLensCamera(
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=3.0 / 2.0,
        aperture=0.1,
        focus_dist=10.0,
    )


def create_random_scene(seed: int | None = None) -> tuple[SceneManager, ThinLensCamera]:
    """Create the random sphere field.

    Args:
        seed: Seed for numpy.random.default_rng. The same seed always gives
            the same scene.

    Returns:
        Tuple of (scene_manager, camera).
    """
    rng = np.random.default_rng(seed)
    scene = SceneManager()

    scene.add_lambertian_sphere(GROUND_CENTER, GROUND_RADIUS, GROUND_ALBEDO)

    # Shared by every small glass sphere
    glass = None

    for a in range(-GRID_EXTENT, GRID_EXTENT):
        for b in range(-GRID_EXTENT, GRID_EXTENT):
            choose_mat = rng.random()
            center = np.array([a + 0.9 * rng.random(), SMALL_RADIUS, b + 0.9 * rng.random()])
            if np.linalg.norm(center - CLEAR_POINT) <= CLEAR_DISTANCE:
                continue

            center_tuple = (float(center[0]), float(center[1]), float(center[2]))
            if choose_mat < DIFFUSE_PROBABILITY:
                albedo = rng.random(3) * rng.random(3)
                scene.add_lambertian_sphere(center_tuple, SMALL_RADIUS, tuple(albedo))
            elif choose_mat < METAL_PROBABILITY:
                albedo = 0.5 * (1.0 + rng.random(3))
                fuzz = 0.5 * rng.random()
                scene.add_metal_sphere(center_tuple, SMALL_RADIUS, tuple(albedo), fuzz)
            else:
                if glass is None:
                    glass = scene.add_dielectric_material(GLASS_REF_IDX)
                scene.add_sphere(center_tuple, SMALL_RADIUS, glass)

    if glass is None:
        glass = scene.add_dielectric_material(GLASS_REF_IDX)
    scene.add_sphere((0.0, 1.0, 0.0), 1.0, glass)
    scene.add_lambertian_sphere((-4.0, 1.0, 0.0), 1.0, (0.4, 0.2, 0.1))
    scene.add_metal_sphere((4.0, 1.0, 0.0), 1.0, (0.7, 0.6, 0.5), fuzz=0.0)

    logger.debug(
        "Random scene (seed=%s): %d spheres, %d materials",
        seed,
        scene.get_sphere_count(),
        scene.get_material_count(),
    )
    return scene, random_scene_camera()


def create_single_sphere_scene() -> tuple[SceneManager, ThinLensCamera]:
    """A diffuse sphere of radius 0.5 at (0, 0, -1) seen by the default camera."""
    scene = SceneManager()
    scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.5, 0.5, 0.5))
    return scene, default_camera()


def create_two_sphere_scene() -> tuple[SceneManager, ThinLensCamera]:
    """A diffuse sphere resting on a large diffuse ground sphere."""
    scene = SceneManager()
    grey = scene.add_lambertian_material((0.5, 0.5, 0.5))
    scene.add_sphere((0.0, 0.0, -1.0), 0.5, grey)
    scene.add_sphere((0.0, -100.5, -1.0), 100.0, grey)
    return scene, default_camera()


def create_material_showcase_scene() -> tuple[SceneManager, ThinLensCamera]:
    """Three spheres on a ground plane, one per material kind.

    The left sphere is a hollow glass bubble: a glass sphere of radius 0.5
    with a second, negative-radius sphere of 0.45 inside it whose normals
    point inward.
    """
    scene = SceneManager()
    scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, (0.8, 0.8, 0.0))
    scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.1, 0.2, 0.5))
    scene.add_metal_sphere((1.0, 0.0, -1.0), 0.5, (0.8, 0.6, 0.2), fuzz=0.3)

    glass = scene.add_dielectric_material(GLASS_REF_IDX)
    scene.add_sphere((-1.0, 0.0, -1.0), 0.5, glass)
    scene.add_sphere((-1.0, 0.0, -1.0), -0.45, glass)

    camera = ThinLensCamera(
        lookfrom=(-2.0, 2.0, 1.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=40.0,
        aspect_ratio=2.0,
    )
    return scene, camera


SCENES = {
    "random": create_random_scene,
    "showcase": create_material_showcase_scene,
    "two-spheres": create_two_sphere_scene,
    "single": create_single_sphere_scene,
}

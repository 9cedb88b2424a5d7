"""Path tracing integrator for Monte Carlo light transport.

This module implements the radiance estimator and the parallel sampling
kernel that drives it.

The estimator follows a camera ray through the scene. Every hit scatters the
ray according to the surface material and multiplies the path throughput by
the material attenuation. A ray that escapes picks up the sky gradient; a
ray that is absorbed or still bouncing after max_depth bounces contributes
black.

Each pixel is owned by exactly one iteration of the outermost kernel loop,
which Taichi spreads over the CPU thread pool. Random numbers for sample s of
pixel p come from seed_rng(seed, p, s), so the result does not depend on how
pixels are scheduled.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytrace.core.integrator import (
    ...     render_samples, setup_render_target, get_linear_image_numpy
    ... )
    >>> from src.raytrace.scene.random_scene import create_two_sphere_scene
    >>> from src.raytrace.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_two_sphere_scene()
    >>> setup_camera(camera)
    >>> setup_render_target(200, 100)
    >>> render_samples(num_samples=100, seed=7)
    >>> image = get_linear_image_numpy()
"""

from dataclasses import dataclass
from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.raytrace.camera.thin_lens import get_ray_jittered
from src.raytrace.core.ray import spawn_origin, unit_vector
from src.raytrace.core.sampler import seed_rng
from src.raytrace.errors import RenderConfigError
from src.raytrace.materials.dielectric import scatter_dielectric_by_id
from src.raytrace.materials.lambertian import scatter_lambertian_by_id
from src.raytrace.materials.metal import scatter_metal_by_id
from src.raytrace.scene.intersection import intersect_scene
from src.raytrace.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Maximum ray bounces (path length)
MAX_DEPTH = 50

# t_min and t_max for ray intersection. Scattered rays start from
# spawn_origin, just off the surface they leave.
T_MIN = 0.001
T_MAX = 1.0e30

# Sky gradient, blended by the y component of the unit ray direction
SKY_WHITE = vec3(1.0, 1.0, 1.0)
SKY_BLUE = vec3(0.5, 0.7, 1.0)


class ShadingMode(IntEnum):
    """How a camera ray is turned into a color."""

    PATH_TRACE = 0
    NORMALS = 1


@dataclass
class RenderSettings:
    """Image size and sampling parameters for one render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Number of estimator evaluations averaged per pixel.
        max_depth: Maximum number of scattering bounces per path.
        seed: Render-wide random seed.
        shading: PATH_TRACE for full light transport, NORMALS to color hits
            by their surface normal.
    """

    width: int
    height: int
    samples_per_pixel: int = 100
    max_depth: int = MAX_DEPTH
    seed: int = 0
    shading: ShadingMode = ShadingMode.PATH_TRACE

    @classmethod
    def from_aspect_ratio(cls, width: int, aspect_ratio: float, **kwargs) -> "RenderSettings":
        """Build settings whose height is width / aspect_ratio, rounded."""
        if not aspect_ratio > 0.0:
            raise RenderConfigError(f"aspect_ratio must be positive, got {aspect_ratio}")
        height = max(1, int(round(width / aspect_ratio)))
        return cls(width=width, height=height, **kwargs)

    def validate(self) -> None:
        """Check the settings before any buffer is touched.

        Raises:
            RenderConfigError: If a dimension, the sample count or the depth
                is out of range.
        """
        _check_dimensions(self.width, self.height)
        if self.samples_per_pixel <= 0:
            raise RenderConfigError(
                f"samples_per_pixel must be positive, got {self.samples_per_pixel}"
            )
        if self.max_depth < 0:
            raise RenderConfigError(f"max_depth must be non-negative, got {self.max_depth}")


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Per-pixel sum of sample colors (preallocated to max size)
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Sample count per pixel (preallocated to max size)
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def _check_dimensions(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise RenderConfigError(f"Image dimensions ({width}x{height}) must be positive")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise RenderConfigError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffers.

    Sets the active image dimensions and clears the buffers. The buffers are
    preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT so that a new size
    never forces a kernel recompilation.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        RenderConfigError: If a dimension is not positive or exceeds the
            maximum supported size.
    """
    _check_dimensions(width, height)

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffers to zero."""
    _color_buffer.fill(0.0)
    _sample_count.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RenderConfigError("Render target not set up. Call setup_render_target() first.")


def get_total_samples() -> int:
    """Get the number of samples accumulated per pixel so far.

    Every pixel receives the same number of samples, so pixel (0, 0) is
    representative.
    """
    _check_render_target_initialized()
    return int(_sample_count[0, 0])


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    rng: ti.u32,
):
    """Dispatch to the scattering function of the hit material.

    Returns:
        A tuple (scattered_direction, attenuation, did_scatter, rng). An
        unknown material ID absorbs the ray.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0
    state = ti.cast(rng, ti.u32)

    if mat_type == int(MaterialType.LAMBERTIAN):
        scattered_direction, attenuation, did_scatter, state = scatter_lambertian_by_id(
            type_index, normal, state
        )

    elif mat_type == int(MaterialType.METAL):
        scattered_direction, attenuation, did_scatter, state = scatter_metal_by_id(
            type_index, incident_direction, normal, state
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        scattered_direction, attenuation, did_scatter, state = scatter_dielectric_by_id(
            type_index, incident_direction, normal, state
        )

    return scattered_direction, attenuation, did_scatter, state


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def background(direction: vec3) -> vec3:
    """Sky color for a ray that leaves the scene.

    Blends white straight down (y = -1) into light blue straight up (y = 1)
    with t = 0.5 * (unit(direction).y + 1), so a horizontal ray gets an even
    mix of the two.
    """
    t = 0.5 * (unit_vector(direction).y + 1.0)
    return (1.0 - t) * SKY_WHITE + t * SKY_BLUE


@ti.func
def trace_path(
    origin: vec3,
    direction: vec3,
    max_depth: ti.i32,
    shading: ti.i32,
    rng: ti.u32,
):
    """Estimate the radiance arriving along a ray.

    The bounded recursion color(ray, depth) is unrolled into a loop that
    carries the product of attenuations seen so far. At bounce depth:

    - a miss ends the path with throughput * background(direction);
    - a hit with depth < max_depth that scatters multiplies the throughput by
      the attenuation and continues from the hit point;
    - any other hit ends the path with black.

    In NORMALS shading the first hit returns 0.5 * (normal + 1) instead.

    Args:
        origin: The ray origin.
        direction: The ray direction (non-zero, any length).
        max_depth: Maximum number of scattering bounces.
        shading: A ShadingMode value.
        rng: The current generator state.

    Returns:
        A tuple (color, rng).
    """
    ray_origin = origin
    ray_direction = direction
    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    state = ti.cast(rng, ti.u32)

    # Active flag for path continuation (Taichi doesn't support break in ti.func loops)
    active = 1

    for depth in range(max_depth + 1):
        if active == 1:
            rec = intersect_scene(ray_origin, ray_direction, T_MIN, T_MAX)

            if rec.hit == 0:
                color = throughput * background(ray_direction)
                active = 0
            elif shading == int(ShadingMode.NORMALS):
                color = 0.5 * (rec.normal + 1.0)
                active = 0
            elif depth < max_depth:
                scattered_direction, attenuation, did_scatter, state = _scatter_material(
                    rec.material_id, ray_direction, rec.normal, state
                )
                if did_scatter == 1:
                    throughput *= attenuation
                    ray_origin = spawn_origin(rec.point, rec.normal, scattered_direction)
                    ray_direction = scattered_direction
                else:
                    # Absorbed
                    active = 0
            else:
                # Depth exhausted
                active = 0

    return color, state


@ti.func
def _sanitize(color: vec3) -> vec3:
    """Replace NaN and Inf components with zero."""
    result = color
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]):
            result[c] = 0.0
    return result


@ti.func
def _sample_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    sample_index: ti.i32,
    max_depth: ti.i32,
    shading: ti.i32,
    seed: ti.i32,
) -> vec3:
    """One jittered estimator evaluation for a pixel."""
    rng = seed_rng(seed, pixel_j * width + pixel_i, sample_index)
    ray, rng = get_ray_jittered(pixel_i, pixel_j, width, height, rng)
    color, rng = trace_path(ray.origin, ray.direction, max_depth, shading, rng)
    return _sanitize(color)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_batch(
    width: ti.i32,
    height: ti.i32,
    num_samples: ti.i32,
    sample_offset: ti.i32,
    max_depth: ti.i32,
    shading: ti.i32,
    seed: ti.i32,
):
    """Add num_samples samples to every pixel of the active region.

    Only the outermost loop is parallel. Each (i, j) iteration owns its
    buffer cell and sums its samples in a fixed order.
    """
    for i, j in ti.ndrange(width, height):
        total = vec3(0.0, 0.0, 0.0)
        for s in range(num_samples):
            total += _sample_pixel(i, j, width, height, sample_offset + s, max_depth, shading, seed)
        _color_buffer[i, j] += total
        _sample_count[i, j] += num_samples


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    sample_index: ti.i32,
    max_depth: ti.i32,
    shading: ti.i32,
    seed: ti.i32,
) -> vec3:
    return _sample_pixel(pixel_i, pixel_j, width, height, sample_index, max_depth, shading, seed)


@ti.kernel
def _trace_single(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    max_depth: ti.i32,
    shading: ti.i32,
    seed: ti.i32,
) -> vec3:
    rng = seed_rng(seed, 0, 0)
    color, rng = trace_path(vec3(ox, oy, oz), vec3(dx, dy, dz), max_depth, shading, rng)
    return color


# =============================================================================
# Public Rendering API
# =============================================================================


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_depth: int = MAX_DEPTH,
    shading: ShadingMode = ShadingMode.PATH_TRACE,
    seed: int = 0,
) -> tuple[float, float, float]:
    """Evaluate the estimator once for an explicit ray.

    This is a Python-callable function for inspection and testing; it does
    not need a render target.

    Returns:
        Tuple of (R, G, B) linear radiance.
    """
    color = _trace_single(
        origin[0],
        origin[1],
        origin[2],
        direction[0],
        direction[1],
        direction[2],
        max_depth,
        int(shading),
        seed,
    )
    return (float(color[0]), float(color[1]), float(color[2]))


def render_sample(
    pixel_i: int,
    pixel_j: int,
    sample_index: int = 0,
    max_depth: int = MAX_DEPTH,
    shading: ShadingMode = ShadingMode.PATH_TRACE,
    seed: int = 0,
) -> tuple[float, float, float]:
    """Render a single sample for a specific pixel.

    The sample is the same one _render_batch would compute for that pixel
    and sample index, but it is not accumulated.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        sample_index: Index of the sample within the pixel.
        max_depth: Maximum number of scattering bounces.
        shading: The shading mode.
        seed: Render-wide random seed.

    Returns:
        Tuple of (R, G, B) linear radiance.

    Raises:
        RenderConfigError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    color = _render_single_pixel(
        pixel_i, pixel_j, width, height, sample_index, max_depth, int(shading), seed
    )
    return (float(color[0]), float(color[1]), float(color[2]))


def render_samples(
    num_samples: int = 1,
    max_depth: int = MAX_DEPTH,
    shading: ShadingMode = ShadingMode.PATH_TRACE,
    seed: int = 0,
) -> None:
    """Accumulate num_samples more samples into every pixel.

    Sample indices continue from the samples already accumulated, so
    rendering 100 samples at once or as ten batches of 10 draws the same
    random numbers.

    Args:
        num_samples: Number of samples to add per pixel.
        max_depth: Maximum number of scattering bounces.
        shading: The shading mode.
        seed: Render-wide random seed.

    Raises:
        RenderConfigError: If num_samples or max_depth is out of range, or
            the render target has not been set up.
    """
    if num_samples <= 0:
        raise RenderConfigError(f"num_samples must be positive, got {num_samples}")
    if max_depth < 0:
        raise RenderConfigError(f"max_depth must be non-negative, got {max_depth}")
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    sample_offset = get_total_samples()
    _render_batch(width, height, num_samples, sample_offset, max_depth, int(shading), seed)


def get_linear_image_numpy() -> npt.NDArray[np.float32]:
    """Get the averaged linear radiance as a NumPy array.

    The array shape is (height, width, 3) and row 0 is the top of the image.
    Pixels without samples are black.

    Raises:
        RenderConfigError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()

    sums = _color_buffer.to_numpy()[:width, :height, :]
    counts = _sample_count.to_numpy()[:width, :height]
    image = sums / np.maximum(counts, 1)[:, :, np.newaxis]

    # (width, height, 3) -> (height, width, 3)
    image = np.transpose(image, (1, 0, 2))

    # Taichi rows start at the bottom, images start at the top
    image = np.flipud(image)

    return np.ascontiguousarray(image, dtype=np.float32)


def to_display_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert linear radiance to 8-bit display values.

    Applies gamma 2 (square root), scales by 255.99 and truncates, so 1.0
    maps to 255 and 0.5 maps to 181.
    """
    linear = np.clip(np.asarray(image, dtype=np.float64), 0.0, None)
    scaled = np.clip(np.sqrt(linear) * 255.99, 0.0, 255.0)
    return scaled.astype(np.uint8)

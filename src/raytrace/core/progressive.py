"""Progressive renderer for iterative sample accumulation.

This module provides a convenient wrapper around the core integrator that supports:
- Progressive rendering that refines over time
- Batch rendering (multiple SPP in one kernel launch)
- Progress callbacks and a generator interface
- A one-shot render_image() for scripts

Because sample indices continue across batches, the final image does not
depend on the batch size beyond float summation order, and two renders with
the same seed and batch size are byte-identical.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.raytrace.core.progressive import ProgressiveRenderer
    >>> from src.raytrace.scene.random_scene import create_random_scene
    >>> from src.raytrace.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_random_scene(seed=3)
    >>> setup_camera(camera)
    >>>
    >>> renderer = ProgressiveRenderer(300, 200, seed=3)
    >>> renderer.render(100, batch_size=10)
    >>> image = renderer.get_image_uint8()
"""

import logging
import time
from collections.abc import Callable, Generator
from pathlib import Path

import numpy as np
import numpy.typing as npt

from src.raytrace.core.integrator import (
    MAX_DEPTH,
    RenderSettings,
    ShadingMode,
    clear_render_target,
    get_linear_image_numpy,
    get_total_samples,
    render_samples,
    setup_render_target,
    to_display_uint8,
)
from src.raytrace.errors import RenderConfigError

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates samples over time.

    The renderer keeps the sampling parameters and delegates storage to the
    global integrator buffers (which are Taichi fields), so only one
    renderer should be active at a time.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        max_depth: Maximum number of scattering bounces per path.
        seed: Render-wide random seed.
        shading: The shading mode.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        max_depth: int = MAX_DEPTH,
        seed: int = 0,
        shading: ShadingMode = ShadingMode.PATH_TRACE,
    ) -> None:
        """Initialize the progressive renderer.

        Args:
            width: Image width in pixels (max 2048).
            height: Image height in pixels (max 2048).
            max_depth: Maximum number of scattering bounces per path.
            seed: Render-wide random seed.
            shading: The shading mode.

        Raises:
            RenderConfigError: If a dimension or max_depth is out of range.
        """
        if max_depth < 0:
            raise RenderConfigError(f"max_depth must be non-negative, got {max_depth}")

        self._width = width
        self._height = height
        self.max_depth = max_depth
        self.seed = seed
        self.shading = shading
        setup_render_target(width, height)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    def reset(self) -> None:
        """Clear the accumulated samples without changing the image size."""
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and reset the accumulator.

        Raises:
            RenderConfigError: If a dimension is out of range.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height

    def _render_batch(self, num_samples: int) -> None:
        render_samples(
            num_samples,
            max_depth=self.max_depth,
            shading=self.shading,
            seed=self.seed,
        )

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render samples progressively with optional progress callback.

        Accumulates the specified number of samples into the existing buffer.
        Can be called multiple times to continue refining the image.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples per kernel launch and per callback.
            callback: Optional callback function called after each batch.
                Receives (current_total_samples, target_total_samples).

        Raises:
            RenderConfigError: If num_samples or batch_size is not positive.

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} samples")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        for current, target in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples progressively, yielding progress after each batch.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each yield.

        Yields:
            Tuple of (current_total_samples, target_total_samples).

        Raises:
            RenderConfigError: If num_samples or batch_size is not positive.

        Example:
            >>> for current, target in renderer.render_progressive(100, batch_size=10):
            ...     print(f"Progress: {current}/{target} samples")
        """
        if num_samples <= 0:
            raise RenderConfigError(f"num_samples must be positive, got {num_samples}")
        if batch_size <= 0:
            raise RenderConfigError(f"batch_size must be positive, got {batch_size}")

        target_samples = self.sample_count + num_samples
        logger.debug(
            "Rendering %dx%d, %d samples (target %d), seed %d",
            self._width,
            self._height,
            num_samples,
            target_samples,
            self.seed,
        )
        start = time.perf_counter()

        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            self._render_batch(batch)
            remaining -= batch
            yield (self.sample_count, target_samples)

        logger.debug(
            "Rendered %d samples in %.2fs", num_samples, time.perf_counter() - start
        )

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the averaged linear radiance, shape (height, width, 3), top row first."""
        return get_linear_image_numpy()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the gamma-2 corrected 8-bit image, shape (height, width, 3)."""
        return to_display_uint8(self.get_image_numpy())

    def save_image(self, filepath: str | Path) -> None:
        """Save the rendered image; the format follows the extension (.ppm or .png)."""
        from src.raytrace.preview.export import save_image

        save_image(self.get_image_uint8(), filepath)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count}, seed={self.seed})"
        )


def render_image(
    settings: RenderSettings,
    batch_size: int | None = None,
    callback: ProgressCallback | None = None,
) -> npt.NDArray[np.uint8]:
    """Render the current scene and camera in one call.

    The scene and camera must already be set up. The settings are validated
    before the render target is touched.

    Args:
        settings: Image size and sampling parameters.
        batch_size: Samples per kernel launch. Defaults to all samples in one
            launch.
        callback: Optional progress callback, see ProgressiveRenderer.render.

    Returns:
        The 8-bit image, shape (height, width, 3), row 0 at the top.

    Raises:
        RenderConfigError: If the settings are invalid.
    """
    settings.validate()

    renderer = ProgressiveRenderer(
        settings.width,
        settings.height,
        max_depth=settings.max_depth,
        seed=settings.seed,
        shading=settings.shading,
    )
    renderer.render(
        settings.samples_per_pixel,
        batch_size=batch_size or settings.samples_per_pixel,
        callback=callback,
    )
    return renderer.get_image_uint8()

"""Preview module for image output.

Components:
    export: PPM and PNG writers plus image comparison helpers

Example:
    >>> from src.raytrace.preview import save_image
    >>> from src.raytrace.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(200, 100)
    >>> renderer.render(100)
    >>> save_image(renderer.get_image_uint8(), "output.png")
"""

from src.raytrace.preview.export import (
    compute_rmse,
    save_image,
    save_png,
    save_ppm,
    write_ppm,
)

__all__ = [
    "write_ppm",
    "save_ppm",
    "save_png",
    "save_image",
    "compute_rmse",
]

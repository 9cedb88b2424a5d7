"""Image export utilities for rendered images.

Images arrive here already quantized: uint8 arrays of shape (H, W, 3) with
row 0 at the top, as produced by ``to_display_uint8``.

Supported formats:
    - PPM (ASCII "P3", no dependencies)
    - PNG (8-bit via Pillow)

Example:
    >>> from src.raytrace.preview.export import save_ppm
    >>> from src.raytrace.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(200, 100)
    >>> renderer.render(100)
    >>> save_ppm(renderer.get_image_uint8(), "output.ppm")
"""

from __future__ import annotations

from pathlib import Path
from typing import TextIO

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage


def _as_rgb_uint8(image: npt.ArrayLike) -> npt.NDArray[np.uint8]:
    array = np.asarray(image)
    if array.ndim != 3 or array.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {array.shape}")
    if array.dtype != np.uint8:
        raise ValueError(f"Expected a uint8 image, got {array.dtype}")
    return array


def write_ppm(image: npt.ArrayLike, stream: TextIO) -> None:
    """Write an image as ASCII PPM.

    The output is the header line "P3", then "width height", then "255",
    followed by one "r g b" line per pixel, rows from top to bottom and
    pixels left to right within a row.

    Args:
        image: uint8 array of shape (H, W, 3), row 0 at the top.
        stream: A text stream to write to.

    Raises:
        ValueError: If the array is not an (H, W, 3) uint8 image.
    """
    pixels = _as_rgb_uint8(image)
    height, width, _ = pixels.shape

    stream.write(f"P3\n{width} {height}\n255\n")
    for row in pixels:
        stream.write("".join(f"{r} {g} {b}\n" for r, g, b in row.tolist()))


def save_ppm(image: npt.ArrayLike, filepath: str | Path) -> None:
    """Save an image as an ASCII PPM file."""
    with open(filepath, "w", encoding="ascii", newline="\n") as f:
        write_ppm(image, f)


def save_png(image: npt.ArrayLike, filepath: str | Path) -> None:
    """Save an image as a PNG file using Pillow."""
    pil_image = PILImage.fromarray(_as_rgb_uint8(image))
    pil_image.save(filepath)


def save_image(image: npt.ArrayLike, filepath: str | Path) -> None:
    """Save an image, picking PPM or PNG from the file extension.

    Raises:
        ValueError: If the extension is neither .ppm nor .png.
    """
    suffix = Path(filepath).suffix.lower()
    if suffix == ".ppm":
        save_ppm(image, filepath)
    elif suffix == ".png":
        save_png(image, filepath)
    else:
        raise ValueError(f"Unsupported image format {suffix!r}; use .ppm or .png")


def compute_rmse(
    image_a: npt.NDArray[np.generic],
    image_b: npt.NDArray[np.generic],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))

"""Tests for the image export module.

This module tests the preview/export functionality including:
- ASCII PPM output (header, pixel order)
- PNG export through Pillow
- Extension-based dispatch
- RMSE computation
"""

import io

import numpy as np
import pytest
from PIL import Image as PILImage


def _gradient_image(height=2, width=3):
    image = np.zeros((height, width, 3), dtype=np.uint8)
    for row in range(height):
        for col in range(width):
            image[row, col] = (10 * col, 100 + row, 255 - col)
    return image


class TestWritePpm:
    """Test ASCII PPM output."""

    def test_header_and_pixel_count(self):
        from src.raytrace.preview.export import write_ppm

        stream = io.StringIO()
        write_ppm(_gradient_image(), stream)
        lines = stream.getvalue().splitlines()

        assert lines[:3] == ["P3", "3 2", "255"]
        assert len(lines) == 3 + 2 * 3

    def test_pixel_order_is_rows_top_to_bottom(self):
        """Row 0 of the array is written first, pixels left to right."""
        from src.raytrace.preview.export import write_ppm

        stream = io.StringIO()
        write_ppm(_gradient_image(), stream)
        lines = stream.getvalue().splitlines()[3:]

        assert lines == [
            "0 100 255",
            "10 100 254",
            "20 100 253",
            "0 101 255",
            "10 101 254",
            "20 101 253",
        ]

    def test_output_ends_with_newline(self):
        from src.raytrace.preview.export import write_ppm

        stream = io.StringIO()
        write_ppm(np.zeros((1, 1, 3), dtype=np.uint8), stream)
        assert stream.getvalue() == "P3\n1 1\n255\n0 0 0\n"

    @pytest.mark.parametrize(
        "image",
        [
            np.zeros((4, 4), dtype=np.uint8),
            np.zeros((4, 4, 4), dtype=np.uint8),
            np.zeros((4, 4, 3), dtype=np.float32),
        ],
    )
    def test_rejects_invalid_images(self, image):
        from src.raytrace.preview.export import write_ppm

        with pytest.raises(ValueError):
            write_ppm(image, io.StringIO())

    def test_save_ppm_writes_file(self, tmp_path):
        from src.raytrace.preview.export import save_ppm

        path = tmp_path / "image.ppm"
        save_ppm(_gradient_image(), path)
        text = path.read_text(encoding="ascii")
        assert text.startswith("P3\n3 2\n255\n0 100 255\n")


class TestSavePng:
    """Test PNG export functionality."""

    def test_save_png_round_trip(self, tmp_path):
        from src.raytrace.preview.export import save_png

        image = _gradient_image(5, 7)
        path = tmp_path / "image.png"
        save_png(image, path)

        with PILImage.open(path) as img:
            assert img.size == (7, 5)
            assert img.mode == "RGB"
            np.testing.assert_array_equal(np.asarray(img), image)

    def test_save_png_rejects_float_image(self, tmp_path):
        from src.raytrace.preview.export import save_png

        with pytest.raises(ValueError, match="uint8"):
            save_png(np.zeros((2, 2, 3), dtype=np.float64), tmp_path / "bad.png")


class TestSaveImage:
    """Test extension-based dispatch."""

    def test_dispatch_by_extension(self, tmp_path):
        from src.raytrace.preview.export import save_image

        image = _gradient_image()
        save_image(image, tmp_path / "a.ppm")
        save_image(image, tmp_path / "b.PNG")

        assert (tmp_path / "a.ppm").read_bytes().startswith(b"P3\n")
        assert (tmp_path / "b.PNG").read_bytes().startswith(b"\x89PNG")

    def test_unknown_extension_raises(self, tmp_path):
        from src.raytrace.preview.export import save_image

        with pytest.raises(ValueError, match="Unsupported image format"):
            save_image(_gradient_image(), tmp_path / "image.jpg")
        assert not (tmp_path / "image.jpg").exists()


class TestComputeRmse:
    """Test RMSE computation."""

    def test_rmse_identical_images(self):
        from src.raytrace.preview.export import compute_rmse

        image = _gradient_image()
        assert compute_rmse(image, image) == 0.0

    def test_rmse_different_images(self):
        from src.raytrace.preview.export import compute_rmse

        image_a = np.zeros((10, 10, 3), dtype=np.uint8)
        image_b = np.full((10, 10, 3), 3, dtype=np.uint8)
        assert np.isclose(compute_rmse(image_a, image_b), 3.0)

    def test_rmse_shape_mismatch_raises(self):
        from src.raytrace.preview.export import compute_rmse

        with pytest.raises(ValueError, match="shapes must match"):
            compute_rmse(np.zeros((10, 10, 3)), np.zeros((20, 20, 3)))

#!/usr/bin/env python3
"""Render one of the example sphere scenes.

This script renders a scene with the path tracer and writes the result as a
PPM or PNG file. By default it renders the random sphere field seen through
a thin-lens camera.

Usage:
    python -m examples.render_random_scene [options]

Options:
    --width WIDTH           Image width in pixels (default: 400)
    --aspect-ratio RATIO    Width / height (default: the scene camera's)
    --samples SAMPLES       Number of samples per pixel (default: 100)
    --max-depth DEPTH       Maximum bounces per path (default: 50)
    --seed SEED             Seed for the scene layout and the sampler (default: 0)
    --scene NAME            random, showcase, two-spheres or single (default: random)
    --normals               Color hits by surface normal instead of path tracing
    --output OUTPUT         Output file path, .ppm or .png (default: output.ppm)
    --batch-size SIZE       Samples per progress update (default: 10)
    --threads N             CPU threads for Taichi (default: all cores)
    --quiet                 Suppress progress output

Example:
    python -m examples.render_random_scene --width 200 --samples 20 --output random.png
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import taichi as ti

SCENE_CHOICES = ("random", "showcase", "two-spheres", "single")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render an example sphere scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=400,
        help="Image width in pixels (default: 400)",
    )
    parser.add_argument(
        "--aspect-ratio",
        type=float,
        default=None,
        help="Image width / height (default: the scene camera's aspect ratio)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=100,
        help="Number of samples per pixel (default: 100)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=50,
        help="Maximum bounces per path (default: 50)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Seed for the scene layout and the sampler (default: 0)",
    )
    parser.add_argument(
        "--scene",
        choices=SCENE_CHOICES,
        default="random",
        help="Scene to render (default: random)",
    )
    parser.add_argument(
        "--normals",
        action="store_true",
        help="Color hits by surface normal instead of path tracing",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="output.ppm",
        help="Output file path, .ppm or .png (default: output.ppm)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=10,
        help="Samples per progress update (default: 10)",
    )
    parser.add_argument(
        "--threads",
        type=int,
        default=None,
        help="CPU threads for Taichi (default: all cores)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args(argv)


def render_scene(
    scene_name: str = "random",
    width: int = 400,
    aspect_ratio: float | None = None,
    num_samples: int = 100,
    max_depth: int = 50,
    seed: int = 0,
    normals: bool = False,
    output_path: str = "output.ppm",
    batch_size: int = 10,
    quiet: bool = False,
) -> Path:
    """Render an example scene and save it to a file.

    Args:
        scene_name: One of SCENE_CHOICES.
        width: Image width in pixels.
        aspect_ratio: Width / height. The camera is adjusted to match.
        num_samples: Number of samples per pixel.
        max_depth: Maximum bounces per path.
        seed: Seed for the random scene layout and the sampler.
        normals: If True, render surface normals instead of radiance.
        output_path: Output file path (.ppm or .png).
        batch_size: Number of samples to render between progress updates.
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.raytrace.camera.thin_lens import setup_camera
    from src.raytrace.core.integrator import RenderSettings, ShadingMode
    from src.raytrace.core.progressive import ProgressiveRenderer
    from src.raytrace.preview.export import save_image
    from src.raytrace.scene.random_scene import SCENES, create_random_scene

    if scene_name == "random":
        scene, camera = create_random_scene(seed)
    else:
        scene, camera = SCENES[scene_name]()

    if aspect_ratio is not None:
        camera.aspect_ratio = aspect_ratio
    settings = RenderSettings.from_aspect_ratio(
        width,
        camera.aspect_ratio,
        samples_per_pixel=num_samples,
        max_depth=max_depth,
        seed=seed,
        shading=ShadingMode.NORMALS if normals else ShadingMode.PATH_TRACE,
    )
    settings.validate()

    if not quiet:
        print(
            f"Scene '{scene_name}': {scene.get_sphere_count()} spheres, "
            f"{settings.width}x{settings.height}"
        )

    setup_camera(camera)

    renderer = ProgressiveRenderer(
        settings.width,
        settings.height,
        max_depth=settings.max_depth,
        seed=settings.seed,
        shading=settings.shading,
    )

    if not quiet:
        print(f"Rendering {settings.samples_per_pixel} samples per pixel...")

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            samples_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} samples "
                f"({progress_pct:.1f}%) - {samples_per_sec:.1f} spp/s",
                end="",
                flush=True,
            )

    renderer.render(
        num_samples=settings.samples_per_pixel,
        batch_size=batch_size,
        callback=progress_callback,
    )

    if not quiet:
        print()  # Newline after progress

    output_file = Path(output_path)
    save_image(renderer.get_image_uint8(), output_file)

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.threads is not None:
        ti.init(arch=ti.cpu, cpu_max_num_threads=args.threads)
    else:
        ti.init(arch=ti.cpu)

    from src.raytrace.errors import RaytraceError

    try:
        render_scene(
            scene_name=args.scene,
            width=args.width,
            aspect_ratio=args.aspect_ratio,
            num_samples=args.samples,
            max_depth=args.max_depth,
            seed=args.seed,
            normals=args.normals,
            output_path=args.output,
            batch_size=args.batch_size,
            quiet=args.quiet,
        )
        return 0
    except (RaytraceError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""Shared validation for material parameters.

Each material kind keeps its own registry of Taichi fields (see the
lambertian, metal and dielectric modules). Parameters are checked here on the
Python side, before they are written to a field, so that kernels only ever
see valid materials.
"""

import math
from collections.abc import Sequence

from src.raytrace.errors import MaterialConfigError

# Capacity of each per-kind material registry
MAX_MATERIALS_PER_TYPE = 1024


def validate_albedo(albedo: Sequence[float]) -> tuple[float, float, float]:
    """Check that an albedo is an RGB triple with every component in [0, 1].

    Args:
        albedo: The reflectance color as (R, G, B).

    Returns:
        The albedo as a tuple of floats.

    Raises:
        MaterialConfigError: If the albedo does not have three components or
            any component is outside [0, 1]. Values above 1 would add energy
            on every bounce.
    """
    if len(albedo) != 3:
        raise MaterialConfigError(f"Albedo must have 3 components, got {len(albedo)}")
    for i, component in enumerate(albedo):
        if not math.isfinite(component) or component < 0.0 or component > 1.0:
            raise MaterialConfigError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )
    return (float(albedo[0]), float(albedo[1]), float(albedo[2]))

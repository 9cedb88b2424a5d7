"""Counter-based random number generation for Monte Carlo sampling.

Taichi's built-in ``ti.random()`` keeps one generator per worker thread, so
the numbers a pixel receives depend on how the CPU backend schedules loop
blocks. To make renders reproducible for a given seed, every path carries its
own 32-bit generator state instead:

    state = seed_rng(seed, pixel_index, sample_index)
    u, state = random_f32(state)

The state is seeded by hashing (seed, pixel, sample) with Thomas Wang's
integer hash and advanced with xorshift32. Every sampling function takes the
current state and returns the advanced one alongside its result.

The rejection samplers draw at most ``MAX_REJECTION_ITERATIONS`` candidates.
Each draw is accepted with probability ~0.52 (sphere) or ~0.79 (disk), so the
cap is practically never reached; when it is, the canonical point (0, 0, 0)
is returned and callers degrade to the unperturbed direction.
"""

import taichi as ti
import taichi.math as tm

from src.raytrace.core.ray import length_squared

vec3 = tm.vec3

MAX_REJECTION_ITERATIONS = 64

# 2^-24: maps the top 24 bits of a u32 onto [0, 1)
_U24_TO_UNIT = 1.0 / 16777216.0


@ti.func
def hash_u32(x: ti.u32) -> ti.u32:
    """Thomas Wang's 32-bit integer hash."""
    h = ti.cast(x, ti.u32)
    h = (h ^ ti.u32(61)) ^ (h >> ti.u32(16))
    h = h * ti.u32(9)
    h = h ^ (h >> ti.u32(4))
    h = h * ti.u32(0x27D4EB2D)
    h = h ^ (h >> ti.u32(15))
    return h


@ti.func
def seed_rng(seed: ti.i32, pixel_index: ti.i32, sample_index: ti.i32) -> ti.u32:
    """Derive a generator state for one (pixel, sample) evaluation.

    Args:
        seed: Render-wide seed.
        pixel_index: Linear index of the pixel.
        sample_index: Index of the sample within the pixel, counted across
            all batches of a progressive render.

    Returns:
        A non-zero u32 state (xorshift32 never leaves zero).
    """
    h = hash_u32(ti.cast(seed, ti.u32))
    h = hash_u32(h ^ ti.cast(pixel_index, ti.u32))
    h = hash_u32(h ^ ti.cast(sample_index, ti.u32))
    if h == ti.u32(0):
        h = ti.u32(1)
    return h


@ti.func
def next_u32(state: ti.u32) -> ti.u32:
    """Advance an xorshift32 state."""
    x = ti.cast(state, ti.u32)
    x = x ^ (x << ti.u32(13))
    x = x ^ (x >> ti.u32(17))
    x = x ^ (x << ti.u32(5))
    return x


@ti.func
def random_f32(state: ti.u32):
    """Draw a uniform float in [0, 1).

    Returns:
        A tuple (value, new_state).
    """
    s = next_u32(state)
    value = ti.cast(s >> ti.u32(8), ti.f32) * _U24_TO_UNIT
    return value, s


@ti.func
def random_in_unit_sphere(state: ti.u32):
    """Uniform point strictly inside the unit ball, by rejection sampling.

    Candidates are drawn from the cube [-1, 1]^3 and rejected while their
    squared length is >= 1.

    Returns:
        A tuple (point, new_state). point is (0, 0, 0) if every candidate
        was rejected.
    """
    s = ti.cast(state, ti.u32)
    p = vec3(0.0, 0.0, 0.0)
    found = 0
    for _ in range(MAX_REJECTION_ITERATIONS):
        if found == 0:
            x, s = random_f32(s)
            y, s = random_f32(s)
            z, s = random_f32(s)
            candidate = vec3(2.0 * x - 1.0, 2.0 * y - 1.0, 2.0 * z - 1.0)
            if length_squared(candidate) < 1.0:
                p = candidate
                found = 1
    return p, s


@ti.func
def random_in_unit_disk(state: ti.u32):
    """Uniform point strictly inside the unit disk in the z = 0 plane.

    Returns:
        A tuple (point, new_state). point is (0, 0, 0) if every candidate
        was rejected.
    """
    s = ti.cast(state, ti.u32)
    p = vec3(0.0, 0.0, 0.0)
    found = 0
    for _ in range(MAX_REJECTION_ITERATIONS):
        if found == 0:
            x, s = random_f32(s)
            y, s = random_f32(s)
            candidate = vec3(2.0 * x - 1.0, 2.0 * y - 1.0, 0.0)
            if length_squared(candidate) < 1.0:
                p = candidate
                found = 1
    return p, s

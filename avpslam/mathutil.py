"""Small numeric helpers shared by the mapping code."""

from __future__ import annotations

import math
from typing import Sequence


def clamp(value, low, high):
    """Clamp ``value`` into the range [low, high]."""
    if value > high:
        return high
    if value < low:
        return low
    return value


def power(base, exponent: int):
    """Return ``base`` raised to the non-negative integer ``exponent``."""
    if exponent < 0:
        raise ValueError("exponent must be non-negative")
    result = type(base)(1) if isinstance(base, (int, float)) else 1
    for _ in range(exponent):
        result = result * base
    return result


def pow2(a):
    """Return ``a`` squared."""
    return power(a, 2)


def deg_to_rad(deg: float) -> float:
    """Convert degrees to radians."""
    return math.pi * deg / 180.0


def rad_to_deg(rad: float) -> float:
    """Convert radians to degrees."""
    return 180.0 * rad / math.pi


def normalize_angle_difference(difference: float) -> float:
    """Bring an angle difference into [-pi, pi]."""
    while difference > math.pi:
        difference -= 2.0 * math.pi
    while difference < -math.pi:
        difference += 2.0 * math.pi
    return difference


def quaternion_product(z: Sequence[float], w: Sequence[float]) -> tuple[float, float, float, float]:
    """Hamilton product of two quaternions given as (w, x, y, z)."""
    return (
        z[0] * w[0] - z[1] * w[1] - z[2] * w[2] - z[3] * w[3],
        z[0] * w[1] + z[1] * w[0] + z[2] * w[3] - z[3] * w[2],
        z[0] * w[2] - z[1] * w[3] + z[2] * w[0] + z[3] * w[1],
        z[0] * w[3] + z[1] * w[2] - z[2] * w[1] + z[3] * w[0],
    )


def round_to_int(x: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    floor = math.floor(x)
    frac = x - floor
    if frac > 0.5 or (frac == 0.5 and x >= 0):
        return int(floor) + 1
    return int(floor)
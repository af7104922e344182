"""Sparse pose adjustment residual between a submap and a node."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from .constraint import Constraint, normalize


def compute_unscaled_error(relative_pose: Sequence[float], start: Sequence[float], end: Sequence[float]) -> np.ndarray:
    """Observed relative pose minus the relative pose of ``end`` seen from ``start``."""
    cos_theta = math.cos(start[2])
    sin_theta = math.sin(start[2])
    delta_x = end[0] - start[0]
    delta_y = end[1] - start[1]
    h0 = cos_theta * delta_x + sin_theta * delta_y
    h1 = -sin_theta * delta_x + cos_theta * delta_y
    h2 = end[2] - start[2]
    return np.array(
        [
            float(relative_pose[0]) - h0,
            float(relative_pose[1]) - h1,
            float(normalize(float(relative_pose[2]) - h2)),
        ]
    )


def scale_error(error: Sequence[float], translation_weight: float, rotation_weight: float) -> np.ndarray:
    """Weight the translational and rotational parts of an error."""
    return np.array(
        [error[0] * translation_weight, error[1] * translation_weight, error[2] * rotation_weight],
        dtype=np.float64,
    )


class SpaCostFunction2D:
    """Weighted error of a pair of poses against an observed constraint."""

    def __init__(self, observed_relative_pose: Constraint) -> None:
        self.observed_relative_pose = observed_relative_pose

    def __call__(self, start_pose: Sequence[float], end_pose: Sequence[float]) -> np.ndarray:
        constraint = self.observed_relative_pose
        return scale_error(
            compute_unscaled_error(constraint.relative_pose, start_pose, end_pose),
            constraint.translation_weight,
            constraint.rotation_weight,
        )
"""Relative pose constraints whose residuals are divided by a standard deviation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

import numpy as np

from .constraint import normalize
from .spa_cost_function import compute_unscaled_error


def calculate_relative_pose(p1: Sequence[float], p2: Sequence[float]) -> list[float]:
    """Pose ``p2`` expressed in the frame of ``p1``."""
    c, s = math.cos(p1[2]), math.sin(p1[2])
    dx, dy = p2[0] - p1[0], p2[1] - p1[1]
    return [c * dx + s * dy, -s * dx + c * dy, float(normalize(p2[2] - p1[2]))]


class CovarianceCostFunction:
    """Relative pose error divided by a single standard deviation."""

    def __init__(self, z: Sequence[float], cov: float) -> None:
        observed = np.asarray(z, dtype=np.float64)
        if observed.shape != (3,):
            raise ValueError("z must have three components")
        if cov == 0:
            raise ValueError("cov must be non-zero")
        self.z = observed
        self.cov = float(cov)

    def __call__(self, start_pose: Sequence[float], end_pose: Sequence[float]) -> np.ndarray:
        return compute_unscaled_error(self.z, start_pose, end_pose) / self.cov


class ConstraintType(Enum):
    INTER = "inter"
    GLOBAL = "global"


@dataclass
class ObservedConstraint:
    """A submap-node pair with the relative pose observed between them."""

    submap_id: int
    node_id: int
    submap_pose: np.ndarray
    node_pose: np.ndarray
    constraint_type: ConstraintType
    observed_relative_pose: np.ndarray = field(init=False)

    def __post_init__(self) -> None:
        self.submap_pose = np.array(self.submap_pose, dtype=np.float64)
        self.node_pose = np.array(self.node_pose, dtype=np.float64)
        if self.submap_pose.shape != (3,) or self.node_pose.shape != (3,):
            raise ValueError("poses must have three components")
        self.observed_relative_pose = np.array(calculate_relative_pose(self.submap_pose, self.node_pose))
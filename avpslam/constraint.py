"""Pose-graph constraints between submaps and trajectory nodes."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np


def normalize(angle: float) -> float:
    """Wrap an angle into [-pi, pi)."""
    result = angle
    while result >= math.pi:
        result -= 2 * math.pi
    while result < -math.pi:
        result += 2 * math.pi
    return result


class ConstraintTag(enum.Enum):
    """Whether a constraint is a loop closure or a local insertion."""

    GLOBAL = "global"
    NON_GLOBAL = "non_global"


@dataclass(frozen=True)
class Constraint:
    """Observed pose of a node relative to a submap, with weights."""

    submap_id: int
    node_id: int
    translation_weight: float
    rotation_weight: float
    relative_pose: tuple[float, float, float]
    tag: ConstraintTag

    def __post_init__(self) -> None:
        pose = tuple(float(v) for v in self.relative_pose)
        if len(pose) != 3:
            raise ValueError("relative_pose must have three components")
        object.__setattr__(self, "relative_pose", pose)


def compute_relative_pose(submap_global_pose: Sequence[float], node_global_pose: Sequence[float]) -> np.ndarray:
    """Pose of the node expressed in the submap's frame."""
    tx = node_global_pose[0] - submap_global_pose[0]
    ty = node_global_pose[1] - submap_global_pose[1]
    r = normalize(node_global_pose[2] - submap_global_pose[2])
    cz = math.cos(submap_global_pose[2])
    sz = math.sin(submap_global_pose[2])
    return np.array([cz * tx + sz * ty, -sz * tx + cz * ty, r])
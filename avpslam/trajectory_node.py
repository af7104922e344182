"""Trajectory nodes: filtered scans and their poses."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


def _frozen_pose(pose) -> np.ndarray:
    array = np.array(pose, dtype=np.float64)
    if array.shape != (3,):
        raise ValueError("a pose must have three components")
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class NodeData:
    """Data of a node that does not change once recorded."""

    filtered_semantic_data: np.ndarray
    local_pose: np.ndarray

    def __post_init__(self) -> None:
        cloud = np.array(self.filtered_semantic_data, dtype=np.float64)
        if cloud.size == 0:
            cloud = np.zeros((0, 3))
        if cloud.ndim != 2 or cloud.shape[1] != 3:
            raise ValueError("filtered_semantic_data must have shape (N, 3)")
        cloud.flags.writeable = False
        object.__setattr__(self, "filtered_semantic_data", cloud)
        object.__setattr__(self, "local_pose", _frozen_pose(self.local_pose))


@dataclass(frozen=True, eq=False)
class TrajectoryNode:
    """A node's constant data together with its global pose."""

    constant_data: NodeData
    global_pose: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "global_pose", _frozen_pose(self.global_pose))
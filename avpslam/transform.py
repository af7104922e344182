"""Rigid 2D pose transforms and voxel down-sampling of point clouds.

A point cloud is an ``(N, 3)`` array of x, y, z coordinates.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np


def _as_cloud(cloud) -> np.ndarray:
    points = np.asarray(cloud, dtype=np.float64)
    if points.size == 0:
        return np.zeros((0, 3))
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError("a point cloud must have shape (N, 3)")
    return points


def pose_to_matrix(pose: Sequence[float]) -> np.ndarray:
    """Homogeneous 4x4 transform of a planar pose (x, y, yaw)."""
    if len(pose) != 3:
        raise ValueError("pose must have three components")
    x, y, yaw = (float(v) for v in pose)
    c, s = math.cos(yaw), math.sin(yaw)
    return np.array(
        [
            [c, -s, 0.0, x],
            [s, c, 0.0, y],
            [0.0, 0.0, 1.0, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )


def transform_point_cloud(cloud, transform) -> np.ndarray:
    """Return a new cloud with every point mapped by a 4x4 homogeneous transform."""
    matrix = np.asarray(transform, dtype=np.float64)
    if matrix.shape != (4, 4):
        raise ValueError("transform must be a 4x4 matrix")
    points = _as_cloud(cloud)
    return points @ matrix[:3, :3].T + matrix[:3, 3]


def transform_point_cloud_by_pose(cloud, pose: Sequence[float]) -> np.ndarray:
    """Return a new cloud moved from the pose's frame into the parent frame."""
    return transform_point_cloud(cloud, pose_to_matrix(pose))


def voxel_grid_filter(cloud, leaf_size) -> np.ndarray:
    """Replace the points in each voxel by their centroid, ordered by voxel index."""
    leaf = np.broadcast_to(np.asarray(leaf_size, dtype=np.float64), (3,))
    if np.any(leaf <= 0):
        raise ValueError("leaf size must be positive")
    points = _as_cloud(cloud)
    if len(points) == 0:
        return points.copy()
    ijk = np.floor(points / leaf).astype(np.int64)
    min_b = ijk.min(axis=0)
    dims = ijk.max(axis=0) - min_b + 1
    rel = ijk - min_b
    linear = rel[:, 0] + rel[:, 1] * dims[0] + rel[:, 2] * dims[0] * dims[1]
    keys, inverse = np.unique(linear, return_inverse=True)
    inverse = inverse.reshape(-1)
    sums = np.zeros((len(keys), 3))
    np.add.at(sums, inverse, points)
    counts = np.bincount(inverse, minlength=len(keys))
    return sums / counts[:, None]
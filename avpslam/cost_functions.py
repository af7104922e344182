"""Residual functors for matching a point cloud against a grid.

Each functor is called with a planar pose ``(x, y, yaw)`` and returns its
residuals as a float array.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from .gridmap import GridMap
from .gridmap_image import _cost_image


def _pose(pose: Sequence[float]) -> np.ndarray:
    array = np.asarray(pose, dtype=np.float64)
    if array.shape != (3,):
        raise ValueError("pose must have three components")
    return array


def _cubic_hermite(p0, p1, p2, p3, x):
    """Catmull-Rom spline through p1 (x = 0) and p2 (x = 1)."""
    a = 0.5 * (-p0 + 3.0 * p1 - 3.0 * p2 + p3)
    b = 0.5 * (2.0 * p0 - 5.0 * p1 + 4.0 * p2 - p3)
    c = 0.5 * (-p0 + p2)
    return p1 + x * (c + x * (b + x * a))


class OccupiedSpaceCostFunction2D:
    """Scaled, bicubically interpolated correspondence cost under every transformed point.

    The grid's cells are read once, when the functor is created; outside the
    grid the cost is the grid's maximum correspondence cost.
    """

    def __init__(self, scaling_factor: float, point_cloud, grid: GridMap) -> None:
        self.scaling_factor = float(scaling_factor)
        self._points = np.asarray(point_cloud, dtype=np.float64).reshape(-1, 3)[:, :2].copy()
        self._limits = grid.limits
        self._costs = _cost_image(grid).astype(np.float64)
        self._outside = float(grid.max_correspondence_cost)

    @property
    def num_residuals(self) -> int:
        return len(self._points)

    def _values(self, index0: np.ndarray, index1: np.ndarray) -> np.ndarray:
        nx, ny = self._costs.shape
        inside = (index0 >= 0) & (index0 < nx) & (index1 >= 0) & (index1 < ny)
        values = np.full(index0.shape, self._outside)
        values[inside] = self._costs[index0[inside], index1[inside]]
        return values

    def __call__(self, pose: Sequence[float]) -> np.ndarray:
        x, y, yaw = _pose(pose)
        if len(self._points) == 0:
            return np.zeros(0)
        c, s = math.cos(yaw), math.sin(yaw)
        px, py = self._points[:, 0], self._points[:, 1]
        world_x = c * px - s * py + x
        world_y = s * px + c * py + y

        resolution = self._limits.resolution
        max_x, max_y = self._limits.max
        # Rows follow the second cell index, columns the first.
        r = (max_x - world_x) / resolution - 0.5
        col_coord = (max_y - world_y) / resolution - 0.5
        row = np.floor(r).astype(np.int64)
        col = np.floor(col_coord).astype(np.int64)
        row_fraction = r - row
        col_fraction = col_coord - col

        along_rows = [
            _cubic_hermite(*(self._values(col + j, row + i) for j in (-1, 0, 1, 2)), col_fraction)
            for i in (-1, 0, 1, 2)
        ]
        return self.scaling_factor * _cubic_hermite(*along_rows, row_fraction)


class TranslationDeltaCostFunctor2D:
    """Scaled deviation of the pose's translation from a target translation."""

    def __init__(self, scaling_factor: float, target_translation: Sequence[float]) -> None:
        target = np.asarray(target_translation, dtype=np.float64)
        if target.shape != (2,):
            raise ValueError("target_translation must have two components")
        self.scaling_factor = float(scaling_factor)
        self.x = float(target[0])
        self.y = float(target[1])

    def __call__(self, pose: Sequence[float]) -> np.ndarray:
        p = _pose(pose)
        return np.array(
            [self.scaling_factor * (p[0] - self.x), self.scaling_factor * (p[1] - self.y)]
        )


class RotationDeltaCostFunctor2D:
    """Scaled deviation of the pose's yaw from a target angle."""

    def __init__(self, scaling_factor: float, target_angle: float) -> None:
        self.scaling_factor = float(scaling_factor)
        self.angle = float(target_angle)

    def __call__(self, pose: Sequence[float]) -> np.ndarray:
        p = _pose(pose)
        return np.array([self.scaling_factor * (p[2] - self.angle)])
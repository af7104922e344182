"""Predicts the current pose from the last estimate and odometry since then."""

from __future__ import annotations

import threading
from collections import deque
from typing import Sequence

import numpy as np


def _pose(values: Sequence[float]) -> np.ndarray:
    array = np.array(values, dtype=np.float64)
    if array.shape != (3,):
        raise ValueError("a pose must have three components")
    return array


class PoseExtrapolator:
    """Adds the odometry motion since the last estimated pose to that pose."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._poses: deque[np.ndarray] = deque()
        self._odometry: deque[np.ndarray] = deque()
        self._last_odometry_pose = np.zeros(3)

    @property
    def last_odometry_pose(self) -> np.ndarray:
        """Odometry reading at the time of the last added pose."""
        return self._last_odometry_pose.copy()

    def add_pose(self, pose: Sequence[float]) -> None:
        with self._lock:
            self._poses.append(_pose(pose))
            self._last_odometry_pose = self._odometry[-1].copy() if self._odometry else np.zeros(3)

    def add_odometry(self, odometry_pose: Sequence[float]) -> None:
        with self._lock:
            self._odometry.append(_pose(odometry_pose))

    def predict_pose(self) -> np.ndarray:
        with self._lock:
            if not self._poses or not self._odometry:
                raise LookupError("a pose and an odometry reading are needed to predict")
            return self._poses[-1] + (self._odometry[-1] - self._last_odometry_pose)
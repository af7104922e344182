"""Rejects poses too close to the last accepted one."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np


class MotionFilter:
    """Accepts a pose only when it moved or turned enough since the last accepted one."""

    def __init__(self) -> None:
        self._last_pose = np.zeros(3)
        self._total = 0

    def is_similar(self, pose: Sequence[float]) -> bool:
        translation = math.hypot(pose[0] - self._last_pose[0], pose[1] - self._last_pose[1])
        rotation = (pose[2] - self._last_pose[2]) ** 2
        if self._total > 0 and translation < 0.2 and rotation < 0.2:
            return True
        self._last_pose = np.array(pose, dtype=np.float64)
        self._total += 1
        return False
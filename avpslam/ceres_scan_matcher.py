"""Refines a pose by least-squares alignment of a point cloud with a grid."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from scipy.optimize import least_squares

from .cost_functions import OccupiedSpaceCostFunction2D, TranslationDeltaCostFunctor2D
from .gridmap import GridMap

_TRANSLATION_WEIGHT = 8.0
_MAX_NUM_ITERATIONS = 50


class CeresScanMatcher2D:
    """Aligns scans with an existing grid by non-linear least squares."""

    def match(
        self,
        target_translation: Sequence[float],
        initial_pose_estimate: Sequence[float],
        point_cloud,
        grid: GridMap,
    ):
        """Return (pose estimate, solver result) starting from ``initial_pose_estimate``."""
        target = np.asarray(target_translation, dtype=np.float64)
        if target.shape != (2,):
            raise ValueError("target_translation must have two components")
        initial = np.asarray(initial_pose_estimate, dtype=np.float64)
        if initial.shape != (3,):
            raise ValueError("initial_pose_estimate must have three components")
        cloud = np.asarray(point_cloud, dtype=np.float64).reshape(-1, 3)

        functors = []
        if len(cloud):
            functors.append(OccupiedSpaceCostFunction2D(1.0 / math.sqrt(len(cloud)), cloud, grid))
        functors.append(TranslationDeltaCostFunctor2D(_TRANSLATION_WEIGHT, target))

        def residuals(pose: np.ndarray) -> np.ndarray:
            return np.concatenate([functor(pose) for functor in functors])

        result = least_squares(residuals, initial, method="trf", max_nfev=_MAX_NUM_ITERATIONS)
        return result.x.copy(), result
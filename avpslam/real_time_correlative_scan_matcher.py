"""Exhaustive correlative scan matching of a point cloud against a grid."""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Sequence

import numpy as np

from .correlative_scan_matcher import (
    Candidate2D,
    SearchParameters,
    create_search_parameters,
    discretize_scans,
    generate_rotated_scans,
)
from .gridmap import GridMap
from .gridmap_image import _cost_image
from .probability_values import correspondence_cost_to_probability
from .transform import transform_point_cloud_by_pose

_LINEAR_SEARCH_WINDOW = 5.0
_ANGULAR_SEARCH_WINDOW = math.pi / 6
_TRANSLATION_DELTA_WEIGHT = 0.1
_ROTATION_DELTA_WEIGHT = 0.1


def _weight(x, y, orientation):
    return np.exp(
        -np.square(np.hypot(x, y) * _TRANSLATION_DELTA_WEIGHT + np.abs(orientation) * _ROTATION_DELTA_WEIGHT)
    )


def _indices(scan) -> np.ndarray:
    return np.asarray(scan, dtype=np.int64).reshape(-1, 2)


def compute_candidate_score(grid: GridMap, discrete_scan, x_index_offset: int, y_index_offset: int) -> float:
    """Mean occupancy probability of the scan's cells shifted by the offsets."""
    indices = _indices(discrete_scan)
    if len(indices) == 0:
        return math.nan
    total = sum(
        correspondence_cost_to_probability(
            grid.get_correspondence_cost((int(a) + x_index_offset, int(b) + y_index_offset))
        )
        for a, b in indices
    )
    return total / len(indices)


class _ProbabilityLookup:
    """Occupancy probabilities of a grid for vectorised lookups."""

    def __init__(self, grid: GridMap) -> None:
        self.image = correspondence_cost_to_probability(_cost_image(grid).astype(np.float64))
        self.outside = correspondence_cost_to_probability(float(grid.max_correspondence_cost))

    def values(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        nx, ny = self.image.shape
        inside = (a >= 0) & (a < nx) & (b >= 0) & (b < ny)
        result = np.full(a.shape, self.outside)
        result[inside] = self.image[a[inside], b[inside]]
        return result

    def window_sums(self, scan: np.ndarray, a0: int, na: int, b0: int, nb: int) -> np.ndarray:
        """Sum over points of the probabilities under every offset in the window."""
        nx, ny = self.image.shape
        delta = self.image - self.outside
        sums = np.full((na, nb), self.outside * len(scan))
        for a, b in scan:
            start_a, start_b = int(a) + a0, int(b) + b0
            lo_a, hi_a = max(start_a, 0), min(start_a + na, nx)
            lo_b, hi_b = max(start_b, 0), min(start_b + nb, ny)
            if lo_a < hi_a and lo_b < hi_b:
                sums[lo_a - start_a : hi_a - start_a, lo_b - start_b : hi_b - start_b] += delta[
                    lo_a:hi_a, lo_b:hi_b
                ]
        return sums


class RealTimeCorrelativeScanMatcher:
    """Scores every candidate pose in a search window and keeps the best."""

    def match(self, predict_pose: Sequence[float], semantics_in_tracking_frame, grid: GridMap):
        """Return (score, estimated pose) of the best candidate around ``predict_pose``."""
        pose = np.asarray(predict_pose, dtype=np.float64)
        if pose.shape != (3,):
            raise ValueError("predict_pose must have three components")
        cloud = np.asarray(semantics_in_tracking_frame, dtype=np.float64).reshape(-1, 3)
        if len(cloud) == 0:
            raise ValueError("cannot match an empty point cloud")
        rotated = transform_point_cloud_by_pose(cloud, (0.0, 0.0, pose[2]))
        search_parameters = create_search_parameters(
            _LINEAR_SEARCH_WINDOW, _ANGULAR_SEARCH_WINDOW, grid.limits.resolution
        )
        rotated_scans = generate_rotated_scans(rotated, search_parameters)
        discrete_scans = discretize_scans(grid.limits, rotated_scans, (pose[0], pose[1]))
        best = self._best_exhaustive_candidate(grid, discrete_scans, search_parameters)
        estimate = pose + np.array([best.x, best.y, best.orientation])
        return best.score, estimate

    def _best_exhaustive_candidate(
        self, grid: GridMap, discrete_scans: Sequence, search_parameters: SearchParameters
    ) -> Candidate2D:
        lookup = _ProbabilityLookup(grid)
        resolution = search_parameters.resolution
        best: Candidate2D | None = None
        for scan_index in range(search_parameters.num_scans):
            bounds = search_parameters.linear_bounds[scan_index]
            xs = np.arange(bounds.min_x, bounds.max_x + 1)
            ys = np.arange(bounds.min_y, bounds.max_y + 1)
            if len(xs) == 0 or len(ys) == 0:
                continue
            scan = _indices(discrete_scans[scan_index])
            scores = lookup.window_sums(scan, bounds.min_x, len(xs), bounds.min_y, len(ys)) / len(scan)
            orientation = (
                scan_index - search_parameters.num_angular_perturbations
            ) * search_parameters.angular_perturbation_step_size
            scores = scores * _weight(-ys[None, :] * resolution, -xs[:, None] * resolution, orientation)
            flat = int(np.argmax(scores))
            score = float(scores.flat[flat])
            if best is None or score > best.score:
                i, j = divmod(flat, len(ys))
                best = Candidate2D(scan_index, int(xs[i]), int(ys[j]), search_parameters)
                best.score = score
        if best is None:
            raise ValueError("the search window holds no candidates")
        return best

    def score_candidates(
        self,
        grid: GridMap,
        discrete_scans: Sequence,
        search_parameters: SearchParameters,
        candidates: Sequence[Candidate2D],
    ) -> None:
        """Set the weighted score of every candidate in place."""
        lookup = _ProbabilityLookup(grid)
        groups: dict[int, list[Candidate2D]] = defaultdict(list)
        for candidate in candidates:
            groups[candidate.scan_index].append(candidate)
        for scan_index, group in groups.items():
            scan = _indices(discrete_scans[scan_index])
            if len(scan) == 0:
                scores = np.full(len(group), math.nan)
            else:
                offsets = np.array([(c.x_index_offset, c.y_index_offset) for c in group], dtype=np.int64)
                values = lookup.values(
                    scan[None, :, 0] + offsets[:, None, 0],
                    scan[None, :, 1] + offsets[:, None, 1],
                )
                scores = values.mean(axis=1)
            for candidate, score in zip(group, scores):
                candidate.score = float(score * _weight(candidate.x, candidate.y, candidate.orientation))

    def generate_exhaustive_search_candidates(self, search_parameters: SearchParameters) -> list[Candidate2D]:
        """Every offset of every rotated scan, scan by scan, x outer and y inner."""
        return [
            Candidate2D(scan_index, x_offset, y_offset, search_parameters)
            for scan_index, bounds in enumerate(search_parameters.linear_bounds[: search_parameters.num_scans])
            for x_offset in range(bounds.min_x, bounds.max_x + 1)
            for y_offset in range(bounds.min_y, bounds.max_y + 1)
        ]
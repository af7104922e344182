"""Search windows, rotated scans and candidate poses for correlative scan matching.

A discrete scan is an ``(N, 2)`` integer array of cell indices as returned by
:meth:`MapLimits.get_cell_index`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .gridmap import CellLimits, MapLimits
from .transform import transform_point_cloud_by_pose

# The scan range is fixed rather than derived from the point cloud.
_MAX_SCAN_RANGE = np.float32(14.87)
_SAFETY_MARGIN = 1.0 - 1e-3


def _as_indices(scan) -> np.ndarray:
    return np.asarray(scan, dtype=np.int64).reshape(-1, 2)


@dataclass
class LinearBounds:
    """Linear search window in cell offsets; bounds are inclusive."""

    min_x: int
    max_x: int
    min_y: int
    max_y: int


def _symmetric_bounds(num_scans: int, num_linear_perturbations: int) -> list[LinearBounds]:
    n = num_linear_perturbations
    return [LinearBounds(-n, n, -n, n) for _ in range(num_scans)]


@dataclass
class SearchParameters:
    """Angular and linear extent of a search, with one linear window per rotated scan."""

    num_angular_perturbations: int
    angular_perturbation_step_size: float
    resolution: float
    num_scans: int
    linear_bounds: list[LinearBounds]

    def shrink_to_fit(self, scans: Sequence, cell_limits: CellLimits) -> None:
        """Tighten each window so that translated scans stay within the grid."""
        if len(scans) < self.num_scans:
            raise ValueError(f"expected {self.num_scans} scans, got {len(scans)}")
        far_corner = np.array([cell_limits.num_x_cells - 1, cell_limits.num_y_cells - 1], dtype=np.int64)
        for bounds, scan in zip(self.linear_bounds, scans):
            indices = _as_indices(scan)
            min_bound = np.zeros(2, dtype=np.int64)
            max_bound = np.zeros(2, dtype=np.int64)
            if len(indices):
                min_bound = np.minimum(min_bound, (-indices).min(axis=0))
                max_bound = np.maximum(max_bound, (far_corner - indices).max(axis=0))
            bounds.min_x = max(bounds.min_x, int(min_bound[0]))
            bounds.max_x = min(bounds.max_x, int(max_bound[0]))
            bounds.min_y = max(bounds.min_y, int(min_bound[1]))
            bounds.max_y = min(bounds.max_y, int(max_bound[1]))


def create_search_parameters(
    linear_search_window: float, angular_search_window: float, resolution: float
) -> SearchParameters:
    """Search parameters covering the given linear (metres) and angular (radians) windows."""
    if resolution <= 0:
        raise ValueError("resolution must be positive")
    range_squared = float(_MAX_SCAN_RANGE * _MAX_SCAN_RANGE)
    step = _SAFETY_MARGIN * math.acos(1.0 - resolution * resolution / (2.0 * range_squared))
    num_angular = math.ceil(angular_search_window / step)
    num_scans = 2 * num_angular + 1
    num_linear = math.ceil(linear_search_window / resolution)
    return SearchParameters(
        num_angular_perturbations=num_angular,
        angular_perturbation_step_size=step,
        resolution=resolution,
        num_scans=num_scans,
        linear_bounds=_symmetric_bounds(num_scans, num_linear),
    )


def search_parameters_for_testing(
    num_linear_perturbations: int,
    num_angular_perturbations: int,
    angular_perturbation_step_size: float,
    resolution: float,
) -> SearchParameters:
    """Search parameters given directly in cells and angular steps."""
    num_scans = 2 * num_angular_perturbations + 1
    return SearchParameters(
        num_angular_perturbations=num_angular_perturbations,
        angular_perturbation_step_size=angular_perturbation_step_size,
        resolution=resolution,
        num_scans=num_scans,
        linear_bounds=_symmetric_bounds(num_scans, num_linear_perturbations),
    )


def generate_rotated_scans(point_cloud, search_parameters: SearchParameters) -> list[np.ndarray]:
    """The point cloud rotated about z by every angle of the search."""
    step = search_parameters.angular_perturbation_step_size
    delta_theta = -search_parameters.num_angular_perturbations * step
    scans = []
    for _ in range(search_parameters.num_scans):
        scans.append(transform_point_cloud_by_pose(point_cloud, (0.0, 0.0, delta_theta)))
        delta_theta += step
    return scans


def discretize_scans(map_limits: MapLimits, scans: Sequence, initial_translation: Sequence[float]) -> list[np.ndarray]:
    """Translate every scan and convert its points to cell indices."""
    translation = np.asarray(initial_translation, dtype=np.float32)
    if translation.shape != (2,):
        raise ValueError("initial_translation must have two components")
    discrete_scans = []
    for scan in scans:
        points = np.asarray(scan, dtype=np.float64).reshape(-1, 3)
        translated = points[:, :2].astype(np.float32) + translation
        indices = [map_limits.get_cell_index((float(x), float(y))) for x, y in translated]
        discrete_scans.append(np.array(indices, dtype=np.int64).reshape(-1, 2))
    return discrete_scans


class Candidate2D:
    """A candidate pose offset, ordered by score (higher is better)."""

    __slots__ = ("scan_index", "x_index_offset", "y_index_offset", "x", "y", "orientation", "score")

    def __init__(
        self,
        scan_index: int,
        x_index_offset: int,
        y_index_offset: int,
        search_parameters: SearchParameters,
    ) -> None:
        self.scan_index = scan_index
        self.x_index_offset = x_index_offset
        self.y_index_offset = y_index_offset
        self.x = -y_index_offset * search_parameters.resolution
        self.y = -x_index_offset * search_parameters.resolution
        self.orientation = (
            scan_index - search_parameters.num_angular_perturbations
        ) * search_parameters.angular_perturbation_step_size
        self.score = 0.0

    def __lt__(self, other: "Candidate2D") -> bool:
        return self.score < other.score

    def __gt__(self, other: "Candidate2D") -> bool:
        return self.score > other.score

    def __repr__(self) -> str:
        return (
            f"Candidate2D(scan_index={self.scan_index}, x_index_offset={self.x_index_offset}, "
            f"y_index_offset={self.y_index_offset}, x={self.x}, y={self.y}, "
            f"orientation={self.orientation}, score={self.score})"
        )
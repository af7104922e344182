"""Branch-and-bound correlative scan matching over precomputed multi-resolution grids."""

from __future__ import annotations

import copy
import math
from collections import defaultdict, deque
from typing import Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .correlative_scan_matcher import (
    Candidate2D,
    SearchParameters,
    create_search_parameters,
    discretize_scans,
    generate_rotated_scans,
)
from .gridmap import CellLimits, GridMap, MapLimits
from .gridmap_image import _cost_image
from .transform import transform_point_cloud_by_pose

NUM_PRECOMPUTATION_GRIDS = 7
_LINEAR_SEARCH_WINDOW = 7.0
_ANGULAR_SEARCH_WINDOW = math.pi / 6


def _indices(scan) -> np.ndarray:
    return np.asarray(scan, dtype=np.int64).reshape(-1, 2)


def _window_max(values: np.ndarray, width: int, axis: int) -> np.ndarray:
    """Maximum over [i, i + width) clipped to the valid range, for i in [-width + 1, n)."""
    pad = [(0, 0), (0, 0)]
    pad[axis] = (width - 1, width - 1)
    padded = np.pad(values, pad, constant_values=-np.inf)
    return sliding_window_view(padded, width, axis=axis).max(axis=-1)


class SlidingWindowMaximum:
    """Values that can be added and removed in order, with their maximum in amortised O(1)."""

    def __init__(self) -> None:
        self._non_ascending_maxima: deque[float] = deque()

    def add_value(self, value: float) -> None:
        while self._non_ascending_maxima and value > self._non_ascending_maxima[-1]:
            self._non_ascending_maxima.pop()
        self._non_ascending_maxima.append(value)

    def remove_value(self, value: float) -> None:
        """Remove the oldest value, which must equal ``value``."""
        if not self._non_ascending_maxima:
            raise LookupError("the window is empty")
        if value == self._non_ascending_maxima[0]:
            self._non_ascending_maxima.popleft()

    def get_maximum(self) -> float:
        if not self._non_ascending_maxima:
            raise LookupError("the window is empty")
        return self._non_ascending_maxima[0]


class PrecomputationGrid2D:
    """Grid whose cell (x, y) holds the best occupancy of the width x width block starting there."""

    def __init__(self, grid: GridMap, limits: CellLimits, width: int) -> None:
        if width < 1:
            raise ValueError("width must be at least 1")
        self._width = width
        self._offset = -width + 1
        self._wide_limits = CellLimits(limits.num_x_cells + width - 1, limits.num_y_cells + width - 1)
        self._min_score = np.float32(1.0) - np.float32(grid.max_correspondence_cost)
        self._max_score = np.float32(1.0) - np.float32(grid.min_correspondence_cost)

        nx, ny = limits.num_x_cells, limits.num_y_cells
        shape = (self._wide_limits.num_x_cells, self._wide_limits.num_y_cells)
        if nx <= 0 or ny <= 0:
            self._cells = np.zeros((max(shape[0], 0), max(shape[1], 0)), dtype=np.uint8)
            return

        costs = np.full((nx, ny), np.float32(grid.max_correspondence_cost), dtype=np.float32)
        image = _cost_image(grid)
        gx, gy = min(nx, image.shape[0]), min(ny, image.shape[1])
        costs[:gx, :gy] = image[:gx, :gy]
        occupancy = np.float32(1.0) - np.abs(costs)

        intermediate = _window_max(occupancy, width, axis=0)
        maxima = _window_max(intermediate, width, axis=1)
        self._cells = self._to_cell_values(maxima)

    @property
    def width(self) -> int:
        return self._width

    @property
    def wide_limits(self) -> CellLimits:
        return self._wide_limits

    @property
    def min_score(self) -> float:
        return float(self._min_score)

    @property
    def max_score(self) -> float:
        return float(self._max_score)

    def _to_cell_values(self, probability) -> np.ndarray:
        p = np.asarray(probability, dtype=np.float32)
        scale = np.float32(255.0) / (self._max_score - self._min_score)
        scaled = ((p - self._min_score) * scale).astype(np.float64)
        rounded = np.sign(scaled) * np.floor(np.abs(scaled) + 0.5)
        return np.clip(rounded, 0, 255).astype(np.uint8)

    def compute_cell_value(self, probability: float) -> int:
        """Map a probability in [min_score, max_score] to [0, 255]."""
        return int(self._to_cell_values(probability))

    def get_value(self, xy_index: Sequence[int]) -> int:
        """Value in [0, 255] for a cell index of the original grid; 0 outside."""
        lx = int(xy_index[0]) - self._offset
        ly = int(xy_index[1]) - self._offset
        if not (0 <= lx < self._wide_limits.num_x_cells and 0 <= ly < self._wide_limits.num_y_cells):
            return 0
        return int(self._cells[lx, ly])

    def _values(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        lx = xs - self._offset
        ly = ys - self._offset
        inside = (
            (lx >= 0)
            & (lx < self._wide_limits.num_x_cells)
            & (ly >= 0)
            & (ly < self._wide_limits.num_y_cells)
        )
        result = np.zeros(lx.shape, dtype=np.int64)
        result[inside] = self._cells[lx[inside], ly[inside]]
        return result

    def to_score(self, value: float) -> float:
        """Map a value in [0, 255] to [min_score, max_score]."""
        return self.min_score + value * ((self.max_score - self.min_score) / 255.0)


class PrecomputationGridStack2D:
    """Precomputation grids of widths 1, 2, 4, ..., 64."""

    def __init__(self, grid: GridMap) -> None:
        limits = grid.limits.cell_limits
        self._grids = [
            PrecomputationGrid2D(grid, limits, 1 << i) for i in range(NUM_PRECOMPUTATION_GRIDS)
        ]

    def get(self, index: int) -> PrecomputationGrid2D:
        if not 0 <= index < len(self._grids):
            raise IndexError(f"no precomputation grid at depth {index}")
        return self._grids[index]

    def max_depth(self) -> int:
        return len(self._grids) - 1


class FastCorrelativeScanMatcher2D:
    """Real-time correlative scan matching accelerated by branch and bound."""

    def __init__(self, grid: GridMap) -> None:
        self._limits: MapLimits = grid.limits
        self._stack = PrecomputationGridStack2D(grid)

    @property
    def precomputation_grid_stack(self) -> PrecomputationGridStack2D:
        return self._stack

    def match(self, initial_pose_estimate: Sequence[float], point_cloud, min_score: float):
        """Return (score, pose) if a score above ``min_score`` is found, otherwise None."""
        search_parameters = create_search_parameters(
            _LINEAR_SEARCH_WINDOW, _ANGULAR_SEARCH_WINDOW, self._limits.resolution
        )
        return self.match_with_search_parameters(
            search_parameters, initial_pose_estimate, point_cloud, min_score
        )

    def match_with_search_parameters(
        self,
        search_parameters: SearchParameters,
        initial_pose_estimate: Sequence[float],
        point_cloud,
        min_score: float,
    ):
        """Like :meth:`match` with explicit search parameters, which are left unchanged."""
        pose = np.asarray(initial_pose_estimate, dtype=np.float64)
        if pose.shape != (3,):
            raise ValueError("initial_pose_estimate must have three components")
        cloud = np.asarray(point_cloud, dtype=np.float64).reshape(-1, 3)
        if len(cloud) == 0:
            raise ValueError("cannot match an empty point cloud")
        search_parameters = copy.deepcopy(search_parameters)

        rotated_point_cloud = transform_point_cloud_by_pose(cloud, pose)
        rotated_scans = generate_rotated_scans(rotated_point_cloud, search_parameters)
        discrete_scans = discretize_scans(self._limits, rotated_scans, (pose[0], pose[1]))
        search_parameters.shrink_to_fit(discrete_scans, self._limits.cell_limits)

        lowest_resolution_candidates = self.compute_lowest_resolution_candidates(
            discrete_scans, search_parameters
        )
        best = self.branch_and_bound(
            discrete_scans,
            search_parameters,
            lowest_resolution_candidates,
            self._stack.max_depth(),
            min_score,
        )
        if best.score > min_score:
            return best.score, pose + np.array([best.x, best.y, best.orientation])
        return None

    def compute_lowest_resolution_candidates(
        self, discrete_scans: Sequence, search_parameters: SearchParameters
    ) -> list[Candidate2D]:
        """Scored candidates on the coarsest grid, best first."""
        candidates = self.generate_lowest_resolution_candidates(search_parameters)
        self.score_candidates(
            self._stack.get(self._stack.max_depth()), discrete_scans, search_parameters, candidates
        )
        return candidates

    def generate_lowest_resolution_candidates(self, search_parameters: SearchParameters) -> list[Candidate2D]:
        """Candidates spaced by the coarsest grid's width across every linear window."""
        step = 1 << self._stack.max_depth()
        return [
            Candidate2D(scan_index, x_offset, y_offset, search_parameters)
            for scan_index in range(search_parameters.num_scans)
            for x_offset in range(
                search_parameters.linear_bounds[scan_index].min_x,
                search_parameters.linear_bounds[scan_index].max_x + 1,
                step,
            )
            for y_offset in range(
                search_parameters.linear_bounds[scan_index].min_y,
                search_parameters.linear_bounds[scan_index].max_y + 1,
                step,
            )
        ]

    def score_candidates(
        self,
        precomputation_grid: PrecomputationGrid2D,
        discrete_scans: Sequence,
        search_parameters: SearchParameters,
        candidates: list[Candidate2D],
    ) -> None:
        """Score the candidates on ``precomputation_grid`` and sort them in place, best first."""
        groups: dict[int, list[Candidate2D]] = defaultdict(list)
        for candidate in candidates:
            groups[candidate.scan_index].append(candidate)
        for scan_index, group in groups.items():
            scan = _indices(discrete_scans[scan_index])
            if len(scan) == 0:
                for candidate in group:
                    candidate.score = math.nan
                continue
            offsets = np.array([(c.x_index_offset, c.y_index_offset) for c in group], dtype=np.int64)
            sums = precomputation_grid._values(
                scan[None, :, 0] + offsets[:, None, 0],
                scan[None, :, 1] + offsets[:, None, 1],
            ).sum(axis=1)
            for candidate, total in zip(group, sums):
                candidate.score = precomputation_grid.to_score(float(total) / len(scan))
        candidates.sort(key=lambda c: c.score, reverse=True)

    def branch_and_bound(
        self,
        discrete_scans: Sequence,
        search_parameters: SearchParameters,
        candidates: Sequence[Candidate2D],
        candidate_depth: int,
        min_score: float,
    ) -> Candidate2D:
        """Best candidate found below ``candidates``; its score is ``min_score`` if none beat it."""
        if candidate_depth == 0:
            if not candidates:
                raise ValueError("no candidates at the finest level")
            return candidates[0]

        best = Candidate2D(0, 0, 0, search_parameters)
        best.score = min_score
        half_width = 1 << (candidate_depth - 1)
        finer_grid = self._stack.get(candidate_depth - 1)

        for candidate in candidates:
            if candidate.score <= min_score:
                break
            bounds = search_parameters.linear_bounds[candidate.scan_index]
            higher_resolution_candidates: list[Candidate2D] = []
            for x_offset in (0, half_width):
                if candidate.x_index_offset + x_offset > bounds.max_x:
                    break
                for y_offset in (0, half_width):
                    if candidate.y_index_offset + y_offset > bounds.max_y:
                        break
                    higher_resolution_candidates.append(
                        Candidate2D(
                            candidate.scan_index,
                            candidate.x_index_offset + x_offset,
                            candidate.y_index_offset + y_offset,
                            search_parameters,
                        )
                    )
            self.score_candidates(finer_grid, discrete_scans, search_parameters, higher_resolution_candidates)
            result = self.branch_and_bound(
                discrete_scans,
                search_parameters,
                higher_resolution_candidates,
                candidate_depth - 1,
                best.score,
            )
            if best < result:
                best = result
        return best
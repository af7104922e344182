"""Insertion of semantic points as hits into a probability grid."""

from __future__ import annotations

import numpy as np

from .gridmap import CellLimits, GridMap, MapLimits
from .probability_values import compute_lookup_table_to_apply_correspondence_cost_odds, odds

SUBPIXEL_SCALE = 1000
_PADDING = 1e-6


def _points(range_data) -> np.ndarray:
    return np.asarray(range_data, dtype=np.float64).reshape(-1, 3)


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // b
    return q if a >= 0 else -q


def grow_as_needed(range_data, grid: GridMap) -> None:
    """Grow the grid so that the bounding box of the points fits inside it."""
    points = _points(range_data)
    if len(points) == 0:
        return
    low = points[:, :2].min(axis=0) - _PADDING
    high = points[:, :2].max(axis=0) + _PADDING
    grid.grow_limits(tuple(low))
    grid.grow_limits(tuple(high))


def cast_rays(range_data, hit_table, miss_table, grid: GridMap) -> None:
    """Apply the hit table to the cell of every point; cells stay marked until finished."""
    grow_as_needed(range_data, grid)
    limits = grid.limits
    superscaled = MapLimits(
        limits.resolution / SUBPIXEL_SCALE,
        limits.max,
        CellLimits(
            limits.cell_limits.num_x_cells * SUBPIXEL_SCALE,
            limits.cell_limits.num_y_cells * SUBPIXEL_SCALE,
        ),
    )
    for point in _points(range_data):
        x, y = superscaled.get_cell_index(point[:2])
        grid.apply_lookup_table((_trunc_div(x, SUBPIXEL_SCALE), _trunc_div(y, SUBPIXEL_SCALE)), hit_table)


class ProbabilityGridRangeDataInserter:
    """Inserts point clouds into a grid with fixed hit and miss updates."""

    def __init__(self) -> None:
        self.hit_table = compute_lookup_table_to_apply_correspondence_cost_odds(odds(0.55))
        self.miss_table = compute_lookup_table_to_apply_correspondence_cost_odds(odds(0.49))

    def insert(self, range_data, grid: GridMap) -> None:
        cast_rays(range_data, self.hit_table, self.miss_table, grid)
        grid.finish_update()
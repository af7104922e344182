"""Rendering of a grid as an 8-bit grey-scale image."""

from __future__ import annotations

import numpy as np

from .gridmap import GridMap


def _cost_image(grid: GridMap) -> np.ndarray:
    """Correspondence cost of every cell, indexed ``[index0, index1]``."""
    cell_limits = grid.limits.cell_limits
    nx, ny = cell_limits.num_x_cells, cell_limits.num_y_cells
    cells = grid.correspondence_cost_cells
    if cells.size == 0:
        return np.zeros((nx, ny), dtype=np.float32)
    _, first, inverse = np.unique(cells, return_index=True, return_inverse=True)
    costs = np.array(
        [grid.get_correspondence_cost((int(flat) % nx, int(flat) // nx)) for flat in first],
        dtype=np.float32,
    )
    return costs[inverse.reshape(-1)].reshape(ny, nx).T


def grid_map_to_image(grid: GridMap) -> np.ndarray:
    """Occupancy as a ``uint8`` image of shape (num_x_cells, num_y_cells); 255 is most occupied."""
    occupancy = (np.float32(1.0) - _cost_image(grid)).astype(np.float64)
    low = float(grid.min_correspondence_cost)
    high = float(grid.max_correspondence_cost)
    scaled = (occupancy - low) / (high - low) * 255.0
    return np.clip(scaled, 0.0, 255.0).astype(np.uint8)
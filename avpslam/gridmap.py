"""Probability grid storing correspondence costs as 16-bit cell values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .mathutil import round_to_int
from .probability_values import (
    MAX_CORRESPONDENCE_COST,
    MIN_CORRESPONDENCE_COST,
    UNKNOWN_CORRESPONDENCE_VALUE,
    UPDATE_MARKER,
)
from .value_conversion_tables import ValueConversionTables


@dataclass(frozen=True)
class CellLimits:
    """Number of cells along x and y."""

    num_x_cells: int = 0
    num_y_cells: int = 0


@dataclass(frozen=True)
class MapLimits:
    """Resolution, maximum corner and size of a grid."""

    resolution: float
    max: tuple[float, float]
    cell_limits: CellLimits

    def __post_init__(self) -> None:
        object.__setattr__(self, "max", (float(self.max[0]), float(self.max[1])))

    def get_cell_index(self, point: Sequence[float]) -> tuple[int, int]:
        """Cell index of a world point; may lie outside the grid."""
        return (
            round_to_int((self.max[1] - point[1]) / self.resolution - 0.5),
            round_to_int((self.max[0] - point[0]) / self.resolution - 0.5),
        )

    def get_cell_center(self, cell_index: Sequence[int]) -> tuple[float, float]:
        """World coordinates of a cell's centre."""
        return (
            self.max[0] - self.resolution * (cell_index[1] + 0.5),
            self.max[1] - self.resolution * (cell_index[0] + 0.5),
        )

    def contains(self, cell_index: Sequence[int]) -> bool:
        """Whether the cell index lies inside the grid."""
        x, y = cell_index
        return 0 <= x < self.cell_limits.num_x_cells and 0 <= y < self.cell_limits.num_y_cells


class GridMap:
    """Grid of correspondence cost values that grows to fit what is inserted."""

    def __init__(self, limits: MapLimits, conversion_tables: ValueConversionTables) -> None:
        self._limits = limits
        self._conversion_tables = conversion_tables
        size = limits.cell_limits.num_x_cells * limits.cell_limits.num_y_cells
        self._cells = np.full(size, UNKNOWN_CORRESPONDENCE_VALUE, dtype=np.uint16)
        self.min_correspondence_cost = MIN_CORRESPONDENCE_COST
        self.max_correspondence_cost = MAX_CORRESPONDENCE_COST
        self._update_indices: list[int] = []
        self._known_cells_box: tuple[int, int, int, int] | None = None
        self._value_to_correspondence_cost = conversion_tables.get_conversion_table(
            self.max_correspondence_cost,
            self.min_correspondence_cost,
            self.max_correspondence_cost,
        )

    @property
    def limits(self) -> MapLimits:
        return self._limits

    @property
    def correspondence_cost_cells(self) -> np.ndarray:
        """Read-only view of the raw cell values, row-major with x fastest."""
        view = self._cells.view()
        view.flags.writeable = False
        return view

    @property
    def update_indices(self) -> tuple[int, ...]:
        return tuple(self._update_indices)

    @property
    def known_cells_box(self) -> tuple[int, int, int, int] | None:
        """(min_x, min_y, max_x, max_y) of updated cells, or None if none."""
        return self._known_cells_box

    def to_flat_index(self, cell_index: Sequence[int]) -> int:
        return self._limits.cell_limits.num_x_cells * cell_index[1] + cell_index[0]

    def grow_limits(self, point: Sequence[float]) -> None:
        """Double the grid around its centre until it contains ``point``."""
        while not self._limits.contains(self._limits.get_cell_index(point)):
            old = self._limits
            nx, ny = old.cell_limits.num_x_cells, old.cell_limits.num_y_cells
            x_offset, y_offset = nx // 2, ny // 2
            new_limits = MapLimits(
                old.resolution,
                (old.max[0] + old.resolution * y_offset, old.max[1] + old.resolution * x_offset),
                CellLimits(2 * nx, 2 * ny),
            )
            new_cells = np.full(4 * nx * ny, UNKNOWN_CORRESPONDENCE_VALUE, dtype=np.uint16)
            grid = new_cells.reshape(2 * ny, 2 * nx)
            grid[y_offset : y_offset + ny, x_offset : x_offset + nx] = self._cells.reshape(ny, nx)
            self._cells = new_cells
            self._limits = new_limits
            if self._known_cells_box is not None:
                min_x, min_y, max_x, max_y = self._known_cells_box
                self._known_cells_box = (
                    min_x + x_offset,
                    min_y + y_offset,
                    max_x + x_offset,
                    max_y + y_offset,
                )

    def apply_lookup_table(self, cell_index: Sequence[int], table) -> bool:
        """Update a cell through ``table``; False if it was already updated."""
        if not self._limits.contains(cell_index):
            raise IndexError(f"cell {tuple(cell_index)} outside the grid")
        flat = self.to_flat_index(cell_index)
        current = int(self._cells[flat])
        if current >= UPDATE_MARKER:
            return False
        self._update_indices.append(flat)
        self._cells[flat] = table[current]
        x, y = int(cell_index[0]), int(cell_index[1])
        if self._known_cells_box is None:
            self._known_cells_box = (x, y, x, y)
        else:
            min_x, min_y, max_x, max_y = self._known_cells_box
            self._known_cells_box = (min(min_x, x), min(min_y, y), max(max_x, x), max(max_y, y))
        return True

    def finish_update(self) -> None:
        """Clear the update marker of every cell updated since the last call."""
        while self._update_indices:
            self._cells[self._update_indices.pop()] -= UPDATE_MARKER

    def get_correspondence_cost(self, cell_index: Sequence[int]) -> float:
        """Correspondence cost of a cell; the maximum cost outside the grid."""
        if not self._limits.contains(cell_index):
            return self.max_correspondence_cost
        return float(self._value_to_correspondence_cost[self._cells[self.to_flat_index(cell_index)]])
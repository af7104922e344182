"""Cached tables converting 16-bit cell values to bounded floats."""

from __future__ import annotations

import numpy as np

from .probability_values import UPDATE_MARKER

_NUM_VALUES = 1 << 16
_VALUE_SPAN = 32766.0


def precompute_value_to_bounded_float(
    unknown_value: int, unknown_result: float, lower_bound: float, upper_bound: float
) -> np.ndarray:
    """Build a read-only table of 65536 floats; the update marker bit is ignored."""
    values = np.arange(_NUM_VALUES, dtype=np.int64) & ~UPDATE_MARKER
    scale = (upper_bound - lower_bound) / _VALUE_SPAN
    table = values * scale + (lower_bound - scale)
    table[values == unknown_value] = unknown_result
    table = table.astype(np.float32)
    table.flags.writeable = False
    return table


class ValueConversionTables:
    """Builds conversion tables on demand and reuses them per set of bounds."""

    def __init__(self) -> None:
        self._bounds_to_lookup_table: dict[tuple[float, float, float], np.ndarray] = {}

    def get_conversion_table(self, unknown_result: float, lower_bound: float, upper_bound: float) -> np.ndarray:
        """Return the table for these bounds, building it on first use."""
        bounds = (float(unknown_result), float(lower_bound), float(upper_bound))
        table = self._bounds_to_lookup_table.get(bounds)
        if table is None:
            table = precompute_value_to_bounded_float(0, *bounds)
            self._bounds_to_lookup_table[bounds] = table
        return table
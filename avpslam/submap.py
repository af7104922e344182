"""Submaps and the pair of submaps currently receiving data."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from .gridmap import CellLimits, GridMap, MapLimits
from .range_data_inserter import ProbabilityGridRangeDataInserter
from .value_conversion_tables import ValueConversionTables

MAX_SEMANTIC_DATA_IN_SUBMAP = 20
_INITIAL_SUBMAP_SIZE = 100
_RESOLUTION = float(np.float32(0.05))


class Submap:
    """A local grid together with the semantic points inserted into it."""

    def __init__(
        self,
        local_pose: Sequence[float],
        grid: GridMap,
        conversion_tables: ValueConversionTables | None = None,
    ) -> None:
        pose = np.array(local_pose, dtype=np.float64)
        if pose.shape != (3,):
            raise ValueError("local_pose must have three components")
        pose.flags.writeable = False
        self._local_pose = pose
        self._grid = grid
        self.conversion_tables = conversion_tables
        self.data = np.zeros((0, 3))
        self.num_accumulated_semantic_data = 0
        self.insertion_finished = False

    @property
    def local_pose(self) -> np.ndarray:
        return self._local_pose

    @property
    def grid(self) -> GridMap:
        return self._grid

    def insert_semantic_data(self, semantic_data, inserter: ProbabilityGridRangeDataInserter) -> None:
        cloud = np.asarray(semantic_data, dtype=np.float64).reshape(-1, 3)
        inserter.insert(cloud, self._grid)
        self.data = np.vstack([self.data, cloud])
        self.num_accumulated_semantic_data += 1


class ActiveSubmaps:
    """At most two overlapping submaps that receive every new scan."""

    def __init__(self) -> None:
        self._submaps: list[Submap] = []
        self._conversion_tables = ValueConversionTables()
        self._range_data_inserter = ProbabilityGridRangeDataInserter()

    def insert_semantic_data(self, semantic_data, pose_estimated: Sequence[float]) -> list[Submap]:
        """Insert a scan into the active submaps, starting a new one when due."""
        if (
            not self._submaps
            or self._submaps[-1].num_accumulated_semantic_data == MAX_SEMANTIC_DATA_IN_SUBMAP
        ):
            self.add_submap(pose_estimated)
        for submap in self._submaps:
            submap.insert_semantic_data(semantic_data, self._range_data_inserter)
        if self._submaps[0].num_accumulated_semantic_data == 2 * MAX_SEMANTIC_DATA_IN_SUBMAP:
            self._submaps[0].insertion_finished = True
        return self.submaps()

    def add_submap(self, origin: Sequence[float]) -> None:
        if len(self._submaps) >= 2:
            self._submaps.pop(0)
        self._submaps.append(Submap(origin, self.create_grid(origin), self._conversion_tables))

    def submaps(self) -> list[Submap]:
        return list(self._submaps)

    def create_grid(self, origin: Sequence[float]) -> GridMap:
        """A square grid centred on the origin's position."""
        half = 0.5 * _INITIAL_SUBMAP_SIZE * _RESOLUTION
        limits = MapLimits(
            _RESOLUTION,
            (float(origin[0]) + half, float(origin[1]) + half),
            CellLimits(_INITIAL_SUBMAP_SIZE, _INITIAL_SUBMAP_SIZE),
        )
        return GridMap(limits, self._conversion_tables)
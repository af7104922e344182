"""Sparse pose adjustment of submap and node poses."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

import numpy as np
from scipy.optimize import least_squares
from scipy.sparse import lil_matrix

from .constraint import Constraint, normalize
from .spa_cost_function import SpaCostFunction2D

_MAX_NUM_ITERATIONS = 50
_DENSE_LIMIT = 300


def _pose_array(pose: Sequence[float]) -> np.ndarray:
    array = np.array(pose, dtype=np.float64)
    if array.shape != (3,):
        raise ValueError("a pose must have three components")
    return array


def from_pose(pose: Sequence[float]) -> np.ndarray:
    """Parameter values of a pose, with its angle normalised."""
    p = _pose_array(pose)
    return np.array([p[0], p[1], float(normalize(float(p[2])))])


def to_pose(values: Sequence[float]) -> np.ndarray:
    """Pose of a set of parameter values."""
    return _pose_array(values)


@dataclass
class NodeSpec2D:
    local_pose_2d: np.ndarray
    global_pose_2d: np.ndarray

    def __post_init__(self) -> None:
        self.local_pose_2d = _pose_array(self.local_pose_2d)
        self.global_pose_2d = _pose_array(self.global_pose_2d)


@dataclass
class SubmapSpec2D:
    global_pose: np.ndarray

    def __post_init__(self) -> None:
        self.global_pose = _pose_array(self.global_pose)


class OptimizationProblem:
    """Submap and node poses tied together by relative pose constraints."""

    def __init__(self) -> None:
        self._node_data: dict[int, NodeSpec2D] = {}
        self._submap_data: dict[int, SubmapSpec2D] = {}

    def add_submap(self, global_submap_pose: Sequence[float]) -> None:
        self._submap_data[len(self._submap_data)] = SubmapSpec2D(global_submap_pose)

    def add_trajectory_node(self, local_node_pose: Sequence[float], global_node_pose: Sequence[float]) -> None:
        self._node_data[len(self._node_data)] = NodeSpec2D(local_node_pose, global_node_pose)

    @property
    def node_data(self) -> Mapping[int, NodeSpec2D]:
        return MappingProxyType(self._node_data)

    @property
    def submap_data(self) -> Mapping[int, SubmapSpec2D]:
        return MappingProxyType(self._submap_data)

    def solve(self, constraints: Iterable[Constraint]) -> None:
        """Optimise submap global poses and node global poses (started from local poses).

        The first submap is held fixed, or the first node when there are no submaps.
        """
        if not self._node_data:
            return
        constraints = list(constraints)

        values: dict[tuple[str, int], np.ndarray] = {}
        for submap_id in sorted(self._submap_data):
            values[("submap", submap_id)] = from_pose(self._submap_data[submap_id].global_pose)
        for node_id in sorted(self._node_data):
            values[("node", node_id)] = from_pose(self._node_data[node_id].local_pose_2d)
        constant = next(iter(values))

        pairs = []
        for constraint in constraints:
            submap_key = ("submap", constraint.submap_id)
            node_key = ("node", constraint.node_id)
            if submap_key not in values:
                raise KeyError(f"constraint refers to unknown submap {constraint.submap_id}")
            if node_key not in values:
                raise KeyError(f"constraint refers to unknown node {constraint.node_id}")
            pairs.append((SpaCostFunction2D(constraint), submap_key, node_key))

        free = [key for key in values if key != constant]
        if pairs and free:
            offsets = {key: 3 * i for i, key in enumerate(free)}
            x0 = np.concatenate([values[key] for key in free])

            def block(x: np.ndarray, key: tuple[str, int]) -> np.ndarray:
                offset = offsets.get(key)
                return values[key] if offset is None else x[offset : offset + 3]

            def residuals(x: np.ndarray) -> np.ndarray:
                return np.concatenate(
                    [cost(block(x, submap_key), block(x, node_key)) for cost, submap_key, node_key in pairs]
                )

            options = {}
            if len(x0) > _DENSE_LIMIT:
                sparsity = lil_matrix((3 * len(pairs), len(x0)), dtype=np.int8)
                for row, (_, submap_key, node_key) in enumerate(pairs):
                    for key in (submap_key, node_key):
                        if key in offsets:
                            sparsity[3 * row : 3 * row + 3, offsets[key] : offsets[key] + 3] = 1
                options = {"jac_sparsity": sparsity, "tr_solver": "lsmr"}

            result = least_squares(residuals, x0, method="trf", max_nfev=_MAX_NUM_ITERATIONS, **options)
            for key, offset in offsets.items():
                values[key] = result.x[offset : offset + 3].copy()

        for (kind, identifier), pose_values in values.items():
            if kind == "submap":
                self._submap_data[identifier].global_pose = to_pose(pose_values)
            else:
                self._node_data[identifier].global_pose_2d = to_pose(pose_values)
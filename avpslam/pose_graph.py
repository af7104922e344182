"""Pose graph of trajectory nodes and submaps with loop closure constraints."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

import numpy as np

from .constraint import Constraint, ConstraintTag, compute_relative_pose
from .optimization_problem import OptimizationProblem, SubmapSpec2D
from .real_time_correlative_scan_matcher import RealTimeCorrelativeScanMatcher
from .submap import Submap
from .trajectory_node import NodeData, TrajectoryNode
from .transform import pose_to_matrix

_log = logging.getLogger(__name__)

_LOCAL_TRANSLATION_WEIGHT = 5e2
_LOCAL_ROTATION_WEIGHT = 1.6e3
_LOOP_TRANSLATION_WEIGHT = 1.1e4
_LOOP_ROTATION_WEIGHT = 1e5
_LOOP_SEARCH_DISTANCE = 5.0
_LOOP_MIN_SCORE = 0.7


class SubmapState(Enum):
    NO_CONSTRAINT_SEARCH = "no_constraint_search"
    FINISHED = "finished"


@dataclass
class InternalSubmapData:
    """A submap known to the graph and the nodes constrained to it."""

    submap: Submap | None = None
    state: SubmapState = SubmapState.NO_CONSTRAINT_SEARCH
    node_ids: set[int] = field(default_factory=set)


@dataclass
class PoseGraphData:
    submap_data: dict[int, InternalSubmapData] = field(default_factory=dict)
    trajectory_nodes: dict[int, TrajectoryNode] = field(default_factory=dict)
    global_submap_poses: dict[int, np.ndarray] = field(default_factory=dict)
    constraints: list[Constraint] = field(default_factory=list)
    global_submap_poses_2d: dict[int, SubmapSpec2D] = field(default_factory=dict)


class PoseGraph:
    """Collects nodes and submaps, searches for loops and optimises the graph."""

    def __init__(self) -> None:
        self.data = PoseGraphData()
        self._data_lock = threading.Lock()
        self._optimization_problem = OptimizationProblem()
        self._num_nodes_since_last_loop_closure = 0
        self._running_optimization = False
        self._submap_node_has_looped: dict[int, int] = {}
        self._optimized_path: list[np.ndarray] = []

    @property
    def optimization_problem(self) -> OptimizationProblem:
        return self._optimization_problem

    @property
    def loop_candidates(self) -> dict[int, int]:
        """Submap id to the node id found close to it after it was finished."""
        return dict(self._submap_node_has_looped)

    @property
    def optimized_path(self) -> tuple[np.ndarray, ...]:
        """Node global poses after the last optimisation, by node id."""
        return tuple(self._optimized_path)

    def add_node(self, constant_data: NodeData, insertion_submaps: Sequence[Submap]) -> int:
        """Add a node inserted into ``insertion_submaps``; return its id."""
        if not insertion_submaps:
            raise ValueError("a node needs at least one insertion submap")
        local_pose = np.asarray(constant_data.local_pose, dtype=np.float64)
        transform = self.compute_local_to_global_transform()
        global_pose = (transform @ np.append(local_pose, 1.0))[:3]

        node_id = len(self.data.trajectory_nodes)
        self.data.trajectory_nodes[node_id] = TrajectoryNode(
            constant_data=constant_data, global_pose=global_pose
        )

        submap_data = self.data.submap_data
        if not submap_data or submap_data[max(submap_data)].submap is not insertion_submaps[-1]:
            submap_data[len(submap_data)] = InternalSubmapData(submap=insertion_submaps[-1])

        newly_finished_submap = insertion_submaps[0].insertion_finished
        self.compute_constraints_for_node(node_id, insertion_submaps, newly_finished_submap)
        return node_id

    def compute_constraints_for_node(
        self, node_id: int, insertion_submaps: Sequence[Submap], newly_finished_submap: bool
    ) -> None:
        """Tie the node to its insertion submaps and look for loops with finished submaps."""
        if self._running_optimization:
            return

        submap_ids = self.initialize_global_submap_poses(insertion_submaps)
        node_local_pose = np.asarray(
            self.data.trajectory_nodes[node_id].constant_data.local_pose, dtype=np.float64
        )
        self._optimization_problem.add_trajectory_node(node_local_pose, node_local_pose)

        for submap_id, submap in zip(submap_ids, insertion_submaps):
            if submap_id not in self.data.submap_data:
                raise KeyError(f"unknown submap {submap_id}")
            self.data.submap_data[submap_id].node_ids.add(node_id)
            relative = np.asarray(compute_relative_pose(submap.local_pose, node_local_pose), dtype=np.float64)
            self.data.constraints.append(
                Constraint(
                    submap_id=submap_id,
                    node_id=node_id,
                    translation_weight=_LOCAL_TRANSLATION_WEIGHT,
                    rotation_weight=_LOCAL_ROTATION_WEIGHT,
                    relative_pose=relative,
                    tag=ConstraintTag.NON_GLOBAL,
                )
            )

        finished_submap_ids = [
            submap_id
            for submap_id, entry in self.data.submap_data.items()
            if entry.state is SubmapState.FINISHED
        ]

        if newly_finished_submap:
            self.data.submap_data[submap_ids[0]].state = SubmapState.FINISHED

        for submap_id in finished_submap_ids:
            self.detect_loop_and_compute_constraint(submap_id, node_id)

    def initialize_global_submap_poses(self, insertion_submaps: Sequence[Submap]) -> list[int]:
        """Ids of the insertion submaps, registering a new one with the optimiser if needed."""
        submap_data = self._optimization_problem.submap_data
        if len(insertion_submaps) == 1:
            if not submap_data:
                self._optimization_problem.add_submap(insertion_submaps[0].local_pose)
            return [0]
        if not submap_data:
            raise LookupError("no submap poses known for a pair of insertion submaps")
        last_submap_id = max(submap_data)
        entry = self.data.submap_data.get(last_submap_id)
        if entry is None:
            raise KeyError(f"unknown submap {last_submap_id}")
        if entry.submap is insertion_submaps[0]:
            self._optimization_problem.add_submap(insertion_submaps[-1].local_pose)
            return [last_submap_id, last_submap_id + 1]
        return [last_submap_id - 1, last_submap_id]

    def detect_loop_and_compute_constraint(self, submap_id: int, node_id: int) -> bool:
        """Record the node as a loop candidate of a finished submap; True if recorded."""
        submap = self.data.submap_data[submap_id].submap
        if submap is None or not submap.insertion_finished:
            _log.info("submap %d has not finished", submap_id)
            return False
        if submap_id in self._submap_node_has_looped:
            return False
        relative = np.asarray(
            compute_relative_pose(
                self._optimization_problem.submap_data[submap_id].global_pose,
                self._optimization_problem.node_data[node_id].global_pose_2d,
            ),
            dtype=np.float64,
        )
        distance = float(np.hypot(relative[0], relative[1]))
        if distance > _LOOP_SEARCH_DISTANCE:
            return False
        _log.info("submap id: %d, node id: %d distance: %f", submap_id, node_id, distance)
        self._submap_node_has_looped[submap_id] = node_id
        return True

    def run_optimization(self) -> None:
        """Match loop candidates, add loop constraints and optimise all poses."""
        for submap_id, node_id in self._submap_node_has_looped.items():
            constant_data = self.data.trajectory_nodes[node_id].constant_data
            submap = self.data.submap_data[submap_id].submap
            cloud = np.asarray(constant_data.filtered_semantic_data, dtype=np.float64).reshape(-1, 3)
            if submap is None or len(cloud) == 0:
                continue
            score, pose_estimated = RealTimeCorrelativeScanMatcher().match(
                constant_data.local_pose, cloud, submap.grid
            )
            if score > _LOOP_MIN_SCORE:
                self._running_optimization = True
                relative = np.asarray(compute_relative_pose(submap.local_pose, pose_estimated), dtype=np.float64)
                self.data.constraints.append(
                    Constraint(
                        submap_id=submap_id,
                        node_id=node_id,
                        translation_weight=_LOOP_TRANSLATION_WEIGHT,
                        rotation_weight=_LOOP_ROTATION_WEIGHT,
                        relative_pose=relative,
                        tag=ConstraintTag.GLOBAL,
                    )
                )

        if not self._optimization_problem.submap_data:
            return

        self._optimization_problem.solve(self.data.constraints)
        self._num_nodes_since_last_loop_closure = 0

        node_data = self._optimization_problem.node_data
        path = []
        with self._data_lock:
            for node_id in sorted(node_data):
                global_pose = np.array(node_data[node_id].global_pose_2d, dtype=np.float64)
                node = self.data.trajectory_nodes[node_id]
                self.data.trajectory_nodes[node_id] = TrajectoryNode(
                    constant_data=node.constant_data, global_pose=global_pose
                )
                path.append(global_pose)
            self.data.global_submap_poses_2d = dict(self._optimization_problem.submap_data)
        self._optimized_path = path

    def compute_local_to_global_transform(self) -> np.ndarray:
        """4x4 transform from the local frame into the optimised global frame."""
        with self._data_lock:
            if not self.data.global_submap_poses:
                return np.eye(4)
            last_id = max(self.data.global_submap_poses)
            global_submap = pose_to_matrix(self.data.global_submap_poses[last_id])
            submap = self.data.submap_data[last_id].submap
            local_submap = pose_to_matrix(submap.local_pose)
            return global_submap @ np.linalg.inv(local_submap)

    def trajectory_nodes(self) -> dict[int, TrajectoryNode]:
        """A copy of the trajectory nodes by id."""
        with self._data_lock:
            return dict(self.data.trajectory_nodes)
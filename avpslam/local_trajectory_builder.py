"""Local SLAM: accumulates scans, matches them against submaps and inserts them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .ceres_scan_matcher import CeresScanMatcher2D
from .motion_filter import MotionFilter
from .pose_extrapolator import PoseExtrapolator
from .real_time_correlative_scan_matcher import RealTimeCorrelativeScanMatcher
from .submap import ActiveSubmaps, Submap
from .trajectory_node import NodeData
from .transform import pose_to_matrix, transform_point_cloud, transform_point_cloud_by_pose, voxel_grid_filter

_log = logging.getLogger(__name__)

_VOXEL_LEAF_SIZE = 0.1


def _cloud(points) -> np.ndarray:
    return np.asarray(points, dtype=np.float64).reshape(-1, 3)


@dataclass
class InsertionResult:
    constant_data: NodeData
    insertion_submaps: list[Submap]


@dataclass
class MatchingResult:
    local_pose: np.ndarray
    semantic_data: np.ndarray
    insertion_result: InsertionResult | None


class LocalTrajectoryBuilder:
    """Turns semantic scans and odometry into matched poses and submap insertions."""

    def __init__(self, use_real_time_correlative_scan_match: bool = False) -> None:
        self.use_real_time_correlative_scan_match = use_real_time_correlative_scan_match
        self._motion_filter = MotionFilter()
        self._extrapolator: PoseExtrapolator | None = None
        self._num_accumulated = 0
        self._accumulated_semantic_data = np.zeros((0, 3))
        self._active_submaps = ActiveSubmaps()
        self._real_time_matcher = RealTimeCorrelativeScanMatcher()
        self._ceres_matcher = CeresScanMatcher2D()
        self._path_estimated: list[np.ndarray] = []
        self._path_noise: list[np.ndarray] = []

    @property
    def active_submaps(self) -> ActiveSubmaps:
        return self._active_submaps

    @property
    def path_estimated(self) -> tuple[np.ndarray, ...]:
        """Poses produced by scan matching, oldest first."""
        return tuple(self._path_estimated)

    @property
    def path_noise(self) -> tuple[np.ndarray, ...]:
        """Odometry poses received, oldest first."""
        return tuple(self._path_noise)

    def add_semantic_scan(self, semantic_scan) -> MatchingResult | None:
        """Process a scan in the vehicle frame; the first scan only starts extrapolation."""
        if self._extrapolator is None:
            self._extrapolator = PoseExtrapolator()
            self._extrapolator.add_pose(np.zeros(3))
            return None

        if self._num_accumulated == 0:
            self._accumulated_semantic_data = np.zeros((0, 3))
        predict_pose = np.asarray(self._extrapolator.predict_pose(), dtype=np.float64)

        in_world = transform_point_cloud_by_pose(_cloud(semantic_scan), predict_pose)
        self._accumulated_semantic_data = np.vstack([self._accumulated_semantic_data, in_world])
        self._num_accumulated += 1

        self._num_accumulated = 0
        vehicle_from_world = np.linalg.inv(pose_to_matrix(predict_pose))
        self._accumulated_semantic_data = transform_point_cloud(
            self._accumulated_semantic_data, vehicle_from_world
        )
        return self.add_accumulated_semantics(self._accumulated_semantic_data, predict_pose)

    def add_odometry_data(self, odometry_pose: Sequence[float]) -> None:
        """Feed an odometry pose; ignored until the first scan has arrived."""
        if self._extrapolator is None:
            return
        pose = np.array(odometry_pose, dtype=np.float64)
        if pose.shape != (3,):
            raise ValueError("odometry_pose must have three components")
        self._extrapolator.add_odometry(pose)
        self._path_noise.append(pose)

    def add_accumulated_semantics(self, accumulated_semantics, global_pose: Sequence[float]) -> MatchingResult | None:
        """Match the accumulated scan and insert it into the active submaps."""
        cloud = _cloud(accumulated_semantics)
        predict = np.array(global_pose, dtype=np.float64)
        filtered = voxel_grid_filter(cloud, _VOXEL_LEAF_SIZE)
        pose_estimated = self.scan_match(predict, filtered)
        if pose_estimated is None:
            _log.warning("Scan Matching failed")
            return None
        in_world = transform_point_cloud_by_pose(cloud, pose_estimated)
        insertion_result = self.insert_into_submap(in_world, filtered, pose_estimated)
        return MatchingResult(local_pose=predict, semantic_data=in_world, insertion_result=insertion_result)

    def scan_match(self, predict_pose: Sequence[float], down_sampled_cloud) -> np.ndarray | None:
        """Refine the predicted pose against the oldest active submap."""
        predict = np.array(predict_pose, dtype=np.float64)
        if predict.shape != (3,):
            raise ValueError("predict_pose must have three components")
        submaps = self._active_submaps.submaps()
        if not submaps:
            return predict.copy()
        matching_submap = submaps[0]
        cloud = _cloud(down_sampled_cloud)

        pose_estimated = predict
        if self.use_real_time_correlative_scan_match and len(cloud):
            _, pose_estimated = self._real_time_matcher.match(predict, cloud, matching_submap.grid)

        pose_observation, _ = self._ceres_matcher.match(
            pose_estimated[:2], pose_estimated, cloud, matching_submap.grid
        )
        pose_observation = np.asarray(pose_observation, dtype=np.float64)
        self._path_estimated.append(pose_observation.copy())
        if self._extrapolator is not None:
            self._extrapolator.add_pose(pose_observation)
        return pose_observation

    def insert_into_submap(
        self, accumulated_semantic, filtered_accumulated_semantic, pose_estimated: Sequence[float]
    ) -> InsertionResult | None:
        """Insert the scan unless the pose barely moved since the last insertion."""
        pose = np.array(pose_estimated, dtype=np.float64)
        if self._motion_filter.is_similar(pose):
            return None
        insertion_submaps = self._active_submaps.insert_semantic_data(_cloud(accumulated_semantic), pose)
        return InsertionResult(
            constant_data=NodeData(
                filtered_semantic_data=_cloud(filtered_accumulated_semantic), local_pose=pose
            ),
            insertion_submaps=insertion_submaps,
        )
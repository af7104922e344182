import dataclasses

import numpy as np
import pytest

from avpslam.trajectory_node import NodeData, TrajectoryNode


def test_node_data_holds_arrays():
    data = NodeData([[1.0, 2.0, 0.0]], (0.5, -0.5, 0.1))
    assert data.filtered_semantic_data.shape == (1, 3)
    assert np.allclose(data.local_pose, (0.5, -0.5, 0.1))


def test_empty_cloud_becomes_empty_array():
    assert NodeData([], (0.0, 0.0, 0.0)).filtered_semantic_data.shape == (0, 3)


def test_bad_shapes_raise():
    with pytest.raises(ValueError):
        NodeData([[1.0, 2.0]], (0.0, 0.0, 0.0))
    with pytest.raises(ValueError):
        NodeData([[1.0, 2.0, 3.0]], (0.0, 0.0))
    data = NodeData([[1.0, 2.0, 3.0]], (0.0, 0.0, 0.0))
    with pytest.raises(ValueError):
        TrajectoryNode(data, (1.0,))


def test_node_is_immutable():
    node = TrajectoryNode(NodeData([[1.0, 2.0, 3.0]], (0.0, 0.0, 0.0)), (1.0, 2.0, 3.0))
    with pytest.raises(dataclasses.FrozenInstanceError):
        node.global_pose = np.zeros(3)
    with pytest.raises(ValueError):
        node.global_pose[0] = 5.0
    assert np.allclose(node.global_pose, (1.0, 2.0, 3.0))
import math
from types import SimpleNamespace

import numpy as np
import pytest

from avpslam.constraint import compute_relative_pose
from avpslam.optimization_problem import OptimizationProblem, from_pose, to_pose


def _constraint(submap_id, node_id, relative_pose):
    return SimpleNamespace(
        submap_id=submap_id,
        node_id=node_id,
        translation_weight=5e2,
        rotation_weight=1.6e3,
        relative_pose=np.asarray(relative_pose, dtype=float),
    )


def test_from_pose_normalises_angle_and_round_trips():
    values = from_pose((1.0, 2.0, 3 * math.pi + 0.1))
    assert values[:2] == pytest.approx([1.0, 2.0])
    assert -math.pi <= values[2] < math.pi
    assert math.cos(values[2]) == pytest.approx(math.cos(0.1 + math.pi))
    assert to_pose(values) == pytest.approx(values)


def test_ids_are_assigned_in_order():
    problem = OptimizationProblem()
    problem.add_submap((0.0, 0.0, 0.0))
    problem.add_submap((1.0, 0.0, 0.0))
    problem.add_trajectory_node((0.5, 0.0, 0.0), (0.5, 0.0, 0.0))
    assert list(problem.submap_data) == [0, 1]
    assert list(problem.node_data) == [0]
    assert problem.submap_data[1].global_pose == pytest.approx([1.0, 0.0, 0.0])


def test_solve_without_nodes_changes_nothing():
    problem = OptimizationProblem()
    problem.add_submap((0.3, 0.2, 4.0))
    problem.solve([])
    assert problem.submap_data[0].global_pose == pytest.approx([0.3, 0.2, 4.0])


def test_nodes_without_constraints_take_local_poses():
    problem = OptimizationProblem()
    problem.add_trajectory_node((1.0, 2.0, 0.5), (9.0, 9.0, 9.0))
    problem.solve([])
    assert problem.node_data[0].global_pose_2d == pytest.approx(from_pose((1.0, 2.0, 0.5)))


def test_single_constraint_moves_node_onto_observation():
    problem = OptimizationProblem()
    problem.add_submap((0.0, 0.0, 0.0))
    problem.add_trajectory_node((1.5, 0.2, 0.1), (1.5, 0.2, 0.1))
    relative = (1.0, 0.0, 0.0)
    problem.solve([_constraint(0, 0, relative)])
    node = problem.node_data[0].global_pose_2d
    assert compute_relative_pose(problem.submap_data[0].global_pose, node) == pytest.approx(relative, abs=1e-4)
    assert problem.submap_data[0].global_pose == pytest.approx([0.0, 0.0, 0.0])


def test_chain_recovers_true_poses():
    submaps = [np.array([0.0, 0.0, 0.0]), np.array([2.0, 0.5, 0.3])]
    nodes = [np.array([1.0, 0.2, 0.1]), np.array([2.5, 1.0, 0.4]), np.array([3.0, 1.5, 0.5])]
    pairs = [(0, 0), (0, 1), (1, 1), (1, 2)]
    constraints = [_constraint(s, n, compute_relative_pose(submaps[s], nodes[n])) for s, n in pairs]

    problem = OptimizationProblem()
    problem.add_submap(submaps[0])
    problem.add_submap(submaps[1] + np.array([0.1, -0.05, 0.03]))
    for node, noise in zip(nodes, ([0.05, 0.02, -0.02], [-0.08, 0.04, 0.03], [0.1, -0.1, 0.02])):
        problem.add_trajectory_node(node + np.array(noise), node)
    problem.solve(constraints)

    assert problem.submap_data[0].global_pose == pytest.approx(submaps[0])
    assert problem.submap_data[1].global_pose == pytest.approx(submaps[1], abs=1e-4)
    for node_id, node in enumerate(nodes):
        assert problem.node_data[node_id].global_pose_2d == pytest.approx(node, abs=1e-4)


def test_unknown_ids_raise():
    problem = OptimizationProblem()
    problem.add_submap((0.0, 0.0, 0.0))
    problem.add_trajectory_node((0.0, 0.0, 0.0), (0.0, 0.0, 0.0))
    with pytest.raises(KeyError):
        problem.solve([_constraint(3, 0, (0.0, 0.0, 0.0))])
    with pytest.raises(KeyError):
        problem.solve([_constraint(0, 7, (0.0, 0.0, 0.0))])
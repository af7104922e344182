import math

import numpy as np
import pytest

from avpslam.constraint import compute_relative_pose
from avpslam.spa_cost import (
    ConstraintType,
    CovarianceCostFunction,
    ObservedConstraint,
    calculate_relative_pose,
)


def test_relative_pose_matches_constraint_module():
    p1, p2 = (1.0, -0.5, 0.8), (2.5, 1.5, -0.3)
    relative = calculate_relative_pose(p1, p2)
    assert len(relative) == 3
    assert relative == pytest.approx(list(compute_relative_pose(p1, p2)))


def test_relative_pose_of_itself_is_zero():
    assert calculate_relative_pose((3.0, 4.0, 1.0), (3.0, 4.0, 1.0)) == pytest.approx([0.0, 0.0, 0.0])


def test_relative_pose_angle_in_range():
    relative = calculate_relative_pose((0.0, 0.0, -3.0), (0.0, 0.0, 3.0))
    assert -math.pi <= relative[2] < math.pi


def test_observed_constraint_computes_relative_pose():
    constraint = ObservedConstraint(2, 5, (0.5, 0.5, 0.2), (1.0, 2.0, 0.6), ConstraintType.GLOBAL)
    assert constraint.observed_relative_pose == pytest.approx(
        calculate_relative_pose((0.5, 0.5, 0.2), (1.0, 2.0, 0.6))
    )
    assert constraint.constraint_type is ConstraintType.GLOBAL
    assert (constraint.submap_id, constraint.node_id) == (2, 5)


def test_cost_zero_when_consistent_and_scales_with_cov():
    start, end = np.array([0.0, 1.0, 0.3]), np.array([1.0, 0.5, -0.2])
    z = calculate_relative_pose(start, end)
    assert CovarianceCostFunction(z, 0.2)(start, end) == pytest.approx([0.0, 0.0, 0.0], abs=1e-12)
    off = end + np.array([0.1, -0.1, 0.05])
    wide = CovarianceCostFunction(z, 0.2)(start, off)
    narrow = CovarianceCostFunction(z, 0.1)(start, off)
    assert narrow == pytest.approx(2.0 * wide)


def test_zero_cov_rejected():
    with pytest.raises(ValueError):
        CovarianceCostFunction((0.0, 0.0, 0.0), 0.0)
import math

import numpy as np
import pytest

from avpslam.correlative_scan_matcher import (
    Candidate2D,
    LinearBounds,
    create_search_parameters,
    discretize_scans,
    generate_rotated_scans,
    search_parameters_for_testing,
)
from avpslam.gridmap import CellLimits, MapLimits

CLOUD = np.array([[1.0, 2.0, 0.0], [-3.0, 0.5, 0.0], [2.5, -1.5, 0.0]])


def test_create_search_parameters_shape():
    params = create_search_parameters(5.0, math.pi / 6, 0.5)
    assert params.num_scans == 2 * params.num_angular_perturbations + 1
    assert len(params.linear_bounds) == params.num_scans
    assert params.linear_bounds[0] == LinearBounds(-10, 10, -10, 10)
    assert params.num_angular_perturbations * params.angular_perturbation_step_size >= math.pi / 6


def test_create_search_parameters_finer_resolution_gives_smaller_step():
    coarse = create_search_parameters(5.0, 0.5, 0.5)
    fine = create_search_parameters(5.0, 0.5, 0.1)
    assert fine.angular_perturbation_step_size < coarse.angular_perturbation_step_size
    assert fine.num_scans > coarse.num_scans


def test_create_search_parameters_rejects_bad_resolution():
    with pytest.raises(ValueError):
        create_search_parameters(5.0, 0.5, 0.0)


def test_search_parameters_for_testing():
    params = search_parameters_for_testing(3, 2, 0.1, 0.05)
    assert params.num_scans == 5
    assert params.angular_perturbation_step_size == 0.1
    assert all(b == LinearBounds(-3, 3, -3, 3) for b in params.linear_bounds)


def test_shrink_to_fit():
    params = search_parameters_for_testing(140, 0, 0.1, 0.05)
    scan = np.array([[1, 1], [10, 1], [1, 10], [10, 10]])
    params.shrink_to_fit([scan], CellLimits(100, 100))
    assert params.linear_bounds[0] == LinearBounds(-10, 98, -10, 98)


def test_shrink_to_fit_keeps_tighter_bounds():
    params = search_parameters_for_testing(2, 0, 0.1, 0.05)
    params.shrink_to_fit([np.array([[5, 5]])], CellLimits(100, 100))
    assert params.linear_bounds[0] == LinearBounds(-2, 2, -2, 2)


def test_shrink_to_fit_needs_every_scan():
    params = search_parameters_for_testing(2, 1, 0.1, 0.05)
    with pytest.raises(ValueError):
        params.shrink_to_fit([np.array([[1, 1]])], CellLimits(10, 10))


def test_generate_rotated_scans():
    params = search_parameters_for_testing(1, 2, 0.1, 0.05)
    scans = generate_rotated_scans(CLOUD, params)
    assert len(scans) == params.num_scans
    np.testing.assert_allclose(scans[2], CLOUD, atol=1e-12)
    for scan in scans:
        np.testing.assert_allclose(np.linalg.norm(scan, axis=1), np.linalg.norm(CLOUD, axis=1))
    first_angle = math.atan2(scans[0][0, 1], scans[0][0, 0])
    assert first_angle == pytest.approx(math.atan2(CLOUD[0, 1], CLOUD[0, 0]) - 0.2)


def test_discretize_scans_matches_cell_index():
    limits = MapLimits(0.5, (5.0, 5.0), CellLimits(20, 20))
    scans = discretize_scans(limits, [CLOUD], (0.5, -1.0))
    assert scans[0].shape == (3, 2)
    for point, index in zip(CLOUD, scans[0]):
        assert tuple(index) == limits.get_cell_index((point[0] + 0.5, point[1] - 1.0))


def test_discretize_scans_translation_shifts_index():
    limits = MapLimits(0.5, (5.0, 5.0), CellLimits(20, 20))
    base = discretize_scans(limits, [CLOUD], (0.0, 0.0))[0]
    shifted = discretize_scans(limits, [CLOUD], (0.5, 0.0))[0]
    np.testing.assert_array_equal(shifted[:, 1], base[:, 1] - 1)
    np.testing.assert_array_equal(shifted[:, 0], base[:, 0])


def test_candidate_pose_and_ordering():
    params = search_parameters_for_testing(5, 2, 0.1, 0.05)
    candidate = Candidate2D(4, 3, -2, params)
    assert candidate.x == pytest.approx(2 * 0.05)
    assert candidate.y == pytest.approx(-3 * 0.05)
    assert candidate.orientation == pytest.approx(2 * 0.1)
    other = Candidate2D(2, 0, 0, params)
    assert other.orientation == 0.0
    candidate.score, other.score = 0.3, 0.7
    assert candidate < other
    assert other > candidate
    assert max([candidate, other]) is other
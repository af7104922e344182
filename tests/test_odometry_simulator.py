import itertools
import math
import random

import pytest

from avpslam.odometry_simulator import OdometrySimulator, StampedPose, remap_angle


def _clock(step=0.5):
    return itertools.count(0.0, step).__next__


@pytest.mark.parametrize(
    "angle, expected",
    [(0.5, 0.5), (math.pi, math.pi), (-math.pi, math.pi), (3 * math.pi, math.pi), (-2.5, -2.5)],
)
def test_remap_angle(angle, expected):
    assert remap_angle(angle) == pytest.approx(expected)


@pytest.mark.parametrize("angle", [7.0, -7.0, 20.0, -0.1])
def test_remap_angle_range(angle):
    result = remap_angle(angle)
    assert -math.pi < result <= math.pi
    assert math.isclose(math.sin(result), math.sin(angle), abs_tol=1e-9)
    assert math.isclose(math.cos(result), math.cos(angle), abs_tol=1e-9)


def test_remap_angle_rejects_nan():
    with pytest.raises(ValueError):
        remap_angle(math.nan)


def test_initial_poses():
    sim = OdometrySimulator(clock=_clock(), rng=random.Random(1))
    assert sim.pose_true() == StampedPose(stamp=0.0)
    assert sim.pose_noised().frame_id == "world"
    assert sim.path_true() == ()


def test_straight_motion():
    sim = OdometrySimulator(clock=_clock(0.5), rng=random.Random(1))
    sim.set_speed(2.0)
    sim.update()
    pose = sim.pose_true()
    assert pose.x == pytest.approx(2.0 * 0.5)
    assert pose.y == pytest.approx(0.0)
    assert pose.yaw == pytest.approx(0.0)
    assert pose.stamp == 0.5


def test_turning_motion():
    sim = OdometrySimulator(clock=_clock(0.5), rng=random.Random(1))
    sim.set_speed(1.0)
    sim.set_steering_angle(0.3)
    sim.update()
    sim.update()
    yaw_rate = 1.0 * math.tan(0.3) / 1.5
    pose = sim.pose_true()
    assert pose.yaw == pytest.approx(2 * 0.5 * yaw_rate)
    assert pose.x == pytest.approx(0.5 + 0.5 * math.cos(0.5 * yaw_rate))
    assert pose.y == pytest.approx(0.5 * math.sin(0.5 * yaw_rate))


def test_path_records_true_poses():
    sim = OdometrySimulator(clock=_clock(), rng=random.Random(1))
    sim.set_speed(1.0)
    for _ in range(3):
        sim.update()
    path = sim.path_true()
    assert len(path) == 3
    assert path[-1] == sim.pose_true()
    assert [p.stamp for p in path] == [0.5, 1.0, 1.5]


def test_noised_pose_is_reproducible_with_seed():
    first = OdometrySimulator(clock=_clock(), rng=random.Random(7))
    second = OdometrySimulator(clock=_clock(), rng=random.Random(7))
    for sim in (first, second):
        sim.set_speed(1.5)
        sim.set_steering_angle(0.2)
        sim.update()
        sim.update()
    assert first.pose_noised() == second.pose_noised()
    assert first.pose_noised().stamp == 1.0
    assert -math.pi < first.pose_noised().yaw <= math.pi


def test_zero_speed_keeps_true_pose():
    sim = OdometrySimulator(clock=_clock(), rng=random.Random(3))
    sim.update()
    pose = sim.pose_true()
    assert (pose.x, pose.y, pose.yaw) == (0.0, 0.0, 0.0)
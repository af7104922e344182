from avpslam.motion_filter import MotionFilter


def test_first_pose_is_never_similar():
    assert not MotionFilter().is_similar((0.0, 0.0, 0.0))


def test_small_translation_is_similar():
    f = MotionFilter()
    f.is_similar((0.0, 0.0, 0.0))
    assert f.is_similar((0.1, 0.0, 0.0))
    assert not f.is_similar((1.0, 0.0, 0.0))


def test_rotation_threshold_uses_squared_difference():
    f = MotionFilter()
    f.is_similar((0.0, 0.0, 0.0))
    assert f.is_similar((0.0, 0.0, 0.4))
    assert not f.is_similar((0.0, 0.0, 0.5))


def test_rejected_pose_does_not_move_reference():
    f = MotionFilter()
    f.is_similar((0.0, 0.0, 0.0))
    assert f.is_similar((0.15, 0.0, 0.0))
    assert f.is_similar((0.15, 0.0, 0.0))
    assert not f.is_similar((0.3, 0.0, 0.0))
    assert f.is_similar((0.35, 0.0, 0.0))
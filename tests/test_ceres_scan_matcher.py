import numpy as np
import pytest

from avpslam.ceres_scan_matcher import CeresScanMatcher2D
from avpslam.gridmap import CellLimits, GridMap, MapLimits
from avpslam.range_data_inserter import ProbabilityGridRangeDataInserter
from avpslam.value_conversion_tables import ValueConversionTables


def _grid(n=40, resolution=0.1):
    half = n * resolution / 2
    return GridMap(MapLimits(resolution, (half, half), CellLimits(n, n)), ValueConversionTables())


def _hit_grid():
    grid = _grid()
    cells = [(10, 12), (25, 8), (18, 30), (30, 28)]
    centres = [grid.limits.get_cell_center(cell) for cell in cells]
    cloud = np.array([[x, y, 0.0] for x, y in centres])
    ProbabilityGridRangeDataInserter().insert(cloud, grid)
    return grid, cloud


def test_uniform_grid_moves_to_target_translation_only():
    grid = _grid()
    cloud = np.array([[0.2, 0.1, 0.0], [-0.3, 0.4, 0.0]])
    pose, summary = CeresScanMatcher2D().match((0.5, -0.2), (0.0, 0.0, 0.3), cloud, grid)
    assert pose[:2] == pytest.approx([0.5, -0.2], abs=1e-6)
    assert pose[2] == pytest.approx(0.3, abs=1e-9)
    assert pose == pytest.approx(summary.x)


def test_true_pose_is_kept():
    grid, cloud = _hit_grid()
    pose, _ = CeresScanMatcher2D().match((0.0, 0.0), (0.0, 0.0, 0.0), cloud, grid)
    assert np.abs(pose) == pytest.approx(np.zeros(3), abs=0.02)


def test_offset_start_moves_towards_target():
    grid, cloud = _hit_grid()
    initial = np.array([0.03, -0.02, 0.0])
    pose, _ = CeresScanMatcher2D().match((0.0, 0.0), initial, cloud, grid)
    assert np.hypot(pose[0], pose[1]) < np.hypot(initial[0], initial[1])


def test_bad_arguments_raise():
    grid = _grid()
    with pytest.raises(ValueError):
        CeresScanMatcher2D().match((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), np.zeros((1, 3)), grid)
    with pytest.raises(ValueError):
        CeresScanMatcher2D().match((0.0, 0.0), (0.0, 0.0), np.zeros((1, 3)), grid)
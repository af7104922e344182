import numpy as np
import pytest

from avpslam.cost_functions import (
    OccupiedSpaceCostFunction2D,
    RotationDeltaCostFunctor2D,
    TranslationDeltaCostFunctor2D,
)
from avpslam.gridmap import CellLimits, GridMap, MapLimits
from avpslam.range_data_inserter import ProbabilityGridRangeDataInserter
from avpslam.value_conversion_tables import ValueConversionTables


def _grid(n=20, resolution=0.1):
    half = n * resolution / 2
    return GridMap(MapLimits(resolution, (half, half), CellLimits(n, n)), ValueConversionTables())


def _grid_with_hit():
    grid = _grid()
    point = grid.limits.get_cell_center((10, 10))
    ProbabilityGridRangeDataInserter().insert(np.array([[point[0], point[1], 0.0]]), grid)
    box = grid.known_cells_box
    cell = (box[0], box[1])
    return grid, cell, grid.limits.get_cell_center(cell)


def test_unknown_grid_costs_the_maximum_everywhere():
    grid = _grid()
    cloud = np.array([[0.0, 0.0, 0.0], [0.3, -0.2, 0.0], [5.0, 5.0, 0.0]])
    function = OccupiedSpaceCostFunction2D(2.0, cloud, grid)
    residuals = function((0.1, 0.2, 0.5))
    assert residuals.shape == (3,)
    assert residuals == pytest.approx([2.0 * grid.max_correspondence_cost] * 3)


def test_residual_at_hit_cell_centre_equals_cell_cost():
    grid, cell, centre = _grid_with_hit()
    function = OccupiedSpaceCostFunction2D(1.5, np.array([[centre[0], centre[1], 0.0]]), grid)
    residual = function((0.0, 0.0, 0.0))
    assert residual[0] == pytest.approx(1.5 * grid.get_correspondence_cost(cell), rel=1e-6)
    assert residual[0] < 1.5 * grid.max_correspondence_cost


def test_residual_far_outside_grid_is_maximum():
    grid, _, centre = _grid_with_hit()
    function = OccupiedSpaceCostFunction2D(1.0, np.array([[centre[0], centre[1], 0.0]]), grid)
    assert function((100.0, -100.0, 0.0))[0] == pytest.approx(grid.max_correspondence_cost)


def test_occupied_space_rejects_bad_pose():
    function = OccupiedSpaceCostFunction2D(1.0, np.zeros((1, 3)), _grid())
    with pytest.raises(ValueError):
        function((0.0, 0.0))


def test_translation_residual_zero_at_target_and_linear_in_scale():
    target = (0.7, -1.2)
    assert TranslationDeltaCostFunctor2D(8.0, target)((0.7, -1.2, 2.0)) == pytest.approx([0.0, 0.0])
    pose = (1.5, 0.4, 0.3)
    single = TranslationDeltaCostFunctor2D(1.0, target)(pose)
    double = TranslationDeltaCostFunctor2D(2.0, target)(pose)
    assert double == pytest.approx(2.0 * single)
    assert single.shape == (2,)


def test_translation_rejects_bad_target():
    with pytest.raises(ValueError):
        TranslationDeltaCostFunctor2D(1.0, (1.0, 2.0, 3.0))


def test_rotation_residual_ignores_translation():
    functor = RotationDeltaCostFunctor2D(3.0, 0.25)
    assert functor((0.0, 0.0, 0.25)) == pytest.approx([0.0])
    assert functor((5.0, -2.0, 1.0)) == pytest.approx(functor((0.0, 0.0, 1.0)))
    assert functor((0.0, 0.0, 1.0)).shape == (1,)
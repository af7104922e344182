import numpy as np
import pytest

from avpslam.gridmap import CellLimits
from avpslam.range_data_inserter import ProbabilityGridRangeDataInserter
from avpslam.submap import MAX_SEMANTIC_DATA_IN_SUBMAP, ActiveSubmaps, Submap

SCAN = np.array([[0.5, 0.5, 0.0], [-0.5, 1.0, 0.0]])


def test_first_insert_creates_submap_at_pose():
    active = ActiveSubmaps()
    submaps = active.insert_semantic_data(SCAN, (1.0, 2.0, 0.3))
    assert len(submaps) == 1
    assert np.allclose(submaps[0].local_pose, (1.0, 2.0, 0.3))
    assert submaps[0].num_accumulated_semantic_data == 1
    assert len(submaps[0].data) == len(SCAN)


def test_submap_lifecycle():
    active = ActiveSubmaps()
    pose = (0.0, 0.0, 0.0)
    for _ in range(MAX_SEMANTIC_DATA_IN_SUBMAP):
        active.insert_semantic_data(SCAN, pose)
    assert len(active.submaps()) == 1
    active.insert_semantic_data(SCAN, pose)
    assert len(active.submaps()) == 2
    first, second = active.submaps()
    assert second.num_accumulated_semantic_data == 1

    for _ in range(MAX_SEMANTIC_DATA_IN_SUBMAP - 1):
        active.insert_semantic_data(SCAN, pose)
    assert first.insertion_finished
    assert not second.insertion_finished

    active.insert_semantic_data(SCAN, pose)
    submaps = active.submaps()
    assert len(submaps) == 2
    assert submaps[0] is second
    assert submaps[1].num_accumulated_semantic_data == 1


def test_create_grid_centered_on_origin():
    active = ActiveSubmaps()
    grid = active.create_grid((3.0, -2.0, 0.0))
    assert grid.limits.cell_limits == CellLimits(100, 100)
    assert grid.limits.contains(grid.limits.get_cell_index((3.0, -2.0)))


def test_submap_insert_accumulates_data():
    active = ActiveSubmaps()
    submap = Submap((0.0, 0.0, 0.0), active.create_grid((0.0, 0.0, 0.0)))
    inserter = ProbabilityGridRangeDataInserter()
    submap.insert_semantic_data(SCAN, inserter)
    submap.insert_semantic_data(SCAN[:1], inserter)
    assert submap.num_accumulated_semantic_data == 2
    assert len(submap.data) == len(SCAN) + 1
    index = submap.grid.limits.get_cell_index(SCAN[0][:2])
    assert submap.grid.get_correspondence_cost(index) < submap.grid.max_correspondence_cost


def test_submap_rejects_bad_pose():
    active = ActiveSubmaps()
    with pytest.raises(ValueError):
        Submap((0.0, 0.0), active.create_grid((0.0, 0.0, 0.0)))
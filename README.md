# avpslam

Building blocks for 2D semantic SLAM, aimed at automated parking: semantic
points (such as corners of parking slots) are accumulated into probability
grid submaps, matched against those submaps, and tied together in a pose graph
that is optimised by least squares.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Conventions

Poses are `(x, y, yaw)` sequences or arrays, and point clouds are `N x 3`
NumPy arrays of x, y, z. Grid cell indices are pairs as returned by
`MapLimits.get_cell_index`.

## Modules

- `avpslam.mathutil`: `clamp`, `power`, `pow2`, `deg_to_rad`, `rad_to_deg`,
  `normalize_angle_difference`, `quaternion_product` and `round_to_int`
  (halves rounded away from zero).
- `avpslam.probability_values`: conversion between probabilities, odds,
  correspondence costs and the 15-bit cell values stored in grids, and
  `compute_lookup_table_to_apply_odds` /
  `compute_lookup_table_to_apply_correspondence_cost_odds`, which build the
  tables that apply an odds update to a cell value.
- `avpslam.value_conversion_tables`: `ValueConversionTables`, a cache of
  value-to-float tables keyed by their bounds.
- `avpslam.gridmap`: `CellLimits`, `MapLimits` and `GridMap`, a grid of
  correspondence costs that doubles around its centre (`grow_limits`) until a
  point fits, with `apply_lookup_table`, `finish_update` and
  `get_correspondence_cost`.
- `avpslam.range_data_inserter`: `ProbabilityGridRangeDataInserter`, which
  applies a hit update to the cell of every point of a cloud.
- `avpslam.submap`: `Submap` and `ActiveSubmaps`, which keeps at most two
  overlapping submaps, starts a new one every 20 insertions and marks the
  older one finished after 40.
- `avpslam.transform`: `pose_to_matrix`, `transform_point_cloud`,
  `transform_point_cloud_by_pose` and `voxel_grid_filter`.
- `avpslam.trajectory_node`: `NodeData` and `TrajectoryNode`.
- `avpslam.motion_filter`: `MotionFilter`, which reports poses that moved and
  turned too little since the last accepted one.
- `avpslam.pose_extrapolator`: `PoseExtrapolator`, which predicts the current
  pose from the last estimate plus the odometry motion since then.
- `avpslam.correlative_scan_matcher`: `SearchParameters`, `LinearBounds`,
  `Candidate2D`, `create_search_parameters`, `generate_rotated_scans` and
  `discretize_scans`.
- `avpslam.real_time_correlative_scan_matcher`:
  `RealTimeCorrelativeScanMatcher`, an exhaustive search whose `match`
  returns `(score, pose)`.
- `avpslam.fast_correlative_scan_matcher`: `FastCorrelativeScanMatcher2D`,
  branch and bound over a stack of precomputed grids; `match` returns
  `(score, pose)` or `None` when nothing beats `min_score`.
- `avpslam.cost_functions`: `OccupiedSpaceCostFunction2D` (bicubic
  interpolation of the grid), `TranslationDeltaCostFunctor2D` and
  `RotationDeltaCostFunctor2D`.
- `avpslam.ceres_scan_matcher`: `CeresScanMatcher2D`, least-squares refinement
  of a scan pose with SciPy; `match` returns `(pose, solver_result)`.
- `avpslam.constraint`, `avpslam.spa_cost_function`, `avpslam.spa_cost`,
  `avpslam.optimization_problem`: relative pose constraints, their residuals
  and `OptimizationProblem`, which optimises submap and node poses with the
  first submap held fixed.
- `avpslam.pose_graph`: `PoseGraph`, which adds nodes, records loop
  candidates near finished submaps and, in `run_optimization`, matches them,
  adds loop constraints and optimises the graph.
- `avpslam.local_trajectory_builder`: `LocalTrajectoryBuilder`, which ties
  odometry, scan matching and submap insertion together. The first scan only
  starts pose extrapolation, and odometry is ignored until then.
- `avpslam.odometry_simulator`: `OdometrySimulator`, a kinematic bicycle model
  producing a true and a noisy `StampedPose`; the clock and random generator
  can be passed in.
- `avpslam.gridmap_image`: `grid_map_to_image`, which renders a grid as a
  `uint8` array of shape `(num_x_cells, num_y_cells)`, 255 being most occupied.

## Example

```python
import numpy as np

from avpslam.submap import ActiveSubmaps
from avpslam.real_time_correlative_scan_matcher import RealTimeCorrelativeScanMatcher

points = np.array([[1.0, 0.5, 0.0], [1.2, -0.4, 0.0], [-0.8, 0.9, 0.0]])

active = ActiveSubmaps()
active.insert_semantic_data(points, np.zeros(3))
grid = active.submaps()[0].grid

matcher = RealTimeCorrelativeScanMatcher()
score, pose = matcher.match(np.zeros(3), points, grid)
print(score, pose)
```

## What it does not do

This is a library only. It has no command-line programs and no running
process: nothing subscribes to sensors, publishes results or reads keyboard
input, and it does not load map images or semantic maps from disk. It does
not read or write pose graph files or save grids; callers feed scans and
odometry in and take poses, grids and image arrays out themselves.
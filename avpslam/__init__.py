"""2D semantic SLAM: probability grids, submaps, scan matching, pose graph optimisation and an odometry simulator."""

__version__ = "0.1.0"
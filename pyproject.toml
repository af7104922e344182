[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "avpslam"
version = "0.1.0"
description = "2D semantic SLAM building blocks: probability grids, submaps, correlative scan matching and pose graph optimisation."
requires-python = ">=3.10"
keywords = ["slam", "mapping", "occupancy-grid", "scan-matching", "pose-graph", "robotics"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["avpslam"]

[tool.pytest.ini_options]
addopts = "-ra"

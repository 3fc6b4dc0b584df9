[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "treestem"
version = "0.1.0"
description = "Tree stem detection in laser scanning point clouds: count rasters, Hough circle search, voxel keys and a Moré–Thuente line search"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["lidar", "point cloud", "forestry", "hough transform", "voxel", "line search"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: GIS",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["treestem"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

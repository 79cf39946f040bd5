[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lvxcapture"
version = "0.1.0"
description = "Record LiDAR point cloud packets into LVX files, read them back, and export PLY point clouds"
requires-python = ">=3.10"
dependencies = []
keywords = ["lidar", "lvx", "point cloud", "ply", "extrinsic", "recording"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["lvxcapture"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

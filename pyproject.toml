[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "micromouse"
version = "0.1.0"
description = "Control, odometry, maze mapping and path planning for a two-wheeled maze-solving robot"
requires-python = ">=3.10"
dependencies = []
keywords = ["micromouse", "maze", "robotics", "pid", "path-planning", "odometry", "flood-fill"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["micromouse"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

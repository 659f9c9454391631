[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "msbfs"
version = "0.1.0"
description = "Multi-source breadth-first search and closeness centrality over undirected graphs"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "graph",
    "bfs",
    "breadth-first search",
    "closeness centrality",
    "multi-source bfs",
    "benchmark",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Information Analysis",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
msbfs = "msbfs.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["msbfs"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

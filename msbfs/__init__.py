"""Breadth-first search runners, closeness-centrality queries and benchmark commands for undirected graphs."""

__version__ = "0.1.0"

__all__ = [
    "batch",
    "batch_wide",
    "cli",
    "fileio",
    "graph",
    "parallel",
    "query",
    "scheduler",
    "sequential",
    "timing",
]
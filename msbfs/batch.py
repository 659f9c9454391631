"""Bit-parallel multi-source BFS over many closeness queries at once.

Each query in a batch owns one bit. Frontier and seen sets are kept per
person as integer bitmasks, so one pass over a person's neighbours advances
every query that has that person on its frontier.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .graph import Graph
from .sequential import BFSData

log = logging.getLogger(__name__)


def query_mask(index: int) -> int:
    """Return the bitmask that selects query ``index`` within a batch."""
    if index < 0:
        raise ValueError(f"query index must not be negative, got {index}")
    return 1 << index


def _tally(mask: int, counts: list[int]) -> None:
    while mask:
        low = mask & -mask
        counts[low.bit_length() - 1] += 1
        mask ^= low


def _check_batch(bfs_data: Sequence[BFSData], graph: Graph, width: int) -> None:
    if not bfs_data:
        raise ValueError("a batch needs at least one query")
    if len(bfs_data) > width:
        raise ValueError(f"batch of {len(bfs_data)} queries exceeds width {width}")
    size = len(graph)
    for data in bfs_data:
        if not 0 <= data.person < size:
            raise ValueError(f"source {data.person} outside graph of size {size}")


def _run_rounds(
    bfs_data: Sequence[BFSData],
    graph: Graph,
    frontier: dict[int, int],
    seen: list[int],
    distance: int,
) -> None:
    """Expand ``frontier`` level by level, starting at ``distance``."""
    num_queries = len(bfs_data)
    process = (1 << num_queries) - 1
    queries_left = num_queries

    while True:
        following: dict[int, int] = {}
        counts = [0] * num_queries
        for person, entry in frontier.items():
            active = entry & process
            if not active:
                continue
            for friend in graph.neighbours(person):
                fresh = active & ~seen[friend]
                if not fresh:
                    continue
                seen[friend] |= entry
                following[friend] = following.get(friend, 0) | fresh
                _tally(fresh, counts)

        for index, data in enumerate(bfs_data):
            mask = 1 << index
            if not process & mask:
                continue
            data.add_level(counts[index], distance)
            if data.remaining == 0:
                if queries_left == 1:
                    return
                process &= ~mask
                queries_left -= 1

        if not following:
            return
        log.debug("[BatchBFS] level %d frontier %d", distance, len(following))
        frontier = following
        distance += 1


@dataclass(frozen=True)
class BatchBFSRunner:
    """Runs up to ``width`` BFS queries together, starting from the sources."""

    width: int = 64

    def __post_init__(self) -> None:
        if self.width < 1:
            raise ValueError(f"width must be at least 1, got {self.width}")

    @property
    def batch_size(self) -> int:
        """Largest number of queries one batch may hold."""
        return self.width

    def run_batch(self, bfs_data: Sequence[BFSData], graph: Graph) -> Sequence[BFSData]:
        """Add distance and reach totals to every entry of ``bfs_data``.

        Raises ``ValueError`` for an empty or oversized batch and for a
        person that is the source of more than one query.
        """
        _check_batch(bfs_data, graph, self.width)
        seen = [0] * len(graph)
        frontier: dict[int, int] = {}
        for index, data in enumerate(bfs_data):
            if seen[data.person]:
                raise ValueError(f"person {data.person} is the source of several queries")
            mask = query_mask(index)
            seen[data.person] = mask
            frontier[data.person] = mask
        _run_rounds(bfs_data, graph, frontier, seen, 1)
        return bfs_data


@dataclass(frozen=True)
class SeededBatchBFSRunner:
    """Batch BFS that fills the first level straight from the sources' neighbours."""

    width: int = 128

    def __post_init__(self) -> None:
        if self.width < 1:
            raise ValueError(f"width must be at least 1, got {self.width}")

    @property
    def batch_size(self) -> int:
        """Largest number of queries one batch may hold."""
        return self.width

    def run_batch(self, bfs_data: Sequence[BFSData], graph: Graph) -> Sequence[BFSData]:
        """Add distance and reach totals to every entry of ``bfs_data``.

        Raises ``ValueError`` for an empty or oversized batch.
        """
        _check_batch(bfs_data, graph, self.width)
        seen = [0] * len(graph)
        first: dict[int, int] = {}
        for index, data in enumerate(bfs_data):
            mask = query_mask(index)
            seen[data.person] |= mask
            for friend in graph.neighbours(data.person):
                first[friend] = first.get(friend, 0) | mask

        counts = [0] * len(bfs_data)
        for friend, mask in first.items():
            seen[friend] |= mask
            _tally(mask, counts)
        for data, count in zip(bfs_data, counts):
            data.add_level(count, 1)

        _run_rounds(bfs_data, graph, first, seen, 2)
        return bfs_data
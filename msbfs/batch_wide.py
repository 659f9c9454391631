"""Wide bit-parallel multi-source BFS with byte-lane discovery counters.

Every query owns one bit of a ``width``-bit mask. New discoveries are counted
with one integer per bit position inside a byte: adding
``(mask >> s) & 0x0101...01`` bumps the byte lane ``k`` for query ``8 * k + s``.
A byte lane can hold at most 255 before it overflows, so the lanes are
flushed into plain per-query totals every 255 additions and at the end of
every level.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .batch import _check_batch, query_mask
from .graph import Graph
from .sequential import BFSData

log = logging.getLogger(__name__)

_BITS_PER_LANE = 8
_MAX_LANE_ADDS = 255


class _LaneCounter:
    """Counts set bits per query position using packed byte counters."""

    def __init__(self, width: int, num_queries: int) -> None:
        self._num_lanes = width // _BITS_PER_LANE
        self._ones = int.from_bytes(b"\x01" * self._num_lanes, "little")
        self._lanes = [0] * _BITS_PER_LANE
        self._adds = 0
        self.totals = [0] * num_queries

    def add(self, mask: int) -> None:
        ones = self._ones
        lanes = self._lanes
        for shift in range(_BITS_PER_LANE):
            lanes[shift] += (mask >> shift) & ones
        self._adds += 1
        if self._adds == _MAX_LANE_ADDS:
            self.flush()

    def flush(self) -> None:
        num_queries = len(self.totals)
        for shift, lane in enumerate(self._lanes):
            if not lane:
                continue
            for byte_index, value in enumerate(lane.to_bytes(self._num_lanes, "little")):
                if value:
                    query = byte_index * _BITS_PER_LANE + shift
                    if query < num_queries:
                        self.totals[query] += value
        self._lanes = [0] * _BITS_PER_LANE
        self._adds = 0


@dataclass(frozen=True)
class WideBatchBFSRunner:
    """Runs up to ``width`` BFS queries together, counting with byte lanes."""

    width: int = 256

    def __post_init__(self) -> None:
        if self.width < _BITS_PER_LANE or self.width % _BITS_PER_LANE:
            raise ValueError(
                f"width must be a positive multiple of {_BITS_PER_LANE}, got {self.width}"
            )

    @property
    def batch_size(self) -> int:
        """Largest number of queries one batch may hold."""
        return self.width

    def run_batch(self, bfs_data: Sequence[BFSData], graph: Graph) -> Sequence[BFSData]:
        """Add distance and reach totals to every entry of ``bfs_data``.

        Raises ``ValueError`` for an empty or oversized batch, a source
        outside the graph, and a person that is the source of several queries.
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
        self._run_rounds(bfs_data, graph, frontier, seen)
        return bfs_data

    def _run_rounds(
        self,
        bfs_data: Sequence[BFSData],
        graph: Graph,
        frontier: dict[int, int],
        seen: list[int],
    ) -> None:
        num_queries = len(bfs_data)
        process = (1 << num_queries) - 1
        queries_left = num_queries
        distance = 1

        while True:
            counter = _LaneCounter(self.width, num_queries)
            following: dict[int, int] = {}
            for person in sorted(frontier):
                entry = frontier[person]
                active = entry & process
                if not active:
                    continue
                for friend in graph.neighbours(person):
                    fresh = active & ~seen[friend]
                    if not fresh:
                        continue
                    seen[friend] |= entry
                    following[friend] = following.get(friend, 0) | fresh
                    counter.add(fresh)
            counter.flush()

            for index, data in enumerate(bfs_data):
                mask = 1 << index
                if not process & mask:
                    continue
                data.add_level(counter.totals[index], distance)
                if data.remaining == 0:
                    if queries_left == 1:
                        return
                    process &= ~mask
                    queries_left -= 1

            if not following:
                return
            log.debug("[WideBatchBFS] level %d frontier %d", distance, len(following))
            frontier = following
            distance += 1
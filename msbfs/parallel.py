"""Level-synchronous BFS whose frontier is split across worker threads."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from types import TracebackType

from .graph import Graph
from .sequential import BFSData

log = logging.getLogger(__name__)


class ParallelBFSRunner:
    """Runs single-source BFS with each level traversed by several threads.

    Thread ``i`` handles the frontier entries ``i, i + n, i + 2n, ...``.
    Duplicate discoveries from concurrent threads are merged between levels.
    """

    def __init__(self, num_threads: int = 1) -> None:
        if num_threads < 1:
            raise ValueError(f"num_threads must be at least 1, got {num_threads}")
        self.num_threads = num_threads
        self._pool: ThreadPoolExecutor | None = ThreadPoolExecutor(
            max_workers=num_threads, thread_name_prefix="parabfs"
        )

    def __enter__(self) -> ParallelBFSRunner:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _traverse(
        self,
        graph: Graph,
        visited: bytearray,
        fresh: bytearray,
        queue: list[int],
        offset: int,
    ) -> list[int]:
        found: list[int] = []
        for person in queue[offset :: self.num_threads]:
            for friend in graph.neighbours(person):
                if not visited[friend]:
                    visited[friend] = 1
                    fresh[friend] = 1
                    found.append(friend)
        return found

    def run(self, start: int, graph: Graph, data: BFSData) -> BFSData:
        """Search from ``start``, adding level totals to ``data``.

        Stops once the component recorded in ``data`` is covered or the
        frontier is empty.
        """
        if self._pool is None:
            raise RuntimeError("ParallelBFSRunner is closed")
        size = len(graph)
        visited = bytearray(size)
        fresh = bytearray(size)
        visited[start] = 1
        current = [start]
        distance = 0
        while current:
            parts = list(
                self._pool.map(
                    lambda offset: self._traverse(graph, visited, fresh, current, offset),
                    range(self.num_threads),
                )
            )
            distance += 1
            following: list[int] = []
            for part in parts:
                for person in part:
                    if fresh[person]:
                        fresh[person] = 0
                        following.append(person)
            log.debug("[PARABFS] level %d found %d", distance, len(following))
            data.add_level(len(following), distance)
            if data.remaining == 0:
                break
            current = following
        return data

    def close(self) -> None:
        """Stop the worker threads; the runner cannot be used afterwards."""
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None
"""Single-source breadth-first searches that accumulate closeness data."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

from .graph import Graph

log = logging.getLogger(__name__)

# Direction-switching thresholds of the direction-optimizing search.
ALPHA = 14
BETA = 24


@dataclass
class BFSData:
    """Per-source accumulator: the source, its component size and BFS totals."""

    person: int
    component_size: int
    total_distances: int = 0
    total_reachable: int = 0

    @classmethod
    def for_person(cls, person: int, graph: Graph) -> BFSData:
        """Create an empty accumulator for ``person`` sized to its component."""
        component = graph.person_components[person]
        return cls(person, graph.component_sizes[component])

    @property
    def remaining(self) -> int:
        """Number of persons of the component not reached yet."""
        return self.component_size - 1 - self.total_reachable

    def add_level(self, discovered: int, distance: int) -> None:
        """Account for ``discovered`` persons found at ``distance``."""
        self.total_reachable += discovered
        self.total_distances += discovered * distance


def _queue_round(
    graph: Graph, seen: bytearray, queue: deque[int], num_to_visit: int, num_unseen: int
) -> int:
    unseen = num_unseen
    for _ in range(num_to_visit):
        person = queue.popleft()
        for friend in graph.neighbours(person):
            if not seen[friend]:
                seen[friend] = 1
                queue.append(friend)
                unseen -= 1
        if unseen <= 0:
            break
    return num_unseen - unseen


def naive_bfs(start: int, graph: Graph, data: BFSData) -> BFSData:
    """Queue-based BFS from ``start`` that stops once the component is covered.

    Raises ``ValueError`` if the search runs dry before reaching the
    component size recorded in ``data``.
    """
    seen = bytearray(len(graph))
    seen[start] = 1
    queue: deque[int] = deque([start])
    distance = 0
    while True:
        if not queue:
            raise ValueError(
                f"BFS from {start} ran out of persons; component size "
                f"{data.component_size} does not match the graph"
            )
        discovered = _queue_round(graph, seen, queue, len(queue), data.remaining)
        distance += 1
        data.add_level(discovered, distance)
        if data.remaining == 0:
            return data


def _flag_round(
    graph: Graph, seen: bytearray, current: bytearray, following: bytearray
) -> int:
    discovered = 0
    for person, flagged in enumerate(current):
        if not flagged:
            continue
        for friend in graph.neighbours(person):
            if not seen[friend]:
                seen[friend] = 1
                following[friend] = 1
                discovered += 1
    return discovered


def no_queue_bfs(start: int, graph: Graph, data: BFSData) -> BFSData:
    """BFS keeping the frontier as a flag array scanned every round.

    Raises ``ValueError`` if a round discovers nobody before the component
    size recorded in ``data`` is reached.
    """
    size = len(graph)
    seen = bytearray(size)
    seen[start] = 1
    current = bytearray(size)
    current[start] = 1
    distance = 0
    while True:
        following = bytearray(size)
        discovered = _flag_round(graph, seen, current, following)
        distance += 1
        data.add_level(discovered, distance)
        if data.remaining == 0:
            return data
        if discovered == 0:
            raise ValueError(
                f"BFS from {start} ran out of persons; component size "
                f"{data.component_size} does not match the graph"
            )
        current = following


def _top_down(
    graph: Graph, frontier: bytearray, following: bytearray, seen: bytearray
) -> int:
    found = 0
    for person, flagged in enumerate(frontier):
        if not flagged:
            continue
        for friend in graph.neighbours(person):
            if not seen[friend]:
                seen[friend] = 1
                following[friend] = 1
                found += 1
    return found


def _bottom_up(
    graph: Graph, frontier: bytearray, following: bytearray, seen: bytearray
) -> int:
    found = 0
    for person, was_seen in enumerate(seen):
        if was_seen:
            continue
        if any(frontier[friend] for friend in graph.neighbours(person)):
            seen[person] = 1
            following[person] = 1
            found += 1
    return found


def direction_optimizing_bfs(start: int, graph: Graph, data: BFSData) -> BFSData:
    """BFS switching between top-down and bottom-up rounds by frontier size.

    Runs until a round discovers nobody.
    """
    size = len(graph)
    seen = bytearray(size)
    seen[start] = 1
    frontier = bytearray(size)
    frontier[start] = 1

    is_top_down = True
    m_frontier = 0
    m_unexplored = graph.num_edges
    frontier_size = 1
    distance = 0

    while frontier_size > 0:
        last_m_frontier = m_frontier
        m_frontier = sum(
            len(graph.neighbours(person)) for person, flagged in enumerate(frontier) if flagged
        )
        n_frontier = frontier_size
        m_unexplored -= last_m_frontier

        top_down_limit = m_unexplored // ALPHA
        bottom_up_limit = size // BETA

        if is_top_down:
            is_top_down = m_frontier <= top_down_limit
        else:
            is_top_down = n_frontier < bottom_up_limit

        following = bytearray(size)
        step = _top_down if is_top_down else _bottom_up
        frontier_size = step(graph, frontier, following, seen)
        log.debug(
            "[SCBFS] round %d %s found %d",
            distance + 1,
            "top-down" if is_top_down else "bottom-up",
            frontier_size,
        )
        frontier = following

        distance += 1
        data.add_level(frontier_size, distance)
    return data
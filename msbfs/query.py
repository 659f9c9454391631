"""Closeness-centrality queries run as morsel tasks over a BFS runner.

A query splits the persons to search from into ranges ("morsels"). Each
morsel is one scheduler task that feeds batches of persons to a BFS runner
and turns the distance totals into closeness values. Persons are taken in
id order.
"""

from __future__ import annotations

import logging
import os
import sys
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from .graph import Graph
from .scheduler import Executor, Scheduler, Task, TaskGroup
from .sequential import BFSData
from .timing import now

log = logging.getLogger(__name__)

MAX_MORSEL_TASKS = 256_000
MIN_MORSEL_SIZE = 1
EPSILON = 1e-12
MAX_PERSON_ID = 2**32 - 1


class BatchRunner(Protocol):
    """A BFS runner that processes several sources per call."""

    @property
    def batch_size(self) -> int: ...

    def run_batch(self, bfs_data: Sequence[BFSData], graph: Graph) -> Any: ...


@dataclass(frozen=True)
class _SingleSourceRunner:
    search: Callable[[int, Graph, BFSData], object]
    batch_size: int = 1

    def run_batch(self, bfs_data: Sequence[BFSData], graph: Graph) -> Sequence[BFSData]:
        for data in bfs_data:
            self.search(data.person, graph, data)
        return bfs_data


def _as_batch_runner(runner: Any) -> BatchRunner:
    if hasattr(runner, "run_batch") and hasattr(runner, "batch_size"):
        return runner
    run = getattr(runner, "run", None)
    if callable(run):
        return _SingleSourceRunner(run)
    if callable(runner):
        return _SingleSourceRunner(runner)
    raise TypeError(f"{runner!r} is not a BFS runner")


def generate_tasks(max_bfs: int, graph_size: int, batch_size: int) -> list[tuple[int, int]]:
    """Split the first ``min(graph_size, max_bfs)`` positions into task ranges.

    The task size starts at the batch size and grows by it until there are
    at most ``MAX_MORSEL_TASKS`` full tasks.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    num_bfs = min(graph_size, max_bfs)
    task_size = max(batch_size, MIN_MORSEL_SIZE)
    while num_bfs // task_size > MAX_MORSEL_TASKS:
        task_size += batch_size
    log.debug("[TaskGen] Task size %d", task_size)
    return [
        (start, min(start + task_size, num_bfs)) for start in range(0, num_bfs, task_size)
    ]


def closeness(total_persons: int, total_distances: int, total_reachable: int) -> float:
    """Closeness of a person from its component size and BFS totals."""
    if total_distances > 0 and total_reachable > 0 and total_persons > 0:
        return (total_reachable - 1) ** 2 / ((total_persons - 1) * total_distances)
    return 0.0


def max_morsel_batch_size() -> int:
    """Batch size cap from the ``MAX_BATCH_SIZE`` environment variable."""
    value = os.environ.get("MAX_BATCH_SIZE")
    if value is None:
        return sys.maxsize
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"MAX_BATCH_SIZE is not an integer: {value!r}") from exc


def _effective_batch_size(runner: BatchRunner) -> int:
    size = min(runner.batch_size, max_morsel_batch_size())
    if size < 1:
        raise ValueError(f"batch size must be at least 1, got {size}")
    return size


@dataclass(eq=False)
class CentralityResult:
    """Closeness of one person with the totals it was computed from."""

    person: int
    distances: int
    num_reachable: int
    centrality: float

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CentralityResult):
            return NotImplemented
        return self.person == other.person and self.centrality == other.centrality

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        return f"{self.person}::{self.distances}"


def _ranks_higher(a: CentralityResult, b: CentralityResult) -> bool:
    delta = a.centrality - b.centrality
    return delta > 0 or (abs(delta) < EPSILON and a.person < b.person)


_SENTINEL = CentralityResult(MAX_PERSON_ID, 0, 0, 0.0)


class QueryState:
    """Shared state of a top-k closeness query."""

    def __init__(self, k: int, graph: Graph) -> None:
        if k < 0:
            raise ValueError(f"k must not be negative, got {k}")
        self.k = k
        self.graph = graph
        self.start_time = now()
        self.person_checked = bytearray(len(graph))
        self._lock = threading.Lock()
        self._entries: list[CentralityResult] = []

    def _bound(self) -> CentralityResult:
        if len(self._entries) < self.k:
            return _SENTINEL
        return self._entries[-1]

    def offer(self, result: CentralityResult) -> bool:
        """Insert ``result`` if it ranks among the best ``k``; report whether it did."""
        with self._lock:
            if self.k == 0 or not _ranks_higher(result, self._bound()):
                return False
            position = next(
                (i for i, entry in enumerate(self._entries) if _ranks_higher(result, entry)),
                len(self._entries),
            )
            self._entries.insert(position, result)
            del self._entries[self.k :]
            return True

    def top_results(self) -> list[CentralityResult]:
        """Best results so far, best first."""
        with self._lock:
            return list(self._entries)

    def result_string(self) -> str:
        """External ids of the best results joined by ``|``."""
        return "|".join(
            str(self.graph.map_internal_node_id(entry.person)) for entry in self.top_results()
        )


def _batches(ids: Sequence[int], start: int, end: int, size: int):
    for begin in range(start, end, size):
        yield begin, ids[begin : min(begin + size, end)]


@dataclass
class MorselTask:
    """Runs the BFS for persons ``ids[range_start:range_end]`` of a top-k query."""

    state: QueryState
    range_start: int
    range_end: int
    ids: Sequence[int]
    runner: Any
    batch_size: int = field(init=False)

    def __post_init__(self) -> None:
        self.runner = _as_batch_runner(self.runner)
        self.batch_size = _effective_batch_size(self.runner)

    def __call__(self) -> None:
        if self.range_end < self.range_start:
            raise ValueError(
                f"[MorselTask] Invalid task range: {self.range_start}-{self.range_end}"
            )
        graph = self.state.graph
        checked = self.state.person_checked
        for _, persons in _batches(self.ids, self.range_start, self.range_end, self.batch_size):
            batch = []
            for person in persons:
                if checked[person]:
                    raise RuntimeError(f"person {person} was already searched")
                checked[person] = 1
                batch.append(BFSData.for_person(person, graph))
            if not batch:
                continue
            self.runner.run_batch(batch, graph)
            for data in batch:
                value = closeness(data.component_size, data.total_distances, data.total_reachable)
                self.state.offer(
                    CentralityResult(data.person, data.total_distances, data.total_reachable, value)
                )


@dataclass
class _ClosenessTask:
    results: list[float]
    range_start: int
    range_end: int
    graph: Graph
    sources: Sequence[int]
    runner: BatchRunner
    batch_size: int

    def __call__(self) -> None:
        if self.range_end < self.range_start:
            raise ValueError(
                f"[MorselTask] Invalid task range: {self.range_start}-{self.range_end}"
            )
        for begin, persons in _batches(
            self.sources, self.range_start, self.range_end, self.batch_size
        ):
            batch = [BFSData.for_person(person, self.graph) for person in persons]
            if not batch:
                continue
            self.runner.run_batch(batch, self.graph)
            for offset, data in enumerate(batch):
                self.results[begin + offset] = closeness(
                    data.component_size, data.total_distances, data.total_reachable
                )


@dataclass(frozen=True)
class TopKRun:
    """Outcome of a top-k query."""

    result: str
    top: list[CentralityResult]
    runtime_ms: int
    num_traversed_edges: int


@dataclass(frozen=True)
class ClosenessRun:
    """Closeness per source, in source order, with run figures."""

    closeness: list[float]
    runtime_ms: int
    num_traversed_edges: int


def _check_threads(num_threads: int) -> None:
    if num_threads < 1:
        raise ValueError(f"num_threads must be at least 1, got {num_threads}")


def _execute(tasks: list[Task], num_threads: int, start: int) -> int:
    scheduler = Scheduler()
    scheduler.schedule_many(tasks)
    scheduler.set_close_on_empty()
    errors: list[BaseException] = []
    errors_lock = threading.Lock()

    def work() -> None:
        try:
            Executor(scheduler).run()
        except BaseException as exc:  # noqa: BLE001 - re-raised below
            with errors_lock:
                errors.append(exc)

    threads = [
        threading.Thread(target=work, name=f"query-worker-{i}", daemon=True)
        for i in range(num_threads - 1)
    ]
    for thread in threads:
        thread.start()
    work()
    runtime = now() - start
    scheduler.wait_all_finished()
    for thread in threads:
        thread.join()
    log.debug("[Query4] All tasks finished")
    if errors:
        raise errors[0]
    return runtime


def _edges_for(graph: Graph, persons: Sequence[int]) -> int:
    return sum(graph.component_edge_count[graph.person_components[p]] for p in persons)


def run_top_k(
    k: int,
    graph: Graph,
    runner: Any,
    max_bfs: int | None = None,
    num_threads: int = 1,
) -> TopKRun:
    """Find the ``k`` persons of highest closeness among the first ``max_bfs``."""
    _check_threads(num_threads)
    batch_runner = _as_batch_runner(runner)
    limit = len(graph) if max_bfs is None else max_bfs
    state = QueryState(k, graph)
    ids = list(range(len(graph)))

    start = now()
    group = TaskGroup()
    num_traversed_edges = 0
    ranges = generate_tasks(limit, len(graph), batch_runner.batch_size)
    for range_start, range_end in ranges:
        group.schedule(MorselTask(state, range_start, range_end, ids, batch_runner))
        num_traversed_edges += _edges_for(graph, ids[range_start:range_end])

    outcome: list[str] = []
    group.join(lambda: outcome.append(state.result_string()))
    log.debug("[Query4] Scheduling %d tasks.", len(ranges))
    runtime = _execute(group.close(), num_threads, start)
    if not outcome:
        raise RuntimeError("query finished without producing a result")
    return TopKRun(outcome[0], state.top_results(), runtime, num_traversed_edges)


def run_closeness(
    graph: Graph,
    sources: Sequence[int],
    runner: Any,
    num_threads: int = 1,
) -> ClosenessRun:
    """Compute the closeness of each source (up to the graph size)."""
    _check_threads(num_threads)
    batch_runner = _as_batch_runner(runner)
    size = len(graph)
    for source in sources:
        if not 0 <= source < size:
            raise ValueError(f"source {source} outside graph of size {size}")
    batch_size = _effective_batch_size(batch_runner)

    start = now()
    ranges = generate_tasks(len(sources), size, batch_runner.batch_size)
    results = [0.0] * min(len(sources), size)
    group = TaskGroup()
    num_traversed_edges = 0
    for range_start, range_end in ranges:
        group.schedule(
            _ClosenessTask(
                results, range_start, range_end, graph, sources, batch_runner, batch_size
            )
        )
        num_traversed_edges += _edges_for(graph, sources[range_start:range_end])
    log.debug("[Query4] Scheduling %d tasks.", len(ranges))
    runtime = _execute(group.close(), num_threads, start)
    return ClosenessRun(results, runtime, num_traversed_edges)
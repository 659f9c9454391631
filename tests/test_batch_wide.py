from __future__ import annotations

import pytest

from msbfs.batch import BatchBFSRunner
from msbfs.batch_wide import WideBatchBFSRunner
from msbfs.graph import Graph
from msbfs.sequential import BFSData, naive_bfs


def _graph(num_nodes: int, edges: list[tuple[int, int]]) -> Graph:
    adjacency: list[list[int]] = [[] for _ in range(num_nodes)]
    for a, b in edges:
        adjacency[a].append(b)
        adjacency[b].append(a)
    return Graph(adjacency)


def _path(n: int) -> Graph:
    return _graph(n, [(i, i + 1) for i in range(n - 1)])


def _star(leaves: int) -> Graph:
    return _graph(leaves + 1, [(0, i) for i in range(1, leaves + 1)])


def _reference(graph: Graph, person: int) -> tuple[int, int]:
    data = naive_bfs(person, graph, BFSData.for_person(person, graph))
    return data.total_distances, data.total_reachable


def _totals(batch: list[BFSData]) -> list[tuple[int, int]]:
    return [(d.total_distances, d.total_reachable) for d in batch]


def test_single_query_on_path():
    graph = _path(4)
    batch = [BFSData.for_person(0, graph)]
    WideBatchBFSRunner().run_batch(batch, graph)
    assert _totals(batch) == [(6, 3)]


def test_default_batch_size_is_256():
    assert WideBatchBFSRunner().batch_size == 256


def test_matches_naive_on_mixed_graph():
    edges = [(0, 1), (1, 2), (2, 3), (3, 0), (2, 4), (4, 5), (6, 7), (7, 8)]
    graph = _graph(9, edges)
    sources = list(range(9))
    batch = [BFSData.for_person(p, graph) for p in sources]
    WideBatchBFSRunner().run_batch(batch, graph)
    assert _totals(batch) == [_reference(graph, p) for p in sources]


def test_agrees_with_narrow_batch_runner():
    edges = [(i, (i * 7 + 3) % 40) for i in range(40)] + [(i, i + 1) for i in range(39)]
    edges = [(a, b) for a, b in edges if a != b]
    graph = _graph(40, edges)
    wide = [BFSData.for_person(p, graph) for p in range(40)]
    narrow = [BFSData.for_person(p, graph) for p in range(40)]
    WideBatchBFSRunner().run_batch(wide, graph)
    BatchBFSRunner().run_batch(narrow, graph)
    assert _totals(wide) == _totals(narrow)


def test_more_than_255_discoveries_in_one_level():
    graph = _star(300)
    batch = [BFSData.for_person(0, graph), BFSData.for_person(5, graph)]
    WideBatchBFSRunner().run_batch(batch, graph)
    assert _totals(batch) == [_reference(graph, 0), _reference(graph, 5)]
    assert batch[0].total_reachable == 300


def test_full_batch_of_256_queries():
    graph = _path(300)
    sources = list(range(0, 300))[:256]
    batch = [BFSData.for_person(p, graph) for p in sources]
    WideBatchBFSRunner().run_batch(batch, graph)
    assert _totals(batch) == [_reference(graph, p) for p in sources]
    assert all(d.remaining == 0 for d in batch)


def test_isolated_source_reaches_nobody():
    graph = _graph(3, [(0, 1)])
    batch = [BFSData.for_person(2, graph), BFSData.for_person(0, graph)]
    WideBatchBFSRunner().run_batch(batch, graph)
    assert _totals(batch)[0] == (0, 0)
    assert _totals(batch)[1] == _reference(graph, 0)


def test_smaller_width_is_accepted():
    graph = _path(10)
    batch = [BFSData.for_person(p, graph) for p in range(8)]
    WideBatchBFSRunner(width=8).run_batch(batch, graph)
    assert _totals(batch) == [_reference(graph, p) for p in range(8)]


def test_returns_the_given_batch():
    graph = _path(5)
    batch = [BFSData.for_person(2, graph)]
    result = WideBatchBFSRunner().run_batch(batch, graph)
    assert result is batch


def test_empty_batch_rejected():
    with pytest.raises(ValueError):
        WideBatchBFSRunner().run_batch([], _path(3))


def test_oversized_batch_rejected():
    graph = _path(20)
    batch = [BFSData.for_person(p, graph) for p in range(9)]
    with pytest.raises(ValueError):
        WideBatchBFSRunner(width=8).run_batch(batch, graph)


def test_duplicate_source_rejected():
    graph = _path(4)
    batch = [BFSData.for_person(1, graph), BFSData.for_person(1, graph)]
    with pytest.raises(ValueError):
        WideBatchBFSRunner().run_batch(batch, graph)


def test_source_outside_graph_rejected():
    graph = _path(4)
    with pytest.raises(ValueError):
        WideBatchBFSRunner().run_batch([BFSData(10, 1)], graph)


@pytest.mark.parametrize("width", [0, 7, 12, -8])
def test_invalid_width_rejected(width):
    with pytest.raises(ValueError):
        WideBatchBFSRunner(width=width)
import pytest

from msbfs.graph import Graph
from msbfs.sequential import (
    BFSData,
    direction_optimizing_bfs,
    naive_bfs,
    no_queue_bfs,
)

ALGORITHMS = [naive_bfs, no_queue_bfs, direction_optimizing_bfs]


def _graph(num_nodes, edges):
    adjacency = [[] for _ in range(num_nodes)]
    for a, b in edges:
        adjacency[a].append(b)
        adjacency[b].append(a)
    return Graph(adjacency)


def _path(n):
    return _graph(n, [(i, i + 1) for i in range(n - 1)])


def _star(leaves):
    return _graph(leaves + 1, [(0, i) for i in range(1, leaves + 1)])


def _mixed():
    edges = [(0, 1), (1, 2), (2, 3), (3, 0), (2, 4), (4, 5), (6, 7), (7, 8)]
    return _graph(10, edges)


@pytest.mark.parametrize("bfs", ALGORITHMS)
def test_path_from_end(bfs):
    graph = _path(4)
    data = bfs(0, graph, BFSData.for_person(0, graph))
    assert data.total_reachable == 3
    assert data.total_distances == 6


@pytest.mark.parametrize("bfs", ALGORITHMS)
def test_star_centre_reaches_all_at_distance_one(bfs):
    leaves = 40
    graph = _star(leaves)
    data = bfs(0, graph, BFSData.for_person(0, graph))
    assert data.total_reachable == leaves
    assert data.total_distances == leaves


@pytest.mark.parametrize("bfs", ALGORITHMS)
def test_star_leaf(bfs):
    leaves = 40
    graph = _star(leaves)
    data = bfs(5, graph, BFSData.for_person(5, graph))
    assert data.total_reachable == leaves
    # one hop to the centre, two hops to every other leaf
    assert data.total_distances == 1 + 2 * (leaves - 1)


@pytest.mark.parametrize("bfs", ALGORITHMS)
def test_isolated_node(bfs):
    graph = _mixed()
    data = bfs(9, graph, BFSData.for_person(9, graph))
    assert data.component_size == 1
    assert data.total_reachable == 0
    assert data.total_distances == 0


@pytest.mark.parametrize("start", range(10))
def test_all_algorithms_agree(start):
    graph = _mixed()
    results = [bfs(start, graph, BFSData.for_person(start, graph)) for bfs in ALGORITHMS]
    assert results[0] == results[1] == results[2]
    assert results[0].total_reachable == results[0].component_size - 1


def test_for_person_uses_component_size():
    graph = _mixed()
    assert BFSData.for_person(0, graph).component_size == 6
    assert BFSData.for_person(7, graph).component_size == 3


def test_returns_the_same_accumulator():
    graph = _path(3)
    data = BFSData.for_person(1, graph)
    assert naive_bfs(1, graph, data) is data
    assert data.total_distances == data.total_reachable


def test_add_level_accumulates():
    data = BFSData(person=0, component_size=10)
    data.add_level(3, 1)
    data.add_level(2, 2)
    assert (data.total_reachable, data.total_distances) == (5, 7)
    assert data.remaining == 4


@pytest.mark.parametrize("bfs", [naive_bfs, no_queue_bfs])
def test_wrong_component_size_raises(bfs):
    graph = _path(3)
    with pytest.raises(ValueError):
        bfs(0, graph, BFSData(person=0, component_size=10))


def test_direction_optimizing_ignores_component_size():
    graph = _path(3)
    data = direction_optimizing_bfs(0, graph, BFSData(person=0, component_size=10))
    assert data.total_reachable == 2
    assert data.total_distances == 3
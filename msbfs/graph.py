"""Loading of person graphs from edge lists and binary adjacency files."""

from __future__ import annotations

import logging
import os
import struct
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .fileio import file_lines

log = logging.getLogger(__name__)

_HEADER = struct.Struct("<QQQ")


def _parse_edge(line: bytes, path: str, lineno: int) -> tuple[int, int]:
    fields = line.split(b"|")
    if len(fields) < 2:
        raise ValueError(f"{path}:{lineno}: expected 'id|id', got {line!r}")
    try:
        return int(fields[0]), int(fields[1])
    except ValueError as exc:
        raise ValueError(f"{path}:{lineno}: invalid node id in {line!r}") from exc


@dataclass
class GraphData:
    """Renamed node count, directed edge list and internal-to-external id map."""

    num_nodes: int
    edges: list[tuple[int, int]]
    rev_renaming: dict[int, int] = field(default_factory=dict)

    @classmethod
    def load_from_path(cls, path: str | os.PathLike[str]) -> GraphData:
        """Load a '|'-separated edge list with a header line.

        Edges are made undirected, self-edges and duplicates are dropped and
        external ids are renamed to dense internal ids.
        """
        name = os.fspath(path)
        log.debug("[LOADING] Number of edges: %d", file_lines(name) - 1)
        log.debug("[LOADING] Loading edges from file: %s", name)

        pairs: list[tuple[int, int]] = []
        with open(name, "rb") as handle:
            handle.readline()
            for lineno, raw in enumerate(handle, start=2):
                line = raw.strip()
                if not line:
                    continue
                id_a, id_b = _parse_edge(line, name, lineno)
                if id_a == id_b:
                    continue
                pairs.append((id_a, id_b))
                pairs.append((id_b, id_a))
        log.debug("[LOADING] Read edges")
        pairs.sort()

        renaming: dict[int, int] = {}
        rev_renaming: dict[int, int] = {}

        def intern(external: int) -> int:
            internal = renaming.get(external)
            if internal is None:
                internal = len(renaming)
                renaming[external] = internal
                rev_renaming[internal] = external
            return internal

        unique: list[tuple[int, int]] = []
        last: tuple[int, int] | None = None
        for pair in pairs:
            if pair != last:
                last = pair
                unique.append((intern(pair[0]), pair[1]))
        edges = [(a, intern(b)) for a, b in unique]
        log.debug("[LOADING] Number of nodes: %d", len(renaming))
        return cls(len(renaming), edges, rev_renaming)

    @classmethod
    def load_binary_from_path(cls, path: str | os.PathLike[str]) -> GraphData:
        """Load a binary CSR file: n, m, size, n+1 offsets (u64), m targets (u32)."""
        name = os.fspath(path)
        with open(name, "rb") as handle:
            blob = handle.read()
        if len(blob) < _HEADER.size:
            raise ValueError(f"Bad data: {name} is too short for a header")
        n, m, sizes = _HEADER.unpack_from(blob)
        expected = (n + 1) * 8 + m * 4 + _HEADER.size
        if sizes != expected:
            raise ValueError(f"Bad data: size field {sizes} != expected {expected}")
        if len(blob) != expected:
            raise ValueError(f"Bad data: file has {len(blob)} bytes, expected {expected}")

        offsets = struct.unpack_from(f"<{n + 1}Q", blob, _HEADER.size)
        targets = struct.unpack_from(f"<{m}I", blob, _HEADER.size + (n + 1) * 8)
        if any(b < a for a, b in zip(offsets, offsets[1:])) or offsets[-1] > m:
            raise ValueError("Bad data: offsets are not a valid CSR index")

        edges = [
            (node, targets[j])
            for node, (begin, end) in enumerate(zip(offsets, offsets[1:]))
            for j in range(begin, end)
        ]
        log.debug("[LOADING] Number of nodes: %d", n)
        return cls(n, edges, {i: i for i in range(n)})


class Graph:
    """Adjacency lists of a person graph with connected-component data."""

    def __init__(
        self,
        adjacency: Iterable[Iterable[int]],
        rev_renaming: dict[int, int] | None = None,
    ) -> None:
        self._adjacency: tuple[tuple[int, ...], ...] = tuple(tuple(n) for n in adjacency)
        size = len(self._adjacency)
        for neighbours in self._adjacency:
            for target in neighbours:
                if not 0 <= target < size:
                    raise ValueError(f"Edge target {target} outside graph of size {size}")
        self._rev_renaming = dict(rev_renaming) if rev_renaming is not None else {
            i: i for i in range(size)
        }
        self.num_edges = sum(len(n) for n in self._adjacency)
        self.person_components, self.component_sizes, self.component_edge_count = (
            self._components()
        )

    @classmethod
    def from_data(cls, data: GraphData) -> Graph:
        """Build a graph from loaded edge data."""
        adjacency: list[list[int]] = [[] for _ in range(data.num_nodes)]
        for source, target in data.edges:
            if not 0 <= source < data.num_nodes:
                raise ValueError(f"Edge source {source} outside graph of size {data.num_nodes}")
            adjacency[source].append(target)
        return cls(adjacency, data.rev_renaming)

    @classmethod
    def load_from_path(cls, path: str | os.PathLike[str]) -> Graph:
        """Load a graph from a '|'-separated edge list file."""
        return cls.from_data(GraphData.load_from_path(path))

    def __len__(self) -> int:
        return len(self._adjacency)

    @property
    def size(self) -> int:
        """Number of vertices."""
        return len(self._adjacency)

    @property
    def num_vertices(self) -> int:
        """Number of vertices."""
        return len(self._adjacency)

    def neighbours(self, person: int) -> tuple[int, ...]:
        """Return the neighbours of an internal node id."""
        return self._adjacency[person]

    def map_internal_node_id(self, node: int) -> int:
        """Translate an internal node id back to the external id."""
        return self._rev_renaming[node]

    def _components(self) -> tuple[tuple[int, ...], tuple[int, ...], tuple[int, ...]]:
        size = len(self._adjacency)
        parent = list(range(size))

        def find(x: int) -> int:
            root = x
            while parent[root] != root:
                root = parent[root]
            while parent[x] != root:
                parent[x], x = root, parent[x]
            return root

        for source, neighbours in enumerate(self._adjacency):
            for target in neighbours:
                ra, rb = find(source), find(target)
                if ra != rb:
                    parent[max(ra, rb)] = min(ra, rb)

        labels: dict[int, int] = {}
        components: list[int] = []
        for node in range(size):
            components.append(labels.setdefault(find(node), len(labels)))

        sizes = [0] * len(labels)
        edge_counts = [0] * len(labels)
        for node, component in enumerate(components):
            sizes[component] += 1
            edge_counts[component] += len(self._adjacency[node])
        return tuple(components), tuple(sizes), tuple(edge_counts)

    def __repr__(self) -> str:
        return f"Graph(num_vertices={self.num_vertices}, num_edges={self.num_edges})"


def _as_sequence(values: Sequence[int]) -> tuple[int, ...]:
    return tuple(values)
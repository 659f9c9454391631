"""Command-line benchmarks of the closeness-centrality BFS runners.

Three commands are offered:

``bench <graph> [runs] [threads] [limit]``
    Runs the top-k closeness query with the built-in benchmark list and
    reports each runner's average time relative to the fastest.
``bencher <graph> <runs> <threads> <type> <width> [limit] [check]``
    Runs the top-k closeness query with one chosen runner.
``simple <graph> <type> <sourcefile> [-W width] [-t repeat] [-f]``
    Computes the closeness of the persons listed in a source file.
"""

from __future__ import annotations

import argparse
import os
import re
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from itertools import pairwise
from typing import Any

from .batch import BatchBFSRunner
from .graph import Graph
from .parallel import ParallelBFSRunner
from .query import generate_tasks, run_closeness, run_top_k
from .sequential import direction_optimizing_bfs, naive_bfs, no_queue_bfs

TOP_K = 7
UNLIMITED = 2**64 - 1

_INT_PREFIX = re.compile(r"\s*[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_CTYPE_NAMES = {
    8: "uint8_t",
    16: "uint16_t",
    32: "uint32_t",
    64: "uint64_t",
    128: "__m128i",
    256: "__m256i",
}

_BATCH_SHAPES = frozenset(
    {
        (128, 8),
        (128, 4),
        (128, 1),
        (256, 2),
        (256, 1),
        (64, 8),
        (64, 1),
        (32, 16),
        (32, 1),
        (16, 32),
        (16, 1),
        (8, 64),
        (8, 1),
    }
)

_SIMPLE_USAGE = (
    "Usage: msbfs simple <filename> <BFSType> <sourceFile> -W <bWidth> -t <repeat> -f"
)
_USAGE = (
    "Usage: msbfs bench <graph> [runs] [threads] [limit]\n"
    "       msbfs bencher <graph> <runs> <threads> <type> <width> [limit] [check]\n"
    "       msbfs simple <graph> <type> <sourcefile> [-W width] [-t repeat] [-f]"
)


class BenchmarkError(RuntimeError):
    """A benchmark cannot run with the given setup."""


@dataclass(frozen=True)
class CommandLine:
    """Looks up flags and flag values among command-line arguments."""

    args: Sequence[str]

    def get_option(self, option: str) -> bool:
        """Whether ``option`` appears among the arguments."""
        return option in self.args

    def get_option_value(self, option: str) -> str | None:
        """The argument following the first ``option``, or ``None``."""
        for current, following in pairwise([*self.args, None]):
            if current == option:
                return following
        return None

    def get_option_int(self, option: str, default: int) -> int:
        """Leading integer of the option's value; 0 if it has none."""
        value = self.get_option_value(option)
        if value is None:
            return default
        match = _INT_PREFIX.match(value)
        return int(match.group()) if match else 0

    def get_option_float(self, option: str, default: float) -> float:
        """Leading number of the option's value; 0.0 if it has none."""
        value = self.get_option_value(option)
        if value is None:
            return default
        match = _FLOAT_PREFIX.match(value)
        return float(match.group()) if match else 0.0


def split_ids(text: str, delim: str) -> list[int]:
    """Split ``text`` at ``delim`` into person ids.

    A trailing delimiter adds no field; an empty or non-numeric field, or a
    negative id, raises ``ValueError``.
    """
    if not text:
        return []
    fields = text.split(delim)
    if fields[-1] == "":
        fields.pop()
    ids = []
    for item in fields:
        try:
            value = int(item)
        except ValueError as exc:
            raise ValueError(f"invalid person id {item!r}") from exc
        if value < 0:
            raise ValueError(f"person id must not be negative, got {value}")
        ids.append(value)
    return ids


def load_sources(path: str | os.PathLike[str]) -> list[int]:
    """Read the space-separated source ids on the first line of a file."""
    with open(path, encoding="utf-8") as handle:
        line = handle.readline()
    if not line:
        raise ValueError(f"Can not read source file {os.fspath(path)}")
    return split_ids(line.rstrip("\r\n"), " ")


@dataclass(frozen=True)
class RunnerSpec:
    """A chosen BFS runner: its name, batch size and how to build it."""

    name: str
    batch_size: int
    bfs_type: str
    factory: Callable[[int], Any]
    ctype: str | None = None
    type_bits: int = 0
    width: int = 1
    uses_threads: bool = False

    def create(self, num_threads: int = 1) -> Any:
        """Build the runner; ``num_threads`` is used by the threaded runner."""
        return self.factory(num_threads)


_SINGLE_SOURCE: dict[str, tuple[str, Callable[[int], Any], bool]] = {
    "naive": ("BFSRunner", lambda _threads: naive_bfs, False),
    "noqueue": ("NoQueueBFSRunner", lambda _threads: no_queue_bfs, False),
    "scbfs": ("SCBFSRunner", lambda _threads: direction_optimizing_bfs, False),
    "parabfs": ("PARABFSRunner", lambda threads: ParallelBFSRunner(threads), True),
}


def make_runner(kind: str, width: int) -> RunnerSpec:
    """Choose a runner by name, or by lane bits and width for batch runners.

    Raises ``ValueError`` for an unknown name or an unsupported combination.
    """
    if kind in _SINGLE_SOURCE:
        name, factory, uses_threads = _SINGLE_SOURCE[kind]
        return RunnerSpec(name, 1, kind, factory, uses_threads=uses_threads)
    try:
        bits = int(kind)
    except ValueError as exc:
        raise ValueError(f"unknown BFS type {kind!r}") from exc
    if (bits, width) not in _BATCH_SHAPES:
        raise ValueError(f"unsupported batch type {bits} with width {width}")
    batch_size = bits * width
    return RunnerSpec(
        name=f"BatchBFS {bits} ({width})",
        batch_size=batch_size,
        bfs_type=f"{bits}_{width}",
        factory=lambda _threads: BatchBFSRunner(width=batch_size),
        ctype=_CTYPE_NAMES[bits],
        type_bits=bits,
        width=width,
    )


def _default_threads() -> int:
    return max(1, (os.cpu_count() or 2) // 2)


def _close(runner: Any) -> None:
    close = getattr(runner, "close", None)
    if callable(close):
        close()


def _check_tasks(limit: int, size: int, batch_size: int, threads: int, factor: int) -> None:
    ranges = generate_tasks(limit, size, batch_size)
    desired = threads * factor
    if len(ranges) < desired:
        raise BenchmarkError(
            f"[Main] Not enough tasks! #Threads={threads}, #Tasks={len(ranges)}, "
            f"#DesiredTasks={desired}, #maxBatchSize={batch_size}"
        )


def _describe_batch(spec: RunnerSpec) -> None:
    if spec.ctype is not None:
        print(
            f"batchType: {spec.type_bits} CTYPE: {spec.ctype} "
            f"sizeof(CTYPE): {spec.type_bits // 8} batchWidth: {spec.width}"
        )


def _relative(value: int, best: int) -> float:
    if best == 0:
        return float("nan") if value == 0 else float("inf")
    return value / best


def _bench_specs() -> list[RunnerSpec]:
    spec = make_runner("128", 4)
    return [
        RunnerSpec(
            "Huge Batch BFS Runner 128 (width 4)",
            spec.batch_size,
            spec.bfs_type,
            spec.factory,
            spec.ctype,
            spec.type_bits,
            spec.width,
        )
    ]


def _cmd_bench(args: list[str]) -> int:
    parser = argparse.ArgumentParser(prog="msbfs bench")
    parser.add_argument("graph")
    parser.add_argument("runs", type=int, nargs="?", default=1)
    parser.add_argument("threads", type=int, nargs="?", default=_default_threads())
    parser.add_argument("limit", type=int, nargs="?", default=UNLIMITED)
    opts = parser.parse_args(args)
    if opts.threads < 1:
        raise ValueError(f"threads must be at least 1, got {opts.threads}")

    specs = _bench_specs()
    max_batch = max(spec.batch_size for spec in specs)
    graph = Graph.load_from_path(opts.graph)
    _check_tasks(opts.limit, len(graph), max_batch, opts.threads, 4)

    averages: dict[str, int] = {}
    min_avg = 2**32 - 1
    for spec in specs:
        print(f"# Benchmarking {spec.name} ... ", end="", flush=True)
        runner = spec.create(opts.threads)
        runtimes = []
        try:
            for _ in range(opts.runs):
                run = run_top_k(TOP_K, graph, runner, opts.limit, opts.threads)
                runtimes.append(run.runtime_ms)
                print(f"{run.runtime_ms}ms ", end="", flush=True)
        finally:
            _close(runner)
        avg = sum(runtimes) // len(runtimes) if runtimes else 0
        averages[spec.name] = avg
        if avg < min_avg:
            min_avg = avg
            print(f" new best => {min_avg}", end="")
        print(f" ... avg: {avg} rel: {_relative(avg, min_avg)}x")

    for spec in specs:
        avg = averages[spec.name]
        print(f"{avg}\t{_relative(avg, min_avg)} # (ms, factor) {spec.name}")
    return 0


def _width_for(kind: str, width: str) -> int:
    if kind in _SINGLE_SOURCE:
        return 1
    try:
        return int(width)
    except ValueError as exc:
        raise ValueError(f"invalid batch width {width!r}") from exc


def _cmd_bencher(args: list[str]) -> int:
    parser = argparse.ArgumentParser(prog="msbfs bencher")
    parser.add_argument("graph")
    parser.add_argument("runs", type=int)
    parser.add_argument("threads", type=int)
    parser.add_argument("kind")
    parser.add_argument("width")
    parser.add_argument("limit", type=int, nargs="?", default=UNLIMITED)
    parser.add_argument("check", nargs="?", default="t")
    opts = parser.parse_args(args)

    limit = opts.limit
    print(f"bfsLimit: {limit}")
    check_tasks = not opts.check.startswith("f")
    print(f"hardware_concurrency: {os.cpu_count() or 0}")

    spec = make_runner(opts.kind, _width_for(opts.kind, opts.width))
    _describe_batch(spec)
    runner = spec.create(opts.threads)
    threads = 1 if spec.uses_threads else opts.threads
    if threads < 1:
        raise ValueError(f"threads must be at least 1, got {threads}")

    try:
        graph = Graph.load_from_path(opts.graph)
        limit = min(limit, len(graph))
        if check_tasks:
            _check_tasks(limit, len(graph), spec.batch_size, threads, 3)
        print(f"# Benchmarking {spec.name} ... ")
        print("# ", end="")
        runtimes = []
        for _ in range(opts.runs):
            run = run_top_k(TOP_K, graph, runner, limit, threads)
            runtimes.append(run.runtime_ms)
            print(f"{run.runtime_ms}ms ", end="", flush=True)
        print()
        if runtimes:
            print(f"# min: {min(runtimes)}ms {spec.bfs_type}")
    finally:
        _close(runner)
    return 0


def _cmd_simple(args: list[str]) -> int:
    if len(args) < 3:
        print(_SIMPLE_USAGE, file=sys.stderr)
        return 1
    options = CommandLine(args)
    threads = _default_threads()
    print(f"hardware_concurrency: {os.cpu_count() or 0}")

    graph = Graph.load_from_path(args[0])
    sources = load_sources(args[2])
    runs = options.get_option_int("-t", 3)

    spec = make_runner(args[1], options.get_option_int("-W", 1))
    _describe_batch(spec)
    runner = spec.create(threads)
    if spec.uses_threads:
        threads = 1

    try:
        limit = min(len(sources), len(graph))
        if options.get_option("-f"):
            _check_tasks(limit, len(graph), spec.batch_size, threads, 3)
        print(f"# Benchmarking {spec.name} ... ")
        print("# ", end="")
        values = [0.0] * limit
        runtimes = []
        for _ in range(runs):
            run = run_closeness(graph, sources, runner, threads)
            values = run.closeness
            runtimes.append(run.runtime_ms)
            print(f"{run.runtime_ms}ms ", end="", flush=True)
        print()
        if runtimes:
            print(f"# min: {min(runtimes)}ms {spec.bfs_type}")
        for source, value in zip(sources[:limit], values):
            print(f"{source}: {value:.6f}")
    finally:
        _close(runner)
    return 0


_COMMANDS: dict[str, Callable[[list[str]], int]] = {
    "bench": _cmd_bench,
    "bencher": _cmd_bencher,
    "simple": _cmd_simple,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Run one of the benchmark commands; return the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] not in _COMMANDS:
        print(_USAGE, file=sys.stderr)
        return 2
    try:
        return _COMMANDS[args[0]](args[1:])
    except (BenchmarkError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
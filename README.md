# msbfs

Breadth-first search runners and closeness-centrality queries for undirected
graphs. Several searches from different start vertices can share one pass over
the graph: each search owns one bit of a per-vertex integer mask.

## Modules

- `msbfs.graph`
  - `GraphData.load_from_path(path)` reads a text edge list: a header line,
    then `idA|idB` lines. Edges are made undirected, self-edges and duplicates
    are dropped, and external ids are renamed to dense internal ids.
  - `GraphData.load_binary_from_path(path)` reads a binary CSR file: three
    little-endian u64 values `n`, `m` and the total size, then `n + 1` u64
    offsets and `m` u32 targets. A size that does not match raises
    `ValueError`.
  - `Graph.from_data(data)` and `Graph.load_from_path(path)` build adjacency
    lists. They also compute connected components (`person_components`,
    `component_sizes`, `component_edge_count`).
  - `Graph.neighbours(person)` returns a vertex's neighbours.
  - `Graph.map_internal_node_id(node)` gives back the external id.
- `msbfs.sequential`: single-source searches. Each adds per-level totals to a
  `BFSData` accumulator, which `BFSData.for_person(person, graph)` creates.
  - `naive_bfs` is queue based.
  - `no_queue_bfs` keeps the frontier in flag arrays.
  - `direction_optimizing_bfs` switches between top-down and bottom-up rounds.
- `msbfs.parallel.ParallelBFSRunner(num_threads)` runs a level-synchronous
  search. The frontier of each level is split across a thread pool. It works
  as a context manager, or call `close()` when done.
- Batched multi-source runners: each `run_batch(bfs_data, graph)` call runs up
  to `width` searches at once.
  - `msbfs.batch.BatchBFSRunner` (default width 64).
  - `msbfs.batch.SeededBatchBFSRunner` (default width 128) fills the first
    level straight from the sources' neighbours.
  - `msbfs.batch_wide.WideBatchBFSRunner` (default width 256, a multiple of 8)
    counts discoveries in packed byte lanes.
- `msbfs.query`
  - `generate_tasks(max_bfs, graph_size, batch_size)` splits the searches into
    morsel ranges.
  - `closeness(total_persons, total_distances, total_reachable)` is the
    centrality formula.
  - `run_top_k(k, graph, runner, max_bfs, num_threads)` returns a `TopKRun`
    holding:
    - `result`: the external ids of the best `k` persons, joined by `|`.
    - `top`: the `CentralityResult` entries.
    - `runtime_ms`.
    - `num_traversed_edges`.
  - `run_closeness(graph, sources, runner, num_threads)` returns a
    `ClosenessRun` holding one closeness value per source, in source order.
  - A runner may be a batch runner, an object with a `run` method, or a plain
    search function such as `naive_bfs`.
  - The environment variable `MAX_BATCH_SIZE` caps the batch size used per
    call.
- `msbfs.scheduler`
  - `Scheduler` is a priority task scheduler with separate IO and work queues.
  - `Executor` runs its tasks.
  - `TaskGroup.join` runs a task after all tasks in the group have finished.
- `msbfs.timing`
  - `now()` gives milliseconds since the module was loaded.
  - `TimeFrame` measures an interval.
- `msbfs.fileio.file_lines(path)` counts the lines of a file.

## Installing

```
pip install .
```

## Using it from Python

```python
from msbfs.graph import Graph
from msbfs.query import run_top_k, run_closeness
from msbfs.cli import make_runner

graph = Graph.load_from_path("person_knows_person.csv")
runner = make_runner("64", 1).create()

top = run_top_k(7, graph, runner, len(graph), 4)
print(top.result)       # external ids of the most central persons, "|"-separated

scores = run_closeness(graph, [0, 1, 2], runner, 4)
print(scores.closeness)
```

`make_runner(kind, width)` returns a `RunnerSpec`, and its `create(num_threads)`
builds the runner.

- `kind` is one of `naive`, `noqueue`, `scbfs` or `parabfs`.
- `kind` may also be a lane size in bits, given with a matching width. The
  supported pairs are 128×8, 128×4, 128×1, 256×2, 256×1, 64×8, 64×1, 32×16,
  32×1, 16×32, 16×1, 8×64 and 8×1.
- Every batch choice builds a `BatchBFSRunner` of width `bits * width`.

## Command line

The `msbfs` command has three subcommands.

```
msbfs bench <graph> [runs] [threads] [limit]
msbfs bencher <graph> <runs> <threads> <type> <width> [limit] [check]
msbfs simple <graph> <type> <sourcefile> [-W width] [-t repeat] [-f]
```

- `bench` runs the top-7 closeness query with the batch runner of 128-bit
  lanes and width 4.
  - Defaults: 1 run, half the CPU count as threads, no limit on the number of
    searches.
  - It fails unless there are at least four tasks per thread.
  - It prints each run's time, the average, and the average relative to the
    fastest.
- `bencher` runs the top-7 query with the runner chosen by `<type>` and
  `<width>`.
  - `<width>` is still required, though it is ignored for the single-source
    types.
  - It checks that there are at least three tasks per thread. A `check`
    argument starting with `f` turns the check off.
  - With `parabfs`, the query runs on one thread and the runner uses the
    threads.
  - It prints each run's time and the fastest run.
- `simple` computes the closeness of the persons listed on the first line of
  `<sourcefile>`, as space-separated internal ids.
  - `-W` sets the batch width (default 1).
  - `-t` sets the repeat count (default 3).
  - `-f` enables the task-count check.
  - It prints each run's time, then `source: closeness` for every source.

The exit status is 2 for a missing or unknown subcommand, 1 for an error and
0 on success.

## What it does not do

- The commands take a graph file directly. They do not read lists of
  datasets.
- They do not compare the query results with expected answers.
- All runners are plain Python. The bit widths only set how many searches
  share a batch.

## Running the tests

```
pip install .[test]
pytest
```
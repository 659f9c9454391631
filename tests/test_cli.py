import re

import pytest

from msbfs.cli import (
    CommandLine,
    load_sources,
    main,
    make_runner,
    split_ids,
)
from msbfs.parallel import ParallelBFSRunner

RESULT_LINE = re.compile(r"^\d+: ")


@pytest.fixture
def graph_file(tmp_path):
    path = tmp_path / "person_knows_person.csv"
    path.write_text("Person.id|Person.id\n10|20\n20|30\n")
    return path


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "sources.txt"
    path.write_text("0 1 2\n")
    return path


def _result_lines(out):
    return [line for line in out.splitlines() if RESULT_LINE.match(line)]


def test_get_option_present_and_absent():
    cl = CommandLine(["graph", "-f", "-t", "4"])
    assert cl.get_option("-f") is True
    assert cl.get_option("-W") is False


def test_get_option_value():
    cl = CommandLine(["-t", "4", "-W"])
    assert cl.get_option_value("-t") == "4"
    assert cl.get_option_value("-W") is None
    assert cl.get_option_value("-x") is None


def test_get_option_int():
    cl = CommandLine(["-t", "5", "-W", "12abc", "-x", "junk"])
    assert cl.get_option_int("-t", 3) == 5
    assert cl.get_option_int("-W", 1) == 12
    assert cl.get_option_int("-x", 9) == 0
    assert cl.get_option_int("-q", 3) == 3


def test_get_option_float():
    cl = CommandLine(["-a", "2.5", "-b", "nope"])
    assert cl.get_option_float("-a", 1.0) == 2.5
    assert cl.get_option_float("-b", 1.0) == 0.0
    assert cl.get_option_float("-c", 1.5) == 1.5


def test_split_ids():
    assert split_ids("3 1 2", " ") == [3, 1, 2]
    assert split_ids("3 1 2 ", " ") == [3, 1, 2]
    assert split_ids("", " ") == []


def test_split_ids_rejects_empty_field():
    with pytest.raises(ValueError):
        split_ids("1  2", " ")


def test_split_ids_rejects_negative():
    with pytest.raises(ValueError):
        split_ids("1 -2", " ")


def test_load_sources_reads_first_line(tmp_path):
    path = tmp_path / "s.txt"
    path.write_text("3 1 2\n4 5\n")
    assert load_sources(path) == [3, 1, 2]


def test_load_sources_empty_file(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("")
    with pytest.raises(ValueError):
        load_sources(path)


def test_make_runner_single_source():
    spec = make_runner("naive", 1)
    assert spec.batch_size == 1
    assert spec.bfs_type == "naive"
    assert spec.name == "BFSRunner"


def test_make_runner_batch():
    spec = make_runner("32", 16)
    assert spec.bfs_type == "32_16"
    assert spec.name == "BatchBFS 32 (16)"
    assert spec.ctype == "uint32_t"
    assert spec.create().batch_size == spec.batch_size


def test_make_runner_unsupported_shape():
    with pytest.raises(ValueError):
        make_runner("64", 3)
    with pytest.raises(ValueError):
        make_runner("bogus", 1)


def test_make_runner_parallel():
    spec = make_runner("parabfs", 1)
    runner = spec.create(2)
    try:
        assert isinstance(runner, ParallelBFSRunner)
        assert runner.num_threads == 2
    finally:
        runner.close()


def test_simple_runners_agree(graph_file, source_file, capsys):
    outputs = {}
    for kind, extra in [("naive", []), ("noqueue", []), ("64", ["-W", "1"])]:
        code = main(["simple", str(graph_file), kind, str(source_file), "-t", "1", *extra])
        assert code == 0
        outputs[kind] = _result_lines(capsys.readouterr().out)
    assert len(outputs["naive"]) == 3
    assert outputs["naive"] == outputs["noqueue"] == outputs["64"]
    assert "1: 0.250000" in outputs["naive"]


def test_simple_prints_benchmark_header(graph_file, source_file, capsys):
    assert main(["simple", str(graph_file), "naive", str(source_file), "-t", "1"]) == 0
    assert "# Benchmarking BFSRunner ... " in capsys.readouterr().out


def test_simple_unsupported_width(graph_file, source_file):
    assert main(["simple", str(graph_file), "64", str(source_file), "-W", "3"]) == 1


def test_simple_too_few_arguments(graph_file):
    assert main(["simple", str(graph_file)]) == 1


def test_bencher_not_enough_tasks(graph_file, capsys):
    assert main(["bencher", str(graph_file), "1", "4", "64", "8"]) == 1
    assert "Not enough tasks" in capsys.readouterr().err


def test_bencher_without_task_check(graph_file, capsys):
    assert main(["bencher", str(graph_file), "1", "1", "64", "8", "1000", "f"]) == 0
    out = capsys.readouterr().out
    assert "bfsLimit: 1000" in out
    assert "batchType: 64 CTYPE: uint64_t sizeof(CTYPE): 8 batchWidth: 8" in out


def test_bench_not_enough_tasks(graph_file, capsys):
    assert main(["bench", str(graph_file), "1", "1"]) == 1
    assert "Not enough tasks" in capsys.readouterr().err


def test_unknown_command():
    assert main(["frobnicate"]) == 2
    assert main([]) == 2


def test_missing_graph_file(tmp_path, source_file):
    missing = tmp_path / "missing.csv"
    assert main(["simple", str(missing), "naive", str(source_file)]) == 1
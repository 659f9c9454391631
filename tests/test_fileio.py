import pytest

from msbfs.fileio import file_lines


def _write(tmp_path, content: bytes):
    path = tmp_path / "data.txt"
    path.write_bytes(content)
    return path


def test_counts_newline_terminated_lines(tmp_path):
    assert file_lines(_write(tmp_path, b"a\nb\n")) == 2


def test_counts_final_line_without_newline(tmp_path):
    assert file_lines(_write(tmp_path, b"a\nb")) == 2


def test_blank_lines_count(tmp_path):
    assert file_lines(_write(tmp_path, b"\n\n\n")) == 3


def test_single_line_without_newline(tmp_path):
    assert file_lines(_write(tmp_path, b"header")) == 1


def test_large_file_spanning_chunks(tmp_path):
    content = b"x" * 10 + b"\n"
    path = _write(tmp_path, content * 200_000)
    assert file_lines(path) == 200_000


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        file_lines(tmp_path / "missing.txt")


def test_empty_file_raises(tmp_path):
    with pytest.raises(ValueError):
        file_lines(_write(tmp_path, b""))


def test_directory_raises(tmp_path):
    with pytest.raises(OSError):
        file_lines(tmp_path)
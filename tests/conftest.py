"""Shared test fixtures."""

from pathlib import Path

import pytest

from sizetreelib import Entry, normalize


def write_file(path: Path, size: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    return path


@pytest.fixture
def scenario_entries():
    """Three files whose directories are all implied."""
    return [
        Entry.file("a/x.txt", 10),
        Entry.file("a/b/y.txt", 5),
        Entry.file("a/b/z.txt", 7),
    ]


@pytest.fixture
def disk_tree(tmp_path):
    """The same scenario on disk, plus an empty directory.

    Layout::

        root/
          a/x.txt        10 bytes
          a/b/y.txt       5 bytes
          a/b/z.txt       7 bytes
          empty/
    """
    root = tmp_path / "root"
    write_file(root / "a" / "x.txt", 10)
    write_file(root / "a" / "b" / "y.txt", 5)
    write_file(root / "a" / "b" / "z.txt", 7)
    (root / "empty").mkdir()
    return root


@pytest.fixture
def wide_tree(tmp_path):
    """Several directories with many small files each."""
    root = tmp_path / "wide"
    for d in range(4):
        for f in range(12):
            write_file(root / f"dir{d}" / f"sub{f % 3}" / f"file{f}.bin", d * 100 + f)
    return root


def norm(path) -> str:
    return normalize(str(path))

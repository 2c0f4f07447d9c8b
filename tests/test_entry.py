"""Tests for the Entry model."""

import pytest

from sizetreelib import Entry, EntryAlreadyFinalError


class TestEntryCreation:

    def test_file_is_final_on_creation(self):
        entry = Entry.file("a\\b.txt", 5)
        assert entry.path == "a/b.txt"
        assert entry.name == "b.txt"
        assert entry.is_directory is False
        assert entry.size == 5
        assert entry.size_final is True

    def test_negative_or_missing_file_size_is_zero(self):
        assert Entry.file("x", -3).size == 0
        assert Entry.file("x", None).size == 0

    def test_directory_starts_unknown(self):
        entry = Entry.directory("a/b/")
        assert entry.path == "a/b"
        assert entry.name == "b"
        assert entry.size == 0
        assert entry.size_final is False
        assert entry.synthesized is False


class TestFinalize:

    def test_finalize_once(self):
        entry = Entry.directory("a")
        entry.finalize(22)
        assert entry.size == 22
        assert entry.size_final is True

    def test_second_finalize_raises(self):
        entry = Entry.directory("a")
        entry.finalize(22)
        with pytest.raises(EntryAlreadyFinalError) as exc_info:
            entry.finalize(22)
        assert exc_info.value.path == "a"
        assert entry.size == 22

    def test_negative_size_rejected(self):
        with pytest.raises(ValueError):
            Entry.directory("a").finalize(-1)

    def test_final_size_cannot_shrink_below_partial(self):
        entry = Entry.directory("a")
        entry.observe(10)
        with pytest.raises(ValueError):
            entry.finalize(9)
        assert entry.size_final is False


class TestObserve:

    def test_partial_sizes_only_grow(self):
        entry = Entry.directory("a")
        assert entry.observe(5) is True
        assert entry.observe(3) is False
        assert entry.observe(5) is False
        assert entry.size == 5
        assert entry.size_final is False

    def test_observe_after_final_ignored(self):
        entry = Entry.directory("a")
        entry.finalize(4)
        assert entry.observe(100) is False
        assert entry.size == 4


def test_to_dict_uses_wire_names():
    assert Entry.file("a/x.txt", 10).to_dict() == {
        'path': 'a/x.txt',
        'name': 'x.txt',
        'isDirectory': False,
        'size': 10,
        'sizeFinal': True,
    }

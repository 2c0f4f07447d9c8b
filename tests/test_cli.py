"""Tests for the command line interface."""

import json

import pytest

from sizetreelib import __version__
from sizetreelib.cli import build_parser, main


def test_table_output(disk_tree, capsys):
    assert main([str(disk_tree), '--sort', 'name']) == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split() == ['22.00', 'Bytes', 'a/']
    assert lines[1].split() == ['0', 'Bytes', 'empty/']
    assert 'total (6 entries' in lines[-1]
    assert lines[-1].split()[:2] == ['22.00', 'Bytes']


def test_min_size_hides_small_entries(disk_tree, capsys):
    assert main([str(disk_tree), '--min-size', '1']) == 0

    out = capsys.readouterr().out
    assert 'a/' in out
    assert 'empty/' not in out


def test_json_lines(disk_tree, capsys):
    assert main([str(disk_tree), '--json', '-c', '2']) == 0

    events = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert events[0] == {'action': 'init'}
    assert events[1]['action'] == 'listing'
    assert events[-1]['action'] == 'scanComplete'
    assert events[-1]['totalEntries'] == 6
    finals = {e['path']: e['size'] for e in events if e['action'] == 'sizeFinal'}
    assert max(finals.values()) == 22


def test_missing_root_exits_with_error(tmp_path, capsys):
    assert main([str(tmp_path / 'missing')]) == 1

    assert 'error:' in capsys.readouterr().err


def test_non_positive_concurrency(disk_tree):
    assert main([str(disk_tree), '-c', '0']) == 2


def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        build_parser().parse_args(['--version'])
    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out

"""End-to-end tests for the scan engine."""

import errno
import os
import sys

import pytest

from sizetreelib import (
    Entry,
    Error,
    FailFastPolicy,
    Init,
    Listing,
    LiveWalker,
    ScanComplete,
    ScanConfig,
    ScanEngine,
    SizeFinal,
)
from sizetreelib.events import final_sizes

from conftest import norm, write_file


async def collect(stream):
    return [event async for event in stream]


class TestLiveScan:

    @pytest.mark.asyncio
    async def test_scenario_sizes(self, disk_tree):
        engine = ScanEngine(ScanConfig.live(concurrency_limit=4))

        events = await collect(engine.start_scan(disk_tree))

        root = norm(disk_tree)
        sizes = final_sizes(events)
        assert sizes == {
            f"{root}/a/b": 12,
            f"{root}/a": 22,
            f"{root}/empty": 0,
            root: 22,
        }
        assert isinstance(events[-1], ScanComplete)
        assert events[-1].total_entries == 6
        assert not any(isinstance(e, Error) for e in events)

    @pytest.mark.asyncio
    async def test_event_ordering(self, disk_tree):
        events = await collect(ScanEngine().start_scan(disk_tree))

        root = norm(disk_tree)
        first_listing = {}
        final_at = {}
        for index, event in enumerate(events):
            if isinstance(event, Listing):
                first_listing.setdefault(event.path, index)
            elif isinstance(event, SizeFinal):
                assert event.path not in final_at, "size reported twice"
                final_at[event.path] = index

        assert first_listing[root] == 0
        assert final_at[f"{root}/a/b"] < final_at[f"{root}/a"] < final_at[root]
        for path, index in final_at.items():
            assert first_listing[path] < index

    @pytest.mark.asyncio
    async def test_listings_carry_pending_directories(self, disk_tree):
        events = await collect(ScanEngine().start_scan(disk_tree))

        root_listing = next(e for e in events if isinstance(e, Listing))
        directories = [c for c in root_listing.children if c.is_directory]
        assert directories
        assert not any(c.size_final for c in directories)

    @pytest.mark.asyncio
    async def test_cache_holds_final_sizes(self, disk_tree):
        engine = ScanEngine()
        await collect(engine.start_scan(disk_tree))

        root = norm(disk_tree)
        children = {c.name: c for c in engine.cache.get(root)}
        assert children["a"].size == 22 and children["a"].size_final
        assert children["empty"].size_final
        assert engine.session.tree.root_size == 22

    @pytest.mark.asyncio
    async def test_failed_stat_undercounts_and_reports(self, disk_tree, monkeypatch):
        original = LiveWalker._stat

        def flaky_stat(self, path):
            if path.endswith("z.txt"):
                raise PermissionError(errno.EACCES, "Permission denied")
            return original(self, path)

        monkeypatch.setattr(LiveWalker, "_stat", flaky_stat)

        events = await collect(ScanEngine().start_scan(disk_tree))

        root = norm(disk_tree)
        sizes = final_sizes(events)
        assert sizes[f"{root}/a/b"] == 5
        assert sizes[f"{root}/a"] == 15
        errors = [e for e in events if isinstance(e, Error)]
        assert len(errors) == 1
        assert errors[0].path.endswith("a/b/z.txt")
        assert not errors[0].is_fatal
        assert isinstance(events[-1], ScanComplete)

    @pytest.mark.asyncio
    async def test_unreadable_subdirectory_finalizes_ancestors(self, disk_tree, monkeypatch):
        original = LiveWalker._scan

        def locked_scan(self, path):
            if path.endswith("/a/b"):
                raise PermissionError(errno.EACCES, "Permission denied")
            return original(self, path)

        monkeypatch.setattr(LiveWalker, "_scan", locked_scan)

        events = await collect(ScanEngine().start_scan(disk_tree))

        root = norm(disk_tree)
        assert final_sizes(events) == {
            f"{root}/a/b": 0,
            f"{root}/a": 10,
            f"{root}/empty": 0,
            root: 10,
        }
        errors = [e for e in events if isinstance(e, Error)]
        assert len(errors) == 1
        assert errors[0].path.endswith("a/b")
        assert not errors[0].is_fatal
        assert isinstance(events[-1], ScanComplete)

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="backslash is a separator on Windows")
    async def test_backslash_in_file_name(self, tmp_path):
        write_file(tmp_path / "root" / "x\\y.txt", 10)
        write_file(tmp_path / "root" / "real.txt", 5)

        events = await collect(ScanEngine().start_scan(tmp_path / "root"))

        assert final_sizes(events)[norm(tmp_path / "root")] == 15
        assert not any(isinstance(e, Error) for e in events)
        assert isinstance(events[-1], ScanComplete)

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    async def test_symlink_cycle_independent_of_concurrency(self, disk_tree):
        os.symlink(disk_tree, disk_tree / "a" / "back")
        config = ScanConfig.live(follow_symlinks=True)

        narrow = await collect(ScanEngine(config).start_scan(disk_tree, concurrency_limit=1))
        wide = await collect(ScanEngine(config).start_scan(disk_tree, concurrency_limit=64))

        root = norm(disk_tree)
        assert final_sizes(narrow) == final_sizes(wide)
        assert final_sizes(narrow)[f"{root}/a/back"] == 0
        assert final_sizes(narrow)[root] == 22
        assert isinstance(narrow[-1], ScanComplete)

    @pytest.mark.asyncio
    async def test_result_independent_of_concurrency(self, wide_tree):
        narrow = final_sizes(await collect(ScanEngine().start_scan(wide_tree, concurrency_limit=1)))
        wide = final_sizes(await collect(ScanEngine().start_scan(wide_tree, concurrency_limit=64)))

        assert narrow == wide
        assert narrow[norm(wide_tree)] == sum(d * 100 + f for d in range(4) for f in range(12))

    @pytest.mark.asyncio
    async def test_cancel_before_consuming(self, disk_tree):
        engine = ScanEngine()
        stream = engine.start_scan(disk_tree)

        engine.cancel_scan()

        assert await collect(stream) == []

    @pytest.mark.asyncio
    async def test_cancel_mid_scan(self, wide_tree):
        engine = ScanEngine(ScanConfig.live(concurrency_limit=2))
        events = []

        async for event in engine.start_scan(wide_tree):
            events.append(event)
            if len(events) == 3:
                engine.cancel_scan()

        assert len(events) == 3
        assert not any(isinstance(e, ScanComplete) for e in events)

    @pytest.mark.asyncio
    async def test_new_scan_cancels_previous(self, disk_tree, wide_tree):
        engine = ScanEngine()
        first = engine.start_scan(wide_tree)
        first_event = await first.__anext__()
        assert isinstance(first_event, Listing)

        second = await collect(engine.start_scan(disk_tree))

        assert await collect(first) == []
        assert isinstance(second[-1], ScanComplete)
        assert engine.cache.get(norm(wide_tree)) is None

    @pytest.mark.asyncio
    async def test_missing_root_is_fatal(self, tmp_path):
        events = await collect(ScanEngine().start_scan(tmp_path / "missing"))

        assert len(events) == 1
        assert isinstance(events[0], Error)
        assert events[0].is_fatal

    @pytest.mark.asyncio
    async def test_fail_fast_ends_scan(self, disk_tree, monkeypatch):
        def broken_stat(self, path):
            raise OSError(errno.EIO, "I/O error")

        monkeypatch.setattr(LiveWalker, "_stat", broken_stat)
        engine = ScanEngine(ScanConfig.live(error_policy=FailFastPolicy()))

        events = await collect(engine.start_scan(disk_tree))

        assert isinstance(events[-1], Error)
        assert events[-1].is_fatal
        assert not any(isinstance(e, ScanComplete) for e in events)

    @pytest.mark.asyncio
    async def test_on_event_and_request_listing(self, disk_tree):
        seen = []
        engine = ScanEngine(on_event=seen.append)

        assert engine.init() == Init()
        events = await collect(engine.start_scan(disk_tree))
        assert seen == [Init()] + events

        root = norm(disk_tree)
        listing = engine.request_listing(root)
        assert listing.path == root
        assert seen[-1] is listing
        assert {c.name for c in listing.children} == {"a", "empty"}
        assert all(c.size_final for c in listing.children)
        assert engine.request_listing(f"{root}/nope") is None

    def test_request_listing_without_scan(self):
        assert ScanEngine().request_listing("anything") is None

    @pytest.mark.asyncio
    async def test_stats(self, disk_tree):
        engine = ScanEngine(ScanConfig.live(concurrency_limit=3))
        await collect(engine.start_scan(disk_tree))

        stats = engine.get_stats()
        assert stats['completed'] is True
        assert stats['entries'] == 6
        assert stats['pending_directories'] == 0
        assert stats['walker']['max_concurrent'] == 3


class TestInMemoryScan:

    @pytest.mark.asyncio
    async def test_batches_emit_changed_listings(self):
        engine = ScanEngine(ScanConfig.in_memory())
        batches = [
            [Entry.file("a/x.txt", 10)],
            [Entry.file("a/b/y.txt", 5), Entry.file("a/b/z.txt", 7)],
        ]

        events = await collect(engine.scan_entries(batches))

        listings = [e for e in events if isinstance(e, Listing)]
        assert [listing.path for listing in listings] == ["", "a", "a", "a/b"]
        assert [e for e in events if isinstance(e, SizeFinal)] == [
            SizeFinal("a/b", 12),
            SizeFinal("a", 22),
        ]
        assert events[-1].total_entries == 5

    @pytest.mark.asyncio
    async def test_large_batch_yields_while_merging(self):
        engine = ScanEngine(ScanConfig.in_memory(yield_every_n=10))
        entries = [Entry.file(f"flat/f{i}.bin", i) for i in range(100)]

        events = await collect(engine.scan_entries([entries]))

        assert engine.session.cooperative.yields >= 10
        assert final_sizes(events) == {"flat": sum(range(100))}
        listings = [e for e in events if isinstance(e, Listing)]
        assert [listing.path for listing in listings] == ["", "flat"]
        assert len(listings[-1].children) == 100

    @pytest.mark.asyncio
    @pytest.mark.parametrize("strategy", ['depth_sorted', 'dependency_counted'])
    async def test_strategies(self, strategy):
        entries = [
            Entry.file("a/x.txt", 10),
            Entry.file("a/b/y.txt", 5),
            Entry.file("a/b/z.txt", 7),
            Entry.directory("empty"),
        ]
        engine = ScanEngine()

        events = await collect(engine.scan_entries([entries], strategy))

        assert final_sizes(events) == {"a/b": 12, "a": 22, "empty": 0}
        root_children = {c.path: c for c in engine.cache.get("")}
        assert root_children["a"].size == 22
        assert root_children["a"].size_final

    @pytest.mark.asyncio
    async def test_async_batches(self):
        async def batches():
            yield [Entry.file("p/q.txt", 3)]
            yield [Entry.file("p/r.txt", 4)]

        events = await collect(ScanEngine().scan_entries(batches()))

        assert final_sizes(events) == {"p": 7}

    @pytest.mark.asyncio
    async def test_scan_files(self):
        files = [
            {'relative_path': 'docs/a.md', 'size': 100},
            {'relative_path': 'docs/img/b.png', 'size': 2048},
            {'name': 'loose.txt', 'size': 1},
        ]

        events = await collect(ScanEngine().scan_files(files))

        assert final_sizes(events) == {"docs/img": 2048, "docs": 2148}

    @pytest.mark.asyncio
    async def test_cancel_in_memory(self):
        engine = ScanEngine()
        stream = engine.scan_entries([[Entry.file("a/b", 1)]])
        engine.cancel_scan()

        assert await collect(stream) == []

    def test_unknown_strategy(self):
        with pytest.raises(ValueError, match="Unknown strategy"):
            ScanEngine().scan_entries([], 'random')

"""Scan engine: ties discovery, aggregation and the listing cache together.

All mutable state of a scan lives in a ScanSession owned by the engine
instance, so independent engines (or consecutive scans) never share a
tree, a cache or pending counts.
"""

import logging
import threading
import time
from typing import (
    Any, AsyncIterable, AsyncIterator, Callable, Dict, Iterable, Iterator, List, Optional, Union,
)

from ._common import Entry, ScanRootError, ancestors_of, normalize
from .aggregation import (
    Cooperative,
    DependencyCountedAggregator,
    aggregate_dependency_counted,
    aggregate_depth_sorted,
)
from .cache import ListingCache
from .config import ScanConfig
from .events import (
    Error,
    Init,
    Listing,
    ScanComplete,
    ScanEvent,
    SizeFinal,
    SizeProgress,
)
from .tree import DirectoryTree, entries_from_files
from .walker import LiveWalker, WalkError

log = logging.getLogger(__name__)

EventCallback = Callable[[ScanEvent], None]
EntryBatches = Union[Iterable[Iterable[Entry]], AsyncIterable[Iterable[Entry]]]

STRATEGIES = ('depth_sorted', 'dependency_counted')


class ScanSession:
    """State of a single scan: tree, cache, pending counts, cancel flag."""

    def __init__(self, root: Any = "", config: Optional[ScanConfig] = None):
        config = config or ScanConfig()
        self.root = normalize(root)
        self.tree = DirectoryTree(self.root)
        self.cache = ListingCache()
        self.aggregator = DependencyCountedAggregator(
            self.tree,
            include_root=bool(self.root),
            emit_progress=config.emit_progress,
        )
        self.cooperative = Cooperative(config.yield_every_n)
        self._cancelled = threading.Event()
        self.started = time.perf_counter()
        self.completed = False
        self.errors: List[Error] = []

    def cancel(self) -> None:
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started) * 1000.0

    def listing(self, path: str) -> Optional[Listing]:
        """Build a Listing event from the cached children of ``path``."""
        children = self.cache.get(path)
        if children is None:
            return None
        return Listing(normalize(path), tuple(children))

    def apply(self, event: ScanEvent) -> None:
        """Mirror an aggregation event into the listing cache."""
        if isinstance(event, (SizeFinal, SizeProgress)):
            if event.path == self.root:
                return
            self.cache.update_child_size(
                self.tree.parent_of(event.path),
                event.path,
                event.size,
                isinstance(event, SizeFinal),
            )
        elif isinstance(event, Error):
            self.errors.append(event)


class ScanEngine:
    """Entry point for scans.

    ``start_scan`` walks a live filesystem, ``scan_entries`` aggregates
    entries that are already in memory. Both return async iterators of
    events and replace the previous session wholesale. Every event is
    also passed to ``on_event`` (a transport hook), if given.
    """

    def __init__(self, config: Optional[ScanConfig] = None,
                 on_event: Optional[EventCallback] = None):
        """
        Args:
            config: Scan configuration (defaults to ScanConfig())
            on_event: Called with every event the engine emits

        Raises:
            ValueError: If the configuration is invalid
        """
        self.config = config or ScanConfig()
        problems = self.config.validate()
        if problems:
            raise ValueError("Invalid scan configuration: " + "; ".join(problems))
        self.on_event = on_event
        self.session: Optional[ScanSession] = None
        self.walker: Optional[LiveWalker] = None

    def _emit(self, event: ScanEvent) -> ScanEvent:
        if self.on_event is not None:
            self.on_event(event)
        return event

    def init(self) -> Init:
        """Announce that the engine accepts scan requests."""
        return self._emit(Init())

    @property
    def cache(self) -> Optional[ListingCache]:
        return self.session.cache if self.session is not None else None

    def _new_session(self, root: Any = "") -> ScanSession:
        if self.session is not None and not self.session.completed:
            self.session.cancel()
        self.session = ScanSession(root, self.config)
        return self.session

    def cancel_scan(self) -> None:
        """Stop the current scan; nothing more is emitted for it."""
        if self.session is not None:
            log.info("Cancelling scan of %r", self.session.root)
            self.session.cancel()

    def request_listing(self, path: Any) -> Optional[Listing]:
        """Re-deliver an already cached directory listing.

        Returns:
            The Listing event, or None if the directory is not cached
        """
        if self.session is None:
            return None
        listing = self.session.listing(path)
        if listing is not None:
            self._emit(listing)
        return listing

    def start_scan(self, root: Any, concurrency_limit: Optional[int] = None
                   ) -> AsyncIterator[ScanEvent]:
        """Walk ``root`` and stream listings and sizes as they become known.

        The session is created immediately, so a ``cancel_scan`` issued
        before the stream is consumed already applies to this scan.

        Args:
            root: Directory to scan
            concurrency_limit: Overrides the configured I/O limit

        Returns:
            Async iterator of Listing, SizeProgress, SizeFinal and Error
            events, ending with ScanComplete unless the scan was
            cancelled or failed
        """
        session = self._new_session(root)
        limit = concurrency_limit if concurrency_limit is not None else self.config.concurrency_limit
        self.walker = LiveWalker(
            concurrency_limit=limit,
            follow_symlinks=self.config.follow_symlinks,
            policy=self.config.error_policy,
        )
        log.info("Scanning %r (concurrency limit: %s)", session.root, limit or 'unbounded')
        return self._run_live(session, self.walker)

    async def _run_live(self, session: ScanSession, walker: LiveWalker
                        ) -> AsyncIterator[ScanEvent]:
        records = walker.walk(session.root, session.is_cancelled)
        try:
            async for record in records:
                if isinstance(record, WalkError):
                    events: List[ScanEvent] = [Error(record.message, record.path)]
                else:
                    events = self._accept_listing(session, record.path, record.children)

                for event in events:
                    if session.is_cancelled():
                        return
                    session.apply(event)
                    yield self._emit(event)
                await session.cooperative.tick()
        except ScanRootError as error:
            if not session.is_cancelled():
                log.error("%s", error)
                yield self._emit(Error(str(error)))
            return
        except Exception as error:
            if session.is_cancelled():
                return
            log.exception("Scan of %r failed", session.root)
            yield self._emit(Error(f"Scan failed: {error}"))
            return
        finally:
            await records.aclose()

        if session.is_cancelled():
            return
        if session.aggregator.remaining:
            log.warning("%d directories never became final", session.aggregator.remaining)
        yield self._complete(session)

    def _accept_listing(self, session: ScanSession, path: str,
                        children: Iterable[Entry]) -> List[ScanEvent]:
        children = list(children)
        session.tree.extend(children)
        session.cache.put(path, session.tree.children(path))

        events: List[ScanEvent] = [session.listing(path)]
        session.aggregator.register(
            path, sum(1 for child in children if child.is_directory)
        )
        events.extend(session.aggregator.drain())
        return events

    def scan_entries(self, batches: EntryBatches,
                     strategy: str = 'depth_sorted') -> AsyncIterator[ScanEvent]:
        """Aggregate entries the caller already holds.

        Each batch is merged into the tree and the listings it changed
        are emitted right away; sizes are computed once the last batch
        has arrived.

        Args:
            batches: Iterable (or async iterable) of entry batches
            strategy: 'depth_sorted' or 'dependency_counted'

        Returns:
            Async iterator of Listing events per batch, SizeFinal events,
            then ScanComplete

        Raises:
            ValueError: For an unknown strategy
        """
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown strategy: {strategy}")
        session = self._new_session("")
        return self._run_in_memory(session, batches, strategy)

    async def _run_in_memory(self, session: ScanSession, batches: EntryBatches,
                             strategy: str) -> AsyncIterator[ScanEvent]:
        chunk_size = self.config.yield_every_n
        async for batch in _iterate(batches):
            changed: Dict[str, None] = {}
            for chunk in _chunks(batch, chunk_size):
                if session.is_cancelled():
                    return
                changed.update(dict.fromkeys(self._merge_chunk(session, chunk)))
                await session.cooperative.tick(len(chunk))

            for path in changed:
                if session.is_cancelled():
                    return
                session.cache.put(path, session.tree.children(path))
                yield self._emit(session.listing(path))

        if strategy == 'depth_sorted':
            sizes = aggregate_depth_sorted(session.tree, self.config.yield_every_n)
        else:
            sizes = aggregate_dependency_counted(
                session.tree,
                self.config.yield_every_n,
                emit_progress=self.config.emit_progress,
            )

        try:
            async for event in sizes:
                if session.is_cancelled():
                    return
                session.apply(event)
                yield self._emit(event)
        finally:
            await sizes.aclose()

        if session.is_cancelled():
            return
        yield self._complete(session)

    def _merge_chunk(self, session: ScanSession, chunk: List[Entry]) -> List[str]:
        """Merge entries into the tree; returns directories whose listing changed.

        Only the directories on the path from the root to each entry can
        change, so only those are compared.
        """
        tree = session.tree
        touched: Dict[str, Optional[int]] = {}
        for entry in chunk:
            path = normalize(entry.path)
            for directory in [tree.root] + ancestors_of(path, tree.root):
                touched.setdefault(directory, None)
            if entry.is_directory:
                touched.setdefault(path, None)
        for directory in touched:
            if tree.is_directory(directory):
                touched[directory] = len(tree.children(directory))

        tree.extend(chunk)

        return [
            directory for directory, before in touched.items()
            if tree.is_directory(directory) and (
                before != len(tree.children(directory)) or directory not in session.cache
            )
        ]

    def scan_files(self, files: Iterable[Any],
                   strategy: str = 'depth_sorted') -> AsyncIterator[ScanEvent]:
        """Aggregate an upfront file selection (records with paths and sizes)."""
        return self.scan_entries([entries_from_files(files)], strategy)

    def _complete(self, session: ScanSession) -> ScanComplete:
        session.completed = True
        event = ScanComplete(session.tree.total_entries, session.elapsed_ms)
        log.info("Scan of %r finished: %d entries in %.1f ms",
                 session.root, event.total_entries, event.elapsed_ms)
        return self._emit(event)

    def get_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            'has_session': self.session is not None,
        }
        if self.session is not None:
            stats.update({
                'root': self.session.root,
                'directories': len(self.session.tree),
                'entries': self.session.tree.total_entries,
                'pending_directories': self.session.aggregator.remaining,
                'errors': len(self.session.errors),
                'completed': self.session.completed,
                'cancelled': self.session.is_cancelled(),
            })
        if self.walker is not None:
            stats['walker'] = self.walker.get_stats()
        return stats


async def _iterate(batches: EntryBatches) -> AsyncIterator[Iterable[Entry]]:
    if hasattr(batches, '__aiter__'):
        async for batch in batches:
            yield batch
    else:
        for batch in batches:
            yield batch


def _chunks(entries: Iterable[Entry], size: int) -> Iterator[List[Entry]]:
    chunk: List[Entry] = []
    for entry in entries:
        chunk.append(entry)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk

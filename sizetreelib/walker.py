"""Live filesystem walker.

Reads a real directory hierarchy with bounded parallel I/O. Every
directory read and every file stat holds one slot of a shared semaphore
while it runs in a worker thread, so the number of outstanding operations
never exceeds the configured limit, no matter how many subdirectory
walks are running at the same time.
"""

import asyncio
import contextlib
import logging
import os
from dataclasses import dataclass
from typing import (
    Any, AsyncIterator, Awaitable, Callable, FrozenSet, List, Optional, Tuple, Union,
)

from ._common import Entry, ScanRootError, escape_name, join, normalize
from .error_policies import READ_DIRECTORY, STAT, ContinueOnErrorsPolicy, ErrorPolicy

log = logging.getLogger(__name__)

CancelCheck = Callable[[], bool]


@dataclass(frozen=True)
class WalkListing:
    """Children of one directory, file sizes already final."""

    path: str
    children: Tuple[Entry, ...]


@dataclass(frozen=True)
class WalkError:
    """A single directory read or file stat that failed and was recovered."""

    path: str
    operation: str
    message: str


WalkRecord = Union[WalkListing, WalkError]

# (name, is_directory, is_symlink)
RawChild = Tuple[str, bool, bool]

_DONE = object()


def _never_cancelled() -> bool:
    return False


async def _gather_all(coros: List[Awaitable[Any]]) -> List[Any]:
    """Run coroutines concurrently and wait for all of them.

    If one fails, the others are cancelled and awaited before the error
    propagates, so no task outlives the walk that spawned it.
    """
    if not coros:
        return []
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class LiveWalker:
    """Async filesystem walker with a global concurrency cap.

    Each call to :meth:`walk` is an independent walk with its own
    semaphore and counters; a walker can be reused but not resumed.
    """

    def __init__(
        self,
        concurrency_limit: Optional[int] = None,
        follow_symlinks: bool = False,
        policy: Optional[ErrorPolicy] = None,
        on_listing: Optional[Callable[[str, Tuple[Entry, ...]], None]] = None
    ):
        """Initialize walker.

        Args:
            concurrency_limit: Maximum outstanding reads/stats (None = unbounded)
            follow_symlinks: Descend into symlinked directories
            policy: Error policy for failed reads/stats
            on_listing: Called synchronously as soon as a listing is read
        """
        if concurrency_limit is not None and concurrency_limit <= 0:
            raise ValueError("concurrency_limit must be positive")
        self.max_concurrent = concurrency_limit
        self.follow_symlinks = follow_symlinks
        self.policy = policy or ContinueOnErrorsPolicy()
        self.on_listing = on_listing

        self.semaphore: Optional[asyncio.Semaphore] = None
        self._queue: Optional[asyncio.Queue] = None
        self._reset_stats()

    def _reset_stats(self) -> None:
        self.directories_read = 0
        self.files_statted = 0
        self.errors = 0
        self.in_flight = 0
        self.peak_in_flight = 0

    @contextlib.asynccontextmanager
    async def _slot(self):
        """Hold one I/O slot; released on every exit path."""
        if self.semaphore is not None:
            await self.semaphore.acquire()
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            yield
        finally:
            self.in_flight -= 1
            if self.semaphore is not None:
                self.semaphore.release()

    async def walk(self, root: Any, is_cancelled: Optional[CancelCheck] = None
                   ) -> AsyncIterator[WalkRecord]:
        """Walk ``root`` and stream listings and recovered errors.

        A directory's listing is produced before any of its
        subdirectories are expanded. Once ``is_cancelled`` returns True,
        no new I/O is issued and nothing more is produced.

        Args:
            root: Directory to walk
            is_cancelled: Polled before every directory expansion and stat

        Yields:
            WalkListing and WalkError records

        Raises:
            ScanRootError: If the root is missing or not a directory
        """
        is_cancelled = is_cancelled or _never_cancelled
        root_path = normalize(root)
        if not root_path:
            raise ScanRootError(str(root), "empty path")
        if not await asyncio.to_thread(os.path.isdir, root_path):
            raise ScanRootError(root_path, "not a directory")

        self._reset_stats()
        self.semaphore = (
            asyncio.Semaphore(self.max_concurrent) if self.max_concurrent else None
        )
        queue: asyncio.Queue = asyncio.Queue()
        self._queue = queue

        async def run():
            try:
                await self._expand(root_path, root_path, is_cancelled)
            finally:
                queue.put_nowait(_DONE)

        task = asyncio.ensure_future(run())
        try:
            while True:
                record = await queue.get()
                if record is _DONE:
                    break
                if is_cancelled():
                    continue
                yield record
            await task
        finally:
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    async def _expand(self, path: str, real: str, is_cancelled: CancelCheck,
                      chain: FrozenSet[str] = frozenset()) -> None:
        """Read one directory, publish it, then expand its subdirectories.

        ``path`` is the scan path used for keys and events, ``real`` the
        OS path that is actually read. ``chain`` holds the resolved paths
        of every directory above this one when links are followed.
        """
        if is_cancelled():
            return

        if self.follow_symlinks:
            resolved = await asyncio.to_thread(os.path.realpath, real)
            if resolved in chain:
                # Link back into its own ancestry: listed empty so it still finalizes
                log.debug("Not descending into symlink cycle at %s", path)
                self._publish(path, ())
                return
            chain = chain | {resolved}

        raw: List[RawChild]
        async with self._slot():
            try:
                raw = await asyncio.to_thread(self._scan, real)
                self.directories_read += 1
            except OSError as error:
                raw = self._recover(error, READ_DIRECTORY, path) or []

        if is_cancelled():
            return

        described = await _gather_all(
            [self._describe(path, real, child, is_cancelled) for child in raw]
        )
        found = [item for item in described if item is not None]
        children = tuple(entry for entry, _ in found)
        if is_cancelled():
            return

        log.debug("Read %d entries in %s", len(children), path)
        self._publish(path, children)

        await _gather_all([
            self._expand(entry.path, child_real, is_cancelled, chain)
            for entry, child_real in found
            if entry.is_directory
        ])

    async def _describe(self, parent: str, parent_real: str, raw: RawChild,
                        is_cancelled: CancelCheck) -> Optional[Tuple[Entry, str]]:
        name, is_directory, _ = raw
        path = join(parent, escape_name(name))
        real = os.path.join(parent_real, name)
        if is_directory:
            return Entry.directory(path, name=name), real

        if is_cancelled():
            return None
        async with self._slot():
            try:
                size = await asyncio.to_thread(self._stat, real)
                self.files_statted += 1
            except OSError as error:
                size = self._recover(error, STAT, path) or 0
        return Entry.file(path, size, name=name), real

    def _scan(self, path: str) -> List[RawChild]:
        """Synchronous directory read, run in a worker thread."""
        children = []
        with os.scandir(path) as iterator:
            for entry in iterator:
                try:
                    is_directory = entry.is_dir(follow_symlinks=self.follow_symlinks)
                except OSError:
                    is_directory = False
                children.append((entry.name, is_directory, entry.is_symlink()))
        return children

    def _stat(self, path: str) -> int:
        """Synchronous file stat, run in a worker thread."""
        if self.follow_symlinks:
            return os.stat(path).st_size
        return os.lstat(path).st_size

    def _recover(self, error: OSError, operation: str, path: str) -> Any:
        """Let the policy recover from a failure, recording it if it does.

        A policy that raises turns the failure into a scan-level one.
        """
        recovered = self.policy.handle(error, operation, path)
        self.errors += 1
        log.warning("%s failed for %s: %s", operation, path, error)
        self._put(WalkError(path, operation, str(error)))
        return recovered

    def _publish(self, path: str, children: Tuple[Entry, ...]) -> None:
        if self.on_listing is not None:
            self.on_listing(path, children)
        self._put(WalkListing(path, children))

    def _put(self, record: WalkRecord) -> None:
        if self._queue is not None:
            self._queue.put_nowait(record)

    def get_stats(self) -> dict:
        """Get walker statistics.

        Returns:
            Statistics dictionary
        """
        return {
            'max_concurrent': self.max_concurrent,
            'available_permits': self.semaphore._value if self.semaphore is not None else None,
            'follow_symlinks': self.follow_symlinks,
            'directories_read': self.directories_read,
            'files_statted': self.files_statted,
            'errors': self.errors,
            'peak_in_flight': self.peak_in_flight,
        }

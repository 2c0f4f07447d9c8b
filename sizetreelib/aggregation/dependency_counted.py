"""Dependency-counted (Kahn-style) aggregation.

Each directory carries the number of direct subdirectories that are not
final yet. A directory is summed as soon as that count reaches zero, and
finalizing it decrements its parent's count. Unlike the depth-sorted
pass this works while the tree is still being discovered: a live walker
registers directories as their listings arrive and finalization ripples
upward whenever a subtree completes.
"""

import threading
from collections import deque
from typing import AsyncIterator, Deque, Dict, List, Optional, Set

from .._common import normalize
from ..events import ScanEvent, SizeFinal, SizeProgress
from ..tree import DirectoryTree
from .cooperative import Cooperative


class DependencyCountedAggregator:
    """Incremental bottom-up size aggregator for one scan.

    Pending counts are shared between concurrently finishing subtrees, so
    every decrement-and-test happens under a lock. Summing a directory
    reads only children that are already final, so it runs outside it.
    """

    def __init__(
        self,
        tree: DirectoryTree,
        include_root: bool = True,
        emit_progress: bool = False
    ):
        """
        Args:
            tree: Tree whose directory entries this aggregator finalizes
            include_root: Report the scan root's total as well
            emit_progress: Emit SizeProgress for a parent whenever one of
                its subdirectories finalizes before the parent does
        """
        self.tree = tree
        self.include_root = include_root
        self.emit_progress = emit_progress
        self._pending: Dict[str, int] = {}
        self._ready: Deque[str] = deque()
        self._final: Set[str] = set()
        self._lock = threading.Lock()

    def register(self, path: str, subdirectory_count: Optional[int] = None) -> bool:
        """Start tracking a directory whose children are known.

        Args:
            path: Directory path
            subdirectory_count: Direct subdirectories still pending; when
                omitted it is derived from the tree (non-final
                subdirectories only)

        Returns:
            False if the directory was already registered or final
        """
        path = normalize(path)
        if path == self.tree.root:
            if self.tree.root_size is not None:
                return False
        else:
            entry = self.tree.get(path)
            if entry is not None and entry.size_final:
                return False

        if subdirectory_count is None:
            subdirectory_count = sum(
                1 for child in self.tree.subdirectories(path) if not child.size_final
            )

        with self._lock:
            if path in self._pending or path in self._final:
                return False
            self._pending[path] = subdirectory_count
            if subdirectory_count <= 0:
                self._ready.append(path)
        return True

    def seed(self) -> int:
        """Register every directory of a fully known tree.

        Returns:
            Number of directories newly registered
        """
        return sum(1 for path in self.tree.directories() if self.register(path))

    def child_finalized(self, path: str) -> bool:
        """Account for a finalized subdirectory in its parent's count.

        Returns:
            True if the parent just became ready
        """
        path = normalize(path)
        if path == self.tree.root:
            return False
        parent = self.tree.parent_of(path)

        with self._lock:
            if parent not in self._pending:
                # Parent not registered yet; its count is derived then.
                return False
            self._pending[parent] -= 1
            if self._pending[parent] == 0:
                self._ready.append(parent)
                return True
            return False

    def drain(self, limit: Optional[int] = None) -> List[ScanEvent]:
        """Finalize ready directories, cascading to their parents.

        Args:
            limit: Maximum directories to finalize in this call

        Returns:
            Emitted events in finalization order
        """
        events: List[ScanEvent] = []
        processed = 0

        while limit is None or processed < limit:
            with self._lock:
                if not self._ready:
                    break
                path = self._ready.popleft()
                del self._pending[path]
                self._final.add(path)

            event = self._finalize(path)
            processed += 1
            if event is not None:
                events.append(event)

            became_ready = self.child_finalized(path)
            if self.emit_progress and not became_ready and path != self.tree.root:
                progress = self._progress(self.tree.parent_of(path))
                if progress is not None:
                    events.append(progress)

        return events

    def _finalize(self, path: str) -> Optional[SizeFinal]:
        total = sum(child.size for child in self.tree.children(path))

        if path == self.tree.root:
            self.tree.root_size = total
            return SizeFinal(path, total) if self.include_root else None

        entry = self.tree.get(path)
        if entry is not None:
            entry.finalize(total)
        return SizeFinal(path, total)

    def _progress(self, path: str) -> Optional[SizeProgress]:
        with self._lock:
            if path not in self._pending:
                return None
        partial = sum(child.size for child in self.tree.children(path))
        entry = self.tree.get(path)
        if entry is not None:
            if not entry.observe(partial):
                return None
        elif path != self.tree.root:
            return None
        return SizeProgress(path, partial)

    def pending(self, path: str) -> Optional[int]:
        """Pending subdirectory count, or None if not registered."""
        with self._lock:
            return self._pending.get(normalize(path))

    def is_final(self, path: str) -> bool:
        with self._lock:
            return normalize(path) in self._final

    @property
    def remaining(self) -> int:
        """Registered directories that are not final yet."""
        with self._lock:
            return len(self._pending)

    @property
    def finalized_count(self) -> int:
        with self._lock:
            return len(self._final)


async def aggregate_dependency_counted(
    tree: DirectoryTree,
    yield_every_n: int = 32,
    include_root: bool = False,
    emit_progress: bool = False
) -> AsyncIterator[ScanEvent]:
    """Aggregate a fully known tree with the dependency-counted pass.

    Args:
        tree: Fully built directory tree
        yield_every_n: Directories finalized between cooperative yields
        include_root: Also report the scan root's total
        emit_progress: Interleave SizeProgress observations

    Yields:
        SizeFinal (and optionally SizeProgress) events, children first
    """
    aggregator = DependencyCountedAggregator(
        tree, include_root=include_root, emit_progress=emit_progress
    )
    aggregator.seed()
    cooperative = Cooperative(yield_every_n)

    while True:
        events = aggregator.drain(limit=yield_every_n)
        if not events and aggregator.remaining == 0:
            break
        for event in events:
            yield event
        await cooperative.tick(yield_every_n)
        if not events:
            # Nothing ready but directories remain: the tree is not closed
            break

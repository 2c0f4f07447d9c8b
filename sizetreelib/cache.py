"""Listing cache: per-directory children and their latest known sizes.

The cache is the hand-off point between discovery and whoever displays
the results. It is keyed by normalized directory path, never evicts while
a scan runs, and is replaced wholesale when a new scan starts.
"""

import dataclasses
import threading
from typing import Any, Dict, Iterable, List, Optional

from ._common import Entry, normalize


class ListingCache:
    """Thread-safe store of directory listings.

    Entries are copied on the way in and on the way out, so consumers on
    other threads never observe a half-applied size update.
    """

    def __init__(self):
        self._listings: Dict[str, List[Entry]] = {}
        self._lock = threading.RLock()

    def put(self, path: Any, children: Iterable[Entry]) -> None:
        """Store the children of a directory.

        Children already cached with a final size keep that size even if
        the new listing carries a stale one.
        """
        path = normalize(path)
        fresh = [dataclasses.replace(child) for child in children]

        with self._lock:
            previous = {child.path: child for child in self._listings.get(path, ())}
            for index, child in enumerate(fresh):
                old = previous.get(child.path)
                if old is not None and old.size_final and not child.size_final:
                    fresh[index] = dataclasses.replace(old)
            self._listings[path] = fresh

    def get(self, path: Any) -> Optional[List[Entry]]:
        """Copy of the cached children, or None if the path is unknown."""
        with self._lock:
            children = self._listings.get(normalize(path))
            if children is None:
                return None
            return [dataclasses.replace(child) for child in children]

    def update_child_size(self, parent_path: Any, child_path: Any,
                          size: int, final: bool) -> bool:
        """Record a new size for one child of a cached directory.

        A final size is never replaced, and a partial size never shrinks.

        Returns:
            True if the cached child changed
        """
        parent_path = normalize(parent_path)
        child_path = normalize(child_path)

        with self._lock:
            for child in self._listings.get(parent_path, ()):
                if child.path != child_path:
                    continue
                if child.size_final:
                    return False
                if final:
                    child.size = size
                    child.size_final = True
                    return True
                if size > child.size:
                    child.size = size
                    return True
                return False
        return False

    def is_child_final(self, parent_path: Any, child_path: Any) -> bool:
        """Whether ``child_path`` is cached with a final size under its parent."""
        child_path = normalize(child_path)
        with self._lock:
            return any(
                child.path == child_path and child.size_final
                for child in self._listings.get(normalize(parent_path), ())
            )

    def directories(self) -> List[str]:
        with self._lock:
            return list(self._listings)

    def all_files(self) -> List[Entry]:
        """Every cached file across all directories (flat view)."""
        with self._lock:
            return [
                dataclasses.replace(child)
                for children in self._listings.values()
                for child in children
                if not child.is_directory
            ]

    def clear(self) -> None:
        with self._lock:
            self._listings.clear()

    def __contains__(self, path: Any) -> bool:
        with self._lock:
            return normalize(path) in self._listings

    def __len__(self) -> int:
        with self._lock:
            return len(self._listings)

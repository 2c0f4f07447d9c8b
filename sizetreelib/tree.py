"""Tree builder: turns a flat collection of entries into a directory tree.

The tree is a mapping from each directory path to the ordered list of its
direct children. Directories implied by deeper paths but never supplied
as entries are synthesized on the fly, so the mapping is always a single
connected tree hanging off the scan root.
"""

import threading
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from ._common import Entry, ancestors_of, normalize, parent_of


class DirectoryTree:
    """Directory path -> children mapping for one scan.

    Safe to mutate from several walker tasks or threads: every structural
    change happens inside a short critical section.
    """

    def __init__(self, root: Any = ""):
        """
        Args:
            root: Scan root ("" for in-memory scans, the normalized root
                path for live scans)
        """
        self.root = normalize(root)
        self._children: Dict[str, List[Entry]] = {self.root: []}
        self._index: Dict[str, Entry] = {}
        self._lock = threading.RLock()
        # Written only by the aggregators once the root is summed
        self.root_size: Optional[int] = None

    def add(self, entry: Entry) -> bool:
        """Link an entry under its parent, synthesizing missing ancestors.

        An entry whose path is already present is not re-added; the
        existing object is kept so sizes finalized earlier survive.

        Args:
            entry: Entry to add

        Returns:
            True if the entry was new
        """
        path = normalize(entry.path)
        if not path or path == self.root:
            return False

        with self._lock:
            existing = self._index.get(path)
            if existing is not None:
                if existing.synthesized and entry.is_directory and not entry.synthesized:
                    existing.synthesized = False
                return False

            for ancestor in ancestors_of(path, self.root):
                if ancestor not in self._index:
                    self._link(Entry.directory(ancestor, synthesized=True))

            if entry.path != path:
                entry.path = path
            self._link(entry)
            return True

    def _link(self, entry: Entry) -> None:
        parent = parent_of(entry.path, self.root)
        self._children.setdefault(parent, []).append(entry)
        self._index[entry.path] = entry
        if entry.is_directory:
            self._children.setdefault(entry.path, [])

    def extend(self, entries: Iterable[Entry]) -> List[Entry]:
        """Add many entries; returns the ones that were new."""
        return [entry for entry in entries if self.add(entry)]

    def get(self, path: Any) -> Optional[Entry]:
        """Entry for ``path`` or None (the root has no entry)."""
        return self._index.get(normalize(path))

    def children(self, path: Any) -> List[Entry]:
        """Snapshot of the direct children of a directory."""
        with self._lock:
            return list(self._children.get(normalize(path), ()))

    def subdirectories(self, path: Any) -> List[Entry]:
        """Direct children that are directories."""
        return [child for child in self.children(path) if child.is_directory]

    def directories(self) -> List[str]:
        """Every directory key, the root included."""
        with self._lock:
            return list(self._children)

    def parent_of(self, path: Any) -> str:
        return parent_of(path, self.root)

    def is_directory(self, path: Any) -> bool:
        path = normalize(path)
        return path == self.root or path in self._children

    @property
    def total_entries(self) -> int:
        return len(self._index)

    def snapshot(self) -> Dict[str, List[Entry]]:
        """Plain dict copy of the mapping (lists copied, entries shared)."""
        with self._lock:
            return {path: list(children) for path, children in self._children.items()}

    def __contains__(self, path: Any) -> bool:
        path = normalize(path)
        return path == self.root or path in self._index

    def __len__(self) -> int:
        return len(self._children)

    def __iter__(self) -> Iterator[str]:
        return iter(self.directories())

    def __repr__(self) -> str:
        return (f"DirectoryTree(root={self.root!r}, directories={len(self)}, "
                f"entries={self.total_entries})")


def build_tree(entries: Iterable[Entry], tree: Optional[DirectoryTree] = None,
               root: Any = "") -> DirectoryTree:
    """Build (or grow) a directory tree from a flat entry collection.

    Safe to call repeatedly with a growing entry set: pass the tree from
    the previous call and already-known paths are skipped.

    Args:
        entries: Entries to place
        tree: Existing tree to merge into (a new one is created if None)
        root: Scan root for a new tree

    Returns:
        The tree containing every supplied entry
    """
    if tree is None:
        tree = DirectoryTree(root)
    tree.extend(entries)
    return tree


def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def entries_from_files(files: Iterable[Any]) -> List[Entry]:
    """Turn file-selection records into entries.

    Each record is a mapping or object with ``relative_path`` (preferred),
    ``path`` or just ``name``, plus ``size``. A record carrying only a
    name becomes a top-level file. One directory entry is produced for
    every directory implied by the file paths.

    Args:
        files: File records from an upfront selection

    Returns:
        File entries followed by directory entries
    """
    file_entries = []
    directories: Dict[str, None] = {}

    for record in files:
        path = normalize(_field(record, 'relative_path') or _field(record, 'path')
                         or _field(record, 'name'))
        if not path:
            continue
        file_entries.append(Entry.file(path, _field(record, 'size') or 0))
        for ancestor in ancestors_of(path):
            directories.setdefault(ancestor)

    return file_entries + [Entry.directory(path) for path in directories]

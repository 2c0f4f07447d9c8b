"""Path normalization helpers.

Every path handled by SizeTreeLib is a slash-separated string. These
functions are pure and total: malformed input degrades to the empty
string (the in-memory scan root) instead of raising.
"""

import os
from typing import Any, List

SEPARATOR = "/"


def normalize(path: Any) -> str:
    """Canonicalize a path string.

    Backslashes become forward slashes and a single trailing separator
    is stripped. ``None``, empty and non-path values yield ``""``.

    Args:
        path: String or os.PathLike to normalize

    Returns:
        Normalized path string
    """
    if not path:
        return ""
    try:
        text = os.fspath(path)
    except TypeError:
        return ""
    if isinstance(text, bytes):
        text = os.fsdecode(text)

    text = text.replace("\\", SEPARATOR)
    if text.endswith(SEPARATOR) and text != SEPARATOR:
        text = text[:-1]
    return text


def parent_of(path: Any, root: str = "") -> str:
    """Get the parent directory of a path.

    Args:
        path: Path to inspect (normalized on the way in)
        root: Scan root; returned when the path has no separator or
            would otherwise climb above the root

    Returns:
        Parent path, or ``root`` for top-level paths
    """
    normalized = normalize(path)
    root = normalize(root)

    if normalized in (root, SEPARATOR) or SEPARATOR not in normalized:
        return root

    parent = normalized[:normalized.rindex(SEPARATOR)]
    if not parent and normalized.startswith(SEPARATOR):
        # Child of the filesystem root ("/etc" -> "/")
        parent = SEPARATOR
    if root and not _is_within(parent, root):
        return root
    return parent


def name_of(path: Any) -> str:
    """Get the last segment of a path."""
    normalized = normalize(path)
    if normalized == SEPARATOR:
        return normalized
    return normalized.rsplit(SEPARATOR, 1)[-1]


def depth_of(path: Any) -> int:
    """Count path segments (0 for the empty root)."""
    normalized = normalize(path)
    return len([part for part in normalized.split(SEPARATOR) if part])


def join(parent: Any, name: str) -> str:
    """Join a child name onto a parent path, treating ``""`` as the root."""
    parent = normalize(parent)
    if not parent:
        return normalize(name)
    if parent.endswith(SEPARATOR):
        return normalize(parent + name)
    return normalize(parent + SEPARATOR + name)


def escape_name(name: str) -> str:
    """Turn a raw filesystem name into a single path segment.

    A backslash is a legal character in POSIX names but a separator to
    :func:`normalize`, so it is percent-encoded (``x\\y`` -> ``x%5Cy``).
    ``%`` is encoded too, which keeps distinct names distinct.
    """
    return name.replace("%", "%25").replace("\\", "%5C")


def ancestors_of(path: Any, root: str = "") -> List[str]:
    """List the intermediate directories between ``root`` and ``path``.

    Neither the root nor the path itself is included. The result is
    ordered nearest-root first, so synthesizing entries in that order
    always links a parent before its child.

    Args:
        path: Path whose ancestors are wanted
        root: Scan root

    Returns:
        List of ancestor paths
    """
    root = normalize(root)
    ancestors = []
    current = parent_of(path, root)
    while current != root:
        ancestors.append(current)
        current = parent_of(current, root)
    ancestors.reverse()
    return ancestors


def _is_within(path: str, root: str) -> bool:
    if path == root:
        return True
    prefix = root if root.endswith(SEPARATOR) else root + SEPARATOR
    return path.startswith(prefix)

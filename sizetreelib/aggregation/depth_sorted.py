"""Depth-sorted aggregation for trees that are fully known up front.

Every subdirectory of a directory sits one level below it, so visiting
directories by descending level is a valid bottom-up order: by the time a
directory is summed, each of its subdirectories already holds its final
size.
"""

from typing import AsyncIterator, Dict, Iterator

from ..events import SizeFinal
from ..tree import DirectoryTree
from .cooperative import Cooperative


def iter_depth_sorted(tree: DirectoryTree, include_root: bool = False) -> Iterator[SizeFinal]:
    """Finalize every directory of ``tree`` deepest first.

    Directories that are already final (from an earlier pass over the
    same tree) are skipped, so no path is ever reported twice.

    Args:
        tree: Fully built directory tree
        include_root: Also report the scan root's total

    Yields:
        SizeFinal events, children before parents
    """
    levels = _levels(tree)
    directories = sorted(levels, key=levels.__getitem__, reverse=True)

    for path in directories:
        entry = tree.get(path)
        if entry is not None and entry.size_final:
            continue

        total = sum(child.size for child in tree.children(path))

        if path == tree.root:
            if tree.root_size is None:
                tree.root_size = total
                if include_root:
                    yield SizeFinal(path, total)
            continue

        if entry is not None:
            entry.finalize(total)
        yield SizeFinal(path, total)


def _levels(tree: DirectoryTree) -> Dict[str, int]:
    """Distance of every directory from the root, counted along parent links.

    Segment counts are not enough: ``""`` and ``"/"`` both have zero
    segments although one is the parent of the other.
    """
    levels = {tree.root: 0}
    for path in tree.directories():
        chain = []
        current = path
        while current not in levels:
            chain.append(current)
            current = tree.parent_of(current)
        level = levels[current]
        for ancestor in reversed(chain):
            level += 1
            levels[ancestor] = level
    return levels


async def aggregate_depth_sorted(
    tree: DirectoryTree,
    yield_every_n: int = 32,
    include_root: bool = False
) -> AsyncIterator[SizeFinal]:
    """Async form of :func:`iter_depth_sorted` that yields to the loop.

    Args:
        tree: Fully built directory tree
        yield_every_n: Directories processed between cooperative yields
        include_root: Also report the scan root's total

    Yields:
        SizeFinal events, children before parents
    """
    cooperative = Cooperative(yield_every_n)
    for event in iter_depth_sorted(tree, include_root=include_root):
        yield event
        await cooperative.tick()

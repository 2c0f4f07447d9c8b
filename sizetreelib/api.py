"""High-level API for SizeTreeLib.

Simple functions for the common cases: run a whole scan and collect its
events, or just get the final size of every directory.
"""

import asyncio
from typing import Any, Dict, Iterable, List, Optional

from ._common import Entry
from .aggregation import iter_depth_sorted
from .config import ScanConfig
from .engine import ScanEngine
from .events import ScanEvent, final_sizes
from .tree import build_tree


async def scan_path_async(
    root: Any,
    concurrency_limit: Optional[int] = None,
    config: Optional[ScanConfig] = None
) -> List[ScanEvent]:
    """Scan a live directory and collect every event.

    Args:
        root: Directory to scan
        concurrency_limit: Maximum outstanding I/O operations
        config: Full configuration (concurrency_limit overrides it)

    Returns:
        Events in emission order
    """
    engine = ScanEngine(config or ScanConfig.live())
    return [event async for event in engine.start_scan(root, concurrency_limit)]


async def scan_entries_async(
    entries: Iterable[Entry],
    strategy: str = 'depth_sorted',
    config: Optional[ScanConfig] = None
) -> List[ScanEvent]:
    """Aggregate an in-memory entry set and collect every event."""
    engine = ScanEngine(config or ScanConfig.in_memory())
    return [event async for event in engine.scan_entries([list(entries)], strategy)]


async def calculate_sizes_async(
    root: Any,
    concurrency_limit: Optional[int] = None
) -> Dict[str, int]:
    """Final size of every directory under ``root`` (root included)."""
    return final_sizes(await scan_path_async(root, concurrency_limit))


def calculate_sizes(root: Any, concurrency_limit: Optional[int] = None) -> Dict[str, int]:
    """Blocking wrapper around :func:`calculate_sizes_async`."""
    return asyncio.run(calculate_sizes_async(root, concurrency_limit))


def directory_sizes(entries: Iterable[Entry]) -> Dict[str, int]:
    """Final size of every directory implied by an in-memory entry set.

    Runs the depth-sorted pass synchronously; no event loop needed.
    """
    tree = build_tree(entries)
    return {event.path: event.size for event in iter_depth_sorted(tree)}

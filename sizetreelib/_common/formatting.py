"""Display helpers for consumers of scan results.

None of this affects aggregation. ``size_filter_bytes`` in particular is
a downstream display filter, applied here and nowhere in the engine.
"""

from typing import Iterable, List

from .entry import Entry

SIZE_UNITS = ('Bytes', 'KB', 'MB', 'GB', 'TB')


def format_size(num_bytes: int) -> str:
    """Format a byte count for humans, e.g. ``1536 -> '1.50 KB'``."""
    if not num_bytes or num_bytes <= 0:
        return '0 Bytes'
    index = 0
    while num_bytes >= 1024 ** (index + 1) and index < len(SIZE_UNITS) - 1:
        index += 1
    return f"{num_bytes / 1024 ** index:.2f} {SIZE_UNITS[index]}"


def sort_entries(entries: Iterable[Entry], method: str = 'name') -> List[Entry]:
    """Sort entries by name (case-insensitive) or by size, largest first.

    Args:
        entries: Entries to sort
        method: 'name' or 'size'

    Returns:
        New sorted list
    """
    if method == 'name':
        return sorted(entries, key=lambda entry: (entry.name.lower(), entry.name))
    if method == 'size':
        return sorted(entries, key=lambda entry: (-entry.size, entry.name.lower()))
    raise ValueError(f"Unknown sort method: {method}")


def filter_by_size(entries: Iterable[Entry], min_bytes: int = 0) -> List[Entry]:
    """Keep entries at least ``min_bytes`` large (0 keeps everything)."""
    if min_bytes <= 0:
        return list(entries)
    return [entry for entry in entries if entry.size >= min_bytes]


def proportion_of(entry: Entry, siblings: Iterable[Entry]) -> float:
    """Fraction of the siblings' combined size taken by ``entry``."""
    total = sum(sibling.size for sibling in siblings)
    if total > 0 and entry.size > 0:
        return entry.size / total
    return 0.0

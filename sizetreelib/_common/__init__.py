"""Common components shared by every layer of SizeTreeLib.

This internal package contains pure, I/O-free code: the entry model,
path normalization, exceptions and display helpers. It must NEVER import
from the rest of the package to avoid circular dependencies.
"""

from .entry import Entry
from .errors import EntryAlreadyFinalError, ScanRootError, SizeTreeError
from .formatting import filter_by_size, format_size, proportion_of, sort_entries
from .paths import ancestors_of, depth_of, escape_name, join, name_of, normalize, parent_of

__all__ = [
    'Entry',
    'SizeTreeError',
    'EntryAlreadyFinalError',
    'ScanRootError',
    'normalize',
    'parent_of',
    'name_of',
    'depth_of',
    'join',
    'escape_name',
    'ancestors_of',
    'format_size',
    'sort_entries',
    'filter_by_size',
    'proportion_of',
]

"""SizeTreeLib - Incremental directory size aggregation.

SizeTreeLib reports the size of every file and directory in a hierarchy,
streaming results while large subtrees are still being measured. The
hierarchy can come from entries already held in memory or from a live,
concurrent walk of a real filesystem.

Choose your source:
━━━━━━━━━━━━━━━━━━━━━━━━━━
Live filesystem:
    engine = ScanEngine(ScanConfig.live())
    async for event in engine.start_scan('/some/path'): ...

Entries in memory:
    async for event in engine.scan_entries([entries]): ...
━━━━━━━━━━━━━━━━━━━━━━━━━━
"""

__version__ = "0.1.0"

from ._common import (
    Entry,
    EntryAlreadyFinalError,
    ScanRootError,
    SizeTreeError,
    format_size,
    normalize,
    parent_of,
)
from .aggregation import (
    DependencyCountedAggregator,
    aggregate_dependency_counted,
    aggregate_depth_sorted,
    iter_depth_sorted,
)
from .api import (
    calculate_sizes,
    calculate_sizes_async,
    directory_sizes,
    scan_entries_async,
    scan_path_async,
)
from .cache import ListingCache
from .config import ScanConfig
from .engine import ScanEngine, ScanSession
from .error_policies import (
    CollectErrorsPolicy,
    ContinueOnErrorsPolicy,
    ErrorPolicy,
    FailFastPolicy,
    ThresholdPolicy,
)
from .events import (
    Error,
    Init,
    Listing,
    ScanComplete,
    ScanEvent,
    SizeFinal,
    SizeProgress,
    event_to_dict,
    event_to_json,
)
from .tree import DirectoryTree, build_tree, entries_from_files
from .walker import LiveWalker, WalkError, WalkListing

__all__ = [
    "__version__",
    # Model
    "Entry",
    "normalize",
    "parent_of",
    "format_size",
    # Errors
    "SizeTreeError",
    "EntryAlreadyFinalError",
    "ScanRootError",
    # Tree
    "DirectoryTree",
    "build_tree",
    "entries_from_files",
    # Aggregation
    "DependencyCountedAggregator",
    "aggregate_dependency_counted",
    "aggregate_depth_sorted",
    "iter_depth_sorted",
    # Discovery
    "LiveWalker",
    "WalkListing",
    "WalkError",
    # Cache
    "ListingCache",
    # Engine
    "ScanConfig",
    "ScanEngine",
    "ScanSession",
    # Events
    "ScanEvent",
    "Init",
    "Listing",
    "SizeProgress",
    "SizeFinal",
    "ScanComplete",
    "Error",
    "event_to_dict",
    "event_to_json",
    # Error policies
    "ErrorPolicy",
    "FailFastPolicy",
    "ContinueOnErrorsPolicy",
    "CollectErrorsPolicy",
    "ThresholdPolicy",
    # High-level API
    "scan_path_async",
    "scan_entries_async",
    "calculate_sizes_async",
    "calculate_sizes",
    "directory_sizes",
]

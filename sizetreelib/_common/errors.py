"""Exception hierarchy for SizeTreeLib."""

from typing import Optional


class SizeTreeError(Exception):
    """Base class for all SizeTreeLib errors."""


class EntryAlreadyFinalError(SizeTreeError):
    """Raised when a finalized entry is finalized a second time."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Size of '{path}' is already final")


class ScanRootError(SizeTreeError):
    """Raised when a live scan root cannot be walked at all.

    This is the scan-level fatal condition: the engine reports it as an
    error event without a path and stops the scan.
    """

    def __init__(self, root: str, reason: Optional[str] = None):
        self.root = root
        self.reason = reason or "not a readable directory"
        super().__init__(f"Cannot scan '{root}': {self.reason}")

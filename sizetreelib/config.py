"""Configuration for SizeTreeLib scans.

A ScanConfig tells the engine how hard it may hit the filesystem, how
often it must hand control back to the event loop, and how per-entry
failures are treated.
"""

from dataclasses import dataclass
from typing import List, Optional

from .error_policies import ErrorPolicy

DEFAULT_YIELD_EVERY_N = 32
DEFAULT_LIVE_CONCURRENCY = 64


@dataclass
class ScanConfig:
    """Complete configuration for a scan.

    ``size_filter_bytes`` is carried for consumers that render results;
    the engine itself never filters on it.
    """

    # Maximum outstanding directory reads / file stats (None = unbounded)
    concurrency_limit: Optional[int] = None

    # Directories aggregated between cooperative yields
    yield_every_n: int = DEFAULT_YIELD_EVERY_N

    # Display-only filter
    size_filter_bytes: int = 0

    # Live walk behaviour
    follow_symlinks: bool = False

    # Emit SizeProgress events while directories are still pending
    emit_progress: bool = False

    # Per-entry failure handling (None = ContinueOnErrorsPolicy)
    error_policy: Optional[ErrorPolicy] = None

    @classmethod
    def in_memory(cls, yield_every_n: int = DEFAULT_YIELD_EVERY_N) -> 'ScanConfig':
        """Config for entry sets already held in memory (no I/O limit)."""
        return cls(concurrency_limit=None, yield_every_n=yield_every_n)

    @classmethod
    def live(cls, concurrency_limit: int = DEFAULT_LIVE_CONCURRENCY,
             **kwargs) -> 'ScanConfig':
        """Config for walking a real filesystem.

        Args:
            concurrency_limit: Maximum outstanding I/O operations
            **kwargs: Any other ScanConfig field

        Returns:
            ScanConfig with a bounded concurrency limit
        """
        return cls(concurrency_limit=concurrency_limit, **kwargs)

    def validate(self) -> List[str]:
        """Validate configuration for consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.concurrency_limit is not None and self.concurrency_limit <= 0:
            errors.append("concurrency_limit must be positive")

        if self.yield_every_n <= 0:
            errors.append("yield_every_n must be positive")

        if self.size_filter_bytes < 0:
            errors.append("size_filter_bytes cannot be negative")

        if self.error_policy is not None and not isinstance(self.error_policy, ErrorPolicy):
            errors.append("error_policy must be an ErrorPolicy instance")

        return errors

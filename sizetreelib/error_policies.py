"""
Error handling policies for SizeTreeLib.

The live walker never decides on its own what a failed directory read or
file stat means for the scan. It hands the failure to an ErrorPolicy,
which either returns a recovery value (the walk continues with that
value) or raises (the failure becomes scan-level and ends the scan).
"""

import sys
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

READ_DIRECTORY = 'read_directory'
STAT = 'stat'


def default_for(operation: str) -> Any:
    """Recovery value for a failed operation.

    A directory that cannot be read has no children; a file that cannot
    be stat'ed contributes zero bytes.
    """
    if operation == READ_DIRECTORY:
        return []
    if operation == STAT:
        return 0
    return None


class ErrorPolicy(ABC):
    """
    Base class for error handling policies.

    Subclasses implement different strategies for handling errors
    that occur during filesystem operations.
    """

    @abstractmethod
    def handle(self, error: Exception, operation: str, path: Optional[str]) -> Any:
        """
        Handle an error that occurred during a filesystem operation.

        Args:
            error: The exception that was raised
            operation: Which operation failed (READ_DIRECTORY or STAT)
            path: Normalized path being processed when the error occurred

        Returns:
            A recovery value that allows the walk to continue,
            or re-raises the exception to stop the scan.
        """


class FailFastPolicy(ErrorPolicy):
    """
    Policy that immediately re-raises any error, stopping the scan.

    Useful when an undercounted size is worse than no size at all.
    """

    def handle(self, error: Exception, operation: str, path: Optional[str]) -> Any:
        """Re-raise the error immediately."""
        raise error


class CollectErrorsPolicy(ErrorPolicy):
    """
    Policy that collects all errors without printing, for batch processing.

    Errors are recorded for later inspection and the default recovery
    value is returned so the walk continues.
    """

    def __init__(self):
        self.errors: List[Dict[str, Any]] = []
        self.skipped_paths: List[str] = []

    def handle(self, error: Exception, operation: str, path: Optional[str]) -> Any:
        """Record the error and return the recovery value."""
        self._record(error, operation, path)
        return default_for(operation)

    def _record(self, error: Exception, operation: str, path: Optional[str]) -> None:
        self.errors.append({
            'path': path,
            'operation': operation,
            'error': error,
            'error_type': type(error).__name__,
            'error_message': str(error),
        })
        if isinstance(error, PermissionError) and path:
            self.skipped_paths.append(path)

    def get_statistics(self) -> dict:
        """
        Get statistics about errors encountered.

        Returns:
            Dictionary with error counts and details
        """
        return {
            'total_errors': len(self.errors),
            'permission_errors': sum(1 for e in self.errors if e['error_type'] == 'PermissionError'),
            'read_errors': sum(1 for e in self.errors if e['operation'] == READ_DIRECTORY),
            'stat_errors': sum(1 for e in self.errors if e['operation'] == STAT),
            'skipped_paths': len(self.skipped_paths),
            'errors': self.errors,
        }


class ContinueOnErrorsPolicy(CollectErrorsPolicy):
    """
    Policy that reports errors and continues the walk.

    This is the default: failures never abort the whole aggregation, the
    worst case is an undercounted size for the affected subtree.
    """

    def __init__(self, verbose: bool = False):
        """
        Args:
            verbose: If True, print warnings to stderr when errors occur
        """
        super().__init__()
        self.verbose = verbose

    def handle(self, error: Exception, operation: str, path: Optional[str]) -> Any:
        self._record(error, operation, path)

        if self.verbose:
            if isinstance(error, PermissionError):
                print(f"\nWARNING: Skipping inaccessible path '{path}': {error}", file=sys.stderr)
            else:
                print(f"\nWARNING: Error in {operation} for '{path}': {error}", file=sys.stderr)

        return default_for(operation)


class ThresholdPolicy(CollectErrorsPolicy):
    """
    Policy that tolerates errors up to a threshold, then fails fast.

    Useful when some errors are expected but too many indicate
    a systemic problem (a vanished mount, say) that should halt the scan.
    """

    def __init__(self, max_errors: int = 10):
        """
        Args:
            max_errors: Maximum errors to tolerate before failing
        """
        super().__init__()
        self.max_errors = max_errors

    def handle(self, error: Exception, operation: str, path: Optional[str]) -> Any:
        """Recover while under the threshold, otherwise raise."""
        self._record(error, operation, path)
        if len(self.errors) > self.max_errors:
            raise RuntimeError(f"Error threshold exceeded ({self.max_errors} errors)") from error
        return default_for(operation)

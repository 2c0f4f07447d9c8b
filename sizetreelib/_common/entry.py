"""Entry model: one file or directory record within a scan."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import EntryAlreadyFinalError
from .paths import name_of, normalize


@dataclass
class Entry:
    """A file or directory observed during a scan.

    ``size`` is only trustworthy once ``size_final`` is True. Files are
    final as soon as they are observed; directories start at 0 and are
    finalized exactly once by an aggregator.
    """

    path: str
    name: str
    is_directory: bool
    size: int = 0
    size_final: bool = False
    synthesized: bool = False

    @classmethod
    def file(cls, path: Any, size: int = 0, name: Optional[str] = None) -> 'Entry':
        """Create a file entry, final on creation."""
        path = normalize(path)
        return cls(
            path=path,
            name=name or name_of(path),
            is_directory=False,
            size=max(int(size or 0), 0),
            size_final=True,
        )

    @classmethod
    def directory(cls, path: Any, name: Optional[str] = None,
                  synthesized: bool = False) -> 'Entry':
        """Create a directory entry whose size is not yet known."""
        path = normalize(path)
        return cls(
            path=path,
            name=name or name_of(path),
            is_directory=True,
            synthesized=synthesized,
        )

    def observe(self, size: int) -> bool:
        """Record a partial, non-final size.

        Partial sizes only ever grow; observations after finalization
        or smaller than the current value are ignored.

        Returns:
            True if the observation changed the recorded size
        """
        if self.size_final or size <= self.size:
            return False
        self.size = size
        return True

    def finalize(self, size: int) -> None:
        """Set the final size. Allowed exactly once.

        Raises:
            EntryAlreadyFinalError: If the entry is already final
            ValueError: If the size is negative or below a partial value
        """
        if self.size_final:
            raise EntryAlreadyFinalError(self.path)
        if size < 0:
            raise ValueError(f"Negative size for '{self.path}': {size}")
        if size < self.size:
            raise ValueError(
                f"Size of '{self.path}' cannot shrink from {self.size} to {size}"
            )
        self.size = size
        self.size_final = True

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation of the entry."""
        return {
            'path': self.path,
            'name': self.name,
            'isDirectory': self.is_directory,
            'size': self.size,
            'sizeFinal': self.size_final,
        }

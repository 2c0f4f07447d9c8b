"""Scan event protocol.

The engine talks to its consumer through a closed set of event types.
They are transport-independent; ``event_to_dict`` produces the wire form
(an ``action`` tag plus fields) for whatever carries them onward.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from ._common import Entry


@dataclass(frozen=True)
class Init:
    """Engine is ready to accept a scan request."""

    action = 'init'


@dataclass(frozen=True)
class Listing:
    """Direct children of ``path`` are known.

    Subdirectory sizes in ``children`` are usually not final yet.
    """

    path: str
    children: Tuple[Entry, ...] = field(default_factory=tuple)

    action = 'listing'


@dataclass(frozen=True)
class SizeProgress:
    """Non-final, informational size observation."""

    path: str
    size: int

    action = 'sizeProgress'


@dataclass(frozen=True)
class SizeFinal:
    """Size of ``path`` is final. Never emitted twice for one path."""

    path: str
    size: int

    action = 'sizeFinal'


@dataclass(frozen=True)
class ScanComplete:
    """Whole scan finished."""

    total_entries: int
    elapsed_ms: float

    action = 'scanComplete'


@dataclass(frozen=True)
class Error:
    """Per-entry failure (with ``path``) or scan-level failure (without)."""

    message: str
    path: Optional[str] = None

    action = 'error'

    @property
    def is_fatal(self) -> bool:
        return self.path is None


ScanEvent = Union[Init, Listing, SizeProgress, SizeFinal, ScanComplete, Error]

EVENT_TYPES = (Init, Listing, SizeProgress, SizeFinal, ScanComplete, Error)


def event_to_dict(event: ScanEvent) -> Dict[str, Any]:
    """Convert an event into its wire dictionary.

    Raises:
        TypeError: For objects that are not scan events
    """
    if isinstance(event, Init):
        return {'action': Init.action}
    if isinstance(event, Listing):
        return {
            'action': Listing.action,
            'path': event.path,
            'children': [child.to_dict() for child in event.children],
        }
    if isinstance(event, (SizeProgress, SizeFinal)):
        return {'action': event.action, 'path': event.path, 'size': event.size}
    if isinstance(event, ScanComplete):
        return {
            'action': ScanComplete.action,
            'totalEntries': event.total_entries,
            'elapsedMs': round(event.elapsed_ms, 3),
        }
    if isinstance(event, Error):
        payload = {'action': Error.action, 'message': event.message}
        if event.path is not None:
            payload['path'] = event.path
        return payload
    raise TypeError(f"Not a scan event: {event!r}")


def event_to_json(event: ScanEvent) -> str:
    """Serialize an event as a single JSON line."""
    return json.dumps(event_to_dict(event), separators=(',', ':'))


def final_sizes(events: List[ScanEvent]) -> Dict[str, int]:
    """Collect ``path -> size`` from the SizeFinal events of a stream."""
    return {
        event.path: event.size
        for event in events
        if isinstance(event, SizeFinal)
    }

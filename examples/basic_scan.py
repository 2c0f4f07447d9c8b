#!/usr/bin/env python3
"""
Basic scan example showing incremental directory sizes with SizeTreeLib.

This example demonstrates:
- Streaming a live scan with a bounded concurrency limit
- Sizes arriving for small subtrees while big ones are still pending
- Reading the final listing back from the engine's cache
"""

import asyncio
import sys
from pathlib import Path

from sizetreelib import Error, ScanComplete, ScanConfig, ScanEngine, SizeFinal, format_size
from sizetreelib._common import sort_entries


async def main():
    """Scan a directory and print sizes as they become final."""
    root_path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path.cwd()

    print(f"Scanning: {root_path}")
    print("-" * 50)

    engine = ScanEngine(ScanConfig.live(concurrency_limit=32))
    finished = 0

    async for event in engine.start_scan(root_path):
        if isinstance(event, SizeFinal):
            finished += 1
            # Show the first few completions to illustrate streaming
            if finished <= 10:
                print(f"  done: {format_size(event.size):>12}  {event.path}")
        elif isinstance(event, Error):
            print(f"  error: {event.message}")
        elif isinstance(event, ScanComplete):
            print(f"\nScanned {event.total_entries:,} entries in {event.elapsed_ms:.0f} ms")

    session = engine.session
    children = session.cache.get(session.root) or []
    print(f"\nLargest entries in {session.root}:")
    for entry in sort_entries(children, 'size')[:5]:
        print(f"  {format_size(entry.size):>12}  {entry.name}")


if __name__ == "__main__":
    asyncio.run(main())

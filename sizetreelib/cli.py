"""Command line interface: scan a directory and report sizes.

With ``--json`` every engine event is written to stdout as one JSON line,
which makes the CLI a minimal transport for another process to consume.
Otherwise the root's children are printed with their final sizes.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, TextIO

from . import __version__
from ._common import filter_by_size, format_size, sort_entries
from .config import DEFAULT_LIVE_CONCURRENCY, ScanConfig
from .engine import ScanEngine
from .error_policies import ContinueOnErrorsPolicy, FailFastPolicy
from .events import Error, ScanComplete, event_to_json

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='sizetreelib',
        description='Compute the size of every file and directory under ROOT.',
    )
    parser.add_argument('root', help='Directory to scan')
    parser.add_argument('-c', '--concurrency', type=int, default=DEFAULT_LIVE_CONCURRENCY,
                        help='Maximum outstanding filesystem operations (default: %(default)s)')
    parser.add_argument('--json', action='store_true',
                        help='Print every scan event as a JSON line')
    parser.add_argument('--min-size', type=int, default=0, metavar='BYTES',
                        help='Hide entries smaller than BYTES in the listing')
    parser.add_argument('--sort', choices=('name', 'size'), default='size',
                        help='Listing order (default: %(default)s)')
    parser.add_argument('--follow-symlinks', action='store_true',
                        help='Descend into symlinked directories')
    parser.add_argument('--strict', action='store_true',
                        help='Abort the scan on the first filesystem error')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging on stderr')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


async def run(args: argparse.Namespace, out: Optional[TextIO] = None) -> int:
    """Run one scan for parsed arguments.

    Returns:
        Process exit code: 0 on success, 1 on a fatal scan error
    """
    out = out or sys.stdout
    config = ScanConfig.live(
        concurrency_limit=args.concurrency,
        size_filter_bytes=args.min_size,
        follow_symlinks=args.follow_symlinks,
        error_policy=FailFastPolicy() if args.strict else ContinueOnErrorsPolicy(),
    )
    engine = ScanEngine(config)
    if args.json:
        print(event_to_json(engine.init()), file=out)

    exit_code = 0
    complete: Optional[ScanComplete] = None
    error_count = 0

    async for event in engine.start_scan(args.root):
        if args.json:
            print(event_to_json(event), file=out)
        if isinstance(event, Error):
            if event.is_fatal:
                print(f"error: {event.message}", file=sys.stderr)
                exit_code = 1
            else:
                error_count += 1
        elif isinstance(event, ScanComplete):
            complete = event

    if args.json or complete is None:
        return exit_code

    session = engine.session
    children = session.cache.get(session.root) or []
    shown = sort_entries(filter_by_size(children, config.size_filter_bytes), args.sort)
    for entry in shown:
        marker = '/' if entry.is_directory else ''
        print(f"{format_size(entry.size):>12}  {entry.name}{marker}", file=out)

    total = session.tree.root_size or 0
    print(f"{format_size(total):>12}  total ({complete.total_entries} entries, "
          f"{complete.elapsed_ms:.0f} ms, {error_count} errors)", file=out)
    return exit_code


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )
    if args.concurrency <= 0:
        log.error("--concurrency must be positive")
        return 2
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == '__main__':
    sys.exit(main())

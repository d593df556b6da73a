"""
Command-line interface for full synchronization.

Available commands:
- run: One time-boxed invocation for a module
- status: Show stored progress
- reset: Forget stored progress
- partition: Print batch ranges, or send them in parallel
- schedule: Re-invoke until every module is finished
"""

import sys

from utils.logging import setup_logging
from utils.tracing import initialize_tracing, instrument_requests, shutdown_tracing

from .commands import cmd_partition, cmd_reset, cmd_run, cmd_schedule, cmd_status
from .parser import create_parser

COMMANDS = {
    'run': cmd_run,
    'status': cmd_status,
    'reset': cmd_reset,
    'partition': cmd_partition,
    'schedule': cmd_schedule,
}


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the fullsync CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)

    setup_logging(
        level=args.log_level,
        log_file=args.log_file,
        json_format=args.log_json,
    )

    sends = args.command in ('run', 'schedule') or getattr(args, 'send', False)
    if sends:
        initialize_tracing()
        instrument_requests()

    try:
        command(args)
    finally:
        if sends:
            shutdown_tracing()


__all__ = [
    'main',
    'create_parser',
    'cmd_run',
    'cmd_status',
    'cmd_reset',
    'cmd_partition',
    'cmd_schedule',
]


if __name__ == '__main__':
    main()

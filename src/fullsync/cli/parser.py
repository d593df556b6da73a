"""
Command-line argument parser for the fullsync CLI.
"""

import argparse
import os


def _add_database_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--db-type',
        choices=['postgresql', 'sqlserver'],
        help='Backing store type (default: $FULLSYNC_DB_TYPE or postgresql)'
    )
    parser.add_argument('--db-host', help='Database host')
    parser.add_argument('--db-port', help='Database port')
    parser.add_argument('--db-name', help='Database name')
    parser.add_argument('--db-user', help='Database username')
    parser.add_argument('--db-password', help='Database password')


def _add_endpoint_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--endpoint',
        default=os.getenv('FULLSYNC_ENDPOINT'),
        help='URL receiving full sync actions (default: $FULLSYNC_ENDPOINT)'
    )
    parser.add_argument(
        '--token',
        default=os.getenv('FULLSYNC_TOKEN'),
        help='Bearer token for the endpoint (default: $FULLSYNC_TOKEN)'
    )


def _add_transport_arguments(parser: argparse.ArgumentParser) -> None:
    _add_endpoint_arguments(parser)
    parser.add_argument(
        '--time-budget',
        type=float,
        default=30.0,
        help='Seconds one invocation may spend sending (default: 30)'
    )
    parser.add_argument(
        '--config',
        help='Full sync configuration as JSON, e.g. \'{"status": "publish"}\' or \'[1, 2, 3]\''
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='fullsync',
        description="Resumable, time-boxed full synchronization of table ids",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One invocation of the posts full sync with a 20 second budget
  fullsync run --module posts --time-budget 20

  # Only published posts
  fullsync run --module posts --config '{"status": "publish"}'

  # Show progress of every module with stored state
  fullsync status

  # Start the posts full sync over
  fullsync reset --module posts

  # Print batch ranges of 1000 ids for parallel workers
  fullsync partition --module posts --batch-size 1000

  # Send those ranges with 8 parallel workers
  fullsync partition --module posts --batch-size 1000 --send --workers 8

  # Re-invoke every minute until posts and comments are finished
  fullsync schedule --module posts --module comments --interval 60

  # Re-invoke every night at 02:00
  fullsync schedule --module posts --cron "0 2 * * *"
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=os.getenv('LOG_LEVEL', 'INFO'),
        help='Logging level (default: INFO)'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Emit JSON log lines'
    )
    parser.add_argument(
        '--log-file',
        default=os.getenv('LOG_FILE'),
        help='Also write logs to this file (rotated)'
    )
    parser.add_argument(
        '--state-dir',
        default=os.getenv('FULLSYNC_STATE_DIR', './fullsync_state'),
        help='Directory holding full sync state (default: $FULLSYNC_STATE_DIR or ./fullsync_state)'
    )
    parser.add_argument(
        '--modules-file',
        default=os.getenv('FULLSYNC_MODULES_FILE'),
        help='JSON/YAML list of module definitions (default: $FULLSYNC_MODULES_FILE)'
    )
    parser.add_argument(
        '--limits-file',
        default=os.getenv('FULL_SYNC_LIMITS_FILE'),
        help='JSON/YAML per-module limits (default: $FULL_SYNC_LIMITS_FILE)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Run command ==========
    run_parser = subparsers.add_parser('run', help='Run one full sync invocation')
    run_parser.add_argument('--module', required=True, help='Module to synchronize')
    run_parser.add_argument(
        '--metrics-port',
        type=int,
        help='Expose Prometheus metrics on this port while running'
    )
    _add_transport_arguments(run_parser)
    _add_database_arguments(run_parser)

    # ========== Status command ==========
    status_parser = subparsers.add_parser('status', help='Show stored full sync status')
    status_parser.add_argument(
        '--module',
        help='Module to show (default: every module with stored state)'
    )

    # ========== Reset command ==========
    reset_parser = subparsers.add_parser('reset', help='Forget stored full sync status')
    reset_parser.add_argument('--module', required=True, help='Module to reset')

    # ========== Partition command ==========
    partition_parser = subparsers.add_parser(
        'partition', help='Print batch ranges for parallel work'
    )
    partition_parser.add_argument('--module', required=True, help='Module to partition')
    partition_parser.add_argument(
        '--batch-size',
        type=int,
        required=True,
        help='Ids per batch range'
    )
    partition_parser.add_argument(
        '--config',
        help='Full sync configuration as JSON'
    )
    partition_parser.add_argument(
        '--output',
        help='Write ranges to this file instead of stdout'
    )
    partition_parser.add_argument(
        '--send',
        action='store_true',
        help='Send every range to the endpoint in parallel instead of printing'
    )
    partition_parser.add_argument(
        '--workers',
        type=int,
        help='Parallel workers for --send (default: estimated from the range count)'
    )
    partition_parser.add_argument(
        '--timeout-per-batch',
        type=int,
        default=3600,
        help='Seconds one range may take with --send (default: 3600)'
    )
    partition_parser.add_argument(
        '--fail-fast',
        action='store_true',
        help='Cancel remaining ranges after the first failure with --send'
    )
    _add_endpoint_arguments(partition_parser)
    _add_database_arguments(partition_parser)

    # ========== Schedule command ==========
    schedule_parser = subparsers.add_parser(
        'schedule', help='Re-invoke full syncs on an interval until finished'
    )
    schedule_parser.add_argument(
        '--module',
        action='append',
        required=True,
        help='Module to synchronize (repeatable)'
    )
    schedule_parser.add_argument(
        '--interval',
        type=int,
        default=60,
        help='Seconds between invocations (default: 60)'
    )
    schedule_parser.add_argument(
        '--cron',
        help='Five-field cron expression, e.g. "*/10 * * * *"; replaces --interval'
    )
    schedule_parser.add_argument(
        '--metrics-port',
        type=int,
        help='Expose Prometheus metrics on this port while running'
    )
    _add_transport_arguments(schedule_parser)
    _add_database_arguments(schedule_parser)

    return parser

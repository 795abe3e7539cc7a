#!/usr/bin/env python3
"""
CLI for the directory monitor.

Usage:
    python -m src.cli monitor --dir /path/to/folder --db monitor.db
    python -m src.cli status --db monitor.db
    python -m src.cli processors
"""

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from src.dirmonitor import (
    ConfigError,
    DirectoryNotFoundError,
    MonitorConfig,
    MonitorProcess,
    PathRecordStore,
    create_default_registry,
)


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("cli")


class GracefulShutdown:
    """Stop a monitor on SIGINT/SIGTERM."""

    def __init__(self, monitor: MonitorProcess):
        self.monitor = monitor
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.monitor.stop()


def _load_env() -> None:
    env_file = Path(__file__).parent.parent / ".env"
    if env_file.exists():
        load_dotenv(env_file)
    else:
        load_dotenv()


def cmd_monitor(args) -> int:
    """Run the directory monitor until interrupted."""
    _load_env()

    try:
        config = MonitorConfig.from_env(
            directory=args.dir,
            file_regex=args.file_regex,
            check_period_ms=args.check_period,
            stability_period_ms=args.stability_period,
            processor_id=args.processor,
            db_path=args.db,
        )
    except ConfigError as e:
        logger.error(str(e))
        return 1

    config.db_path = config.db_path.resolve()
    config.db_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        monitor = MonitorProcess(config)
    except DirectoryNotFoundError as e:
        logger.error(str(e))
        return 1

    with monitor:
        GracefulShutdown(monitor)
        logger.info(f"Database: {config.db_path}")
        logger.info("Press Ctrl+C to stop")
        monitor.start()

    logger.info("Monitor stopped")
    return 0


def cmd_status(args) -> int:
    """Print the number of path records per status."""
    db_path = Path(args.db)
    if not db_path.exists():
        logger.error(f"Database does not exist: {db_path}")
        return 1

    with PathRecordStore(db_path) as store:
        counts = store.count_by_status()
        total = store.count()

    print(f"Database: {db_path.resolve()}")
    for status, n in counts.items():
        print(f"  {status.name:<20} {n}")
    print(f"  {'TOTAL':<20} {total}")
    return 0


def cmd_processors(args) -> int:
    """List the registered processor ids."""
    for processor_id in create_default_registry().ids():
        print(processor_id)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Monitor a directory and drive a processor for each file change",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Monitor a directory with the default processor
  python -m src.cli monitor --dir ./incoming --db monitor.db

  # Only .csv files, scan every 5 seconds
  python -m src.cli monitor --dir ./incoming --file-regex '.*\\.csv' --check-period 5000

  # Show record counts
  python -m src.cli status --db monitor.db
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Monitor command
    monitor_parser = subparsers.add_parser("monitor", help="Run the directory monitor")
    monitor_parser.add_argument("--dir", default=None, help="Directory to monitor (or MONITOR_DIR env)")
    monitor_parser.add_argument("--file-regex", default=None, help="Regex file names must match (default: .*)")
    monitor_parser.add_argument("--check-period", type=int, default=None, help="Scan interval in ms (default: 10000)")
    monitor_parser.add_argument("--stability-period", type=int, default=None, help="Stability period in ms (default: 2000)")
    monitor_parser.add_argument("--processor", default=None, help="Processor id (default: Default)")
    monitor_parser.add_argument("--db", default=None, help="Record database path (default: monitor.db)")
    monitor_parser.set_defaults(func=cmd_monitor)

    # Status command
    status_parser = subparsers.add_parser("status", help="Show record counts per status")
    status_parser.add_argument("--db", default="monitor.db", help="Record database path")
    status_parser.set_defaults(func=cmd_status)

    # Processors command
    processors_parser = subparsers.add_parser("processors", help="List available processors")
    processors_parser.set_defaults(func=cmd_processors)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

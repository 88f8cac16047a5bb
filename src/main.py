#!/usr/bin/env python3
"""Main entry point for CronTick."""

import asyncio
import logging
import os
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent))

from config import settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler(settings.log_file) if settings.log_file else logging.NullHandler()
    ]
)

logger = logging.getLogger(__name__)


async def run_service(crontab_path: str, location_paths: str, watch: bool):
    """Run the crontab service until cancelled."""
    from cronfile import CrontabService

    service = CrontabService(crontab_path, location_paths or None, delay_start=settings.delay_start, watch=watch)
    logger.info(f"Running {len(service.list_jobs())} jobs from {service.crontab_path}")
    service.start()  # no-op unless delay_start is set
    try:
        await asyncio.Event().wait()
    finally:
        service.stop()


def validate_crontab(crontab_path: str, location_paths: str) -> int:
    """Print the validity of every entry of a crontab file.

    Returns:
        Process exit code: 0 if every entry is valid, 1 otherwise
    """
    from cronfile import FileLocator, validate_crontab_file
    from scheduler import CronError

    locator = FileLocator(location_paths or None)
    try:
        results = validate_crontab_file(locator.resolve(crontab_path), locator)
    except (OSError, CronError) as e:
        print(f"{crontab_path}: {e}")
        return 1

    for line_number, error in results.items():
        print(f"line {line_number}: {error.message if error else 'OK'}")
    failures = sum(1 for error in results.values() if error is not None)
    print(f"{len(results)} entries, {failures} invalid")
    return 1 if failures else 0


def preview_matches(expression: str, count: int, start: str = None) -> int:
    """Print the next ``count`` matching minutes of a cron expression."""
    from scheduler import CronSchedule, CronError

    try:
        schedule = CronSchedule(expression)
        moment = datetime.fromisoformat(start) if start else datetime.now()
    except (CronError, ValueError) as e:
        print(f"Invalid input: {e}")
        return 1

    horizon = timedelta(days=settings.next_match_horizon_days)
    for _ in range(count):
        try:
            moment = schedule.next_match(moment, horizon)
        except ValueError as e:
            print(str(e))
            return 1
        print(moment.isoformat())
    return 0


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="CronTick Scheduler")
    parser.add_argument(
        "--locations",
        default=settings.location_paths,
        help=f"Supplemental search locations, separated by '{os.pathsep}'"
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run the jobs of a crontab file")
    run_parser.add_argument(
        "crontab",
        nargs="?",
        default=settings.crontab_path,
        help=f"Crontab file (default: {settings.crontab_path})"
    )
    run_parser.add_argument(
        "--no-watch",
        action="store_true",
        help="Do not reload the crontab when it changes"
    )

    validate_parser = subparsers.add_parser("validate", help="Validate a crontab file")
    validate_parser.add_argument("crontab", help="Crontab file")

    next_parser = subparsers.add_parser("next", help="Show upcoming matches of a cron expression")
    next_parser.add_argument("expression", help="Cron expression or @alias")
    next_parser.add_argument("--count", type=int, default=5, help="Number of matches (default: 5)")
    next_parser.add_argument("--from", dest="start", help="ISO timestamp to start from (default: now)")

    args = parser.parse_args()

    try:
        if args.command == "validate":
            sys.exit(validate_crontab(args.crontab, args.locations))
        elif args.command == "next":
            sys.exit(preview_matches(args.expression, args.count, args.start))
        else:  # run
            crontab = getattr(args, "crontab", settings.crontab_path)
            watch = settings.watch_crontab and not getattr(args, "no_watch", False)
            asyncio.run(run_service(crontab, args.locations, watch))

    except KeyboardInterrupt:
        logger.info("Shutting down CronTick...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

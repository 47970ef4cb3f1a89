"""
Run one scheduler tick from the command line.

For deployments that drive the scheduler from cron or a systemd timer
instead of the in-process interval trigger. Safe to run repeatedly.

Usage:
    python -m scripts.process_due_tasks
    python -m scripts.process_due_tasks --setup
    python -m scripts.process_due_tasks --now 2025-08-19T09:00:00
"""

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

# Add parent dir to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from cadence.container import build_services
from cadence.infrastructure.config import get_settings
from cadence.infrastructure.database import close_database, create_tables, init_database
from cadence.infrastructure.log_config import configure_logging


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Process due Cadence scheduled tasks")
    parser.add_argument("--setup", action="store_true", help="create default recurring tasks first")
    parser.add_argument(
        "--now",
        type=datetime.fromisoformat,
        default=None,
        help="evaluation time in ISO format (default: current UTC time)",
    )
    parser.add_argument(
        "--wait",
        action="store_true",
        help="wait for background review analyses before exiting",
    )
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)

    await init_database(settings.database_url, echo=settings.database_echo)
    try:
        if settings.create_tables_on_startup:
            await create_tables()

        services = build_services(settings)

        if args.setup:
            setup = await services.scheduler.setup_default_tasks(now=args.now)
            print(f"Setup: {setup.created} created, {setup.skipped} already present")

        report = await services.scheduler.process_due(args.now)
        print(f"Tick at {report.now.isoformat()}: {report.due} due, "
              f"{report.completed} completed, {report.failed} failed")
        for outcome in report.outcomes:
            mark = "OK  " if outcome.succeeded else "FAIL"
            print(f"  {mark} {outcome.task_id}: {outcome.summary or outcome.error}")

        # Analyses started by this tick die with the event loop unless awaited
        if args.wait:
            await services.reviews.drain()

        return 1 if report.failed else 0
    finally:
        await close_database()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

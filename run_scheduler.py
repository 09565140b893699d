#!/usr/bin/env python3
"""
Standalone runner for the FRC sync scheduler.

Runs the periodic sync without the HTTP API. It can be run via systemd,
supervisor, or directly.

Usage:
    python run_scheduler.py                  # Run in foreground at FRC_AUTO_SYNC_INTERVAL
    python run_scheduler.py --interval 600   # Override the period (seconds)
    python run_scheduler.py --once           # Run one sync cycle and exit
    python run_scheduler.py --validate       # Check FRC API credentials and exit
"""
import asyncio
import argparse
import signal
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from frcsync.core.config import get_settings
from frcsync.core.database import init_db
from frcsync.core.logging import configure_logging, get_logger
from frcsync.core.scheduler import SyncScheduler
from frcsync.services.sync.orchestrator import SyncStatus, build_orchestrator

logger = get_logger(__name__)


class SchedulerRunner:
    """Runner for the sync scheduler."""

    def __init__(self, interval_seconds: int, run_on_start: bool = True):
        self.interval_seconds = interval_seconds
        self.run_on_start = run_on_start
        self.scheduler: SyncScheduler = None
        self._shutdown = asyncio.Event()

    async def start(self):
        """Start the scheduler and run until a shutdown signal arrives."""
        logger.info("Starting scheduler runner...")

        settings = get_settings()
        init_db()
        orchestrator = build_orchestrator(settings)

        self.scheduler = SyncScheduler(
            orchestrator,
            interval_seconds=self.interval_seconds,
            enabled=settings.FRC_SCHEDULER_ENABLED,
            run_on_start=self.run_on_start,
        )
        await self.scheduler.start()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._set_shutdown)

        logger.info("Scheduler is now running; press Ctrl+C to stop")
        await self._shutdown.wait()

        await self.scheduler.stop()
        await orchestrator.close()
        logger.info("Scheduler runner stopped")

    def _set_shutdown(self):
        logger.info("Shutdown signal received")
        self._shutdown.set()


async def run_once() -> bool:
    """Run a single sync cycle; True unless it failed or was cancelled."""
    init_db()
    orchestrator = build_orchestrator()
    try:
        report = await orchestrator.sync_all(trigger="cli")
    finally:
        await orchestrator.close()

    print(f"Sync {report.status}: {report.created} created, {report.updated} updated, "
          f"{report.failed} failed ({report.duration_seconds:.2f}s)")
    for error in report.errors:
        print(f"  error: {error}")
    return report.status not in (SyncStatus.FAILED, SyncStatus.CANCELLED)


async def run_validate() -> bool:
    """Check credentials and connectivity."""
    settings = get_settings()
    orchestrator = build_orchestrator(settings)
    try:
        ok = await orchestrator.adapter.validate_connection(await orchestrator.resolve_season_year())
    finally:
        await orchestrator.close()

    if not orchestrator.adapter.is_configured():
        print("FRC API credentials are not configured")
    elif ok:
        print(f"FRC API connection OK ({settings.FRC_API_BASE_URL})")
    else:
        print("FRC API connection failed; see logs")
    return ok


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Run the FRC event sync scheduler')

    parser.add_argument(
        '--interval',
        type=int,
        metavar='SECONDS',
        help='Seconds between sync runs (default: FRC_AUTO_SYNC_INTERVAL)'
    )
    parser.add_argument(
        '--once',
        action='store_true',
        help='Run one sync cycle and exit'
    )
    parser.add_argument(
        '--validate',
        action='store_true',
        help='Validate FRC API credentials and exit'
    )
    parser.add_argument(
        '--no-initial-run',
        action='store_true',
        help='Wait one interval before the first run'
    )

    args = parser.parse_args()

    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)

    if args.validate:
        return 0 if asyncio.run(run_validate()) else 1

    if args.once:
        return 0 if asyncio.run(run_once()) else 1

    interval = args.interval or settings.FRC_AUTO_SYNC_INTERVAL
    if interval <= 0:
        parser.error("--interval must be positive")

    runner = SchedulerRunner(interval, run_on_start=not args.no_initial_run)

    try:
        asyncio.run(runner.start())
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down...")
    except Exception as e:
        logger.error(f"Scheduler error: {e}", exc_info=True)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())

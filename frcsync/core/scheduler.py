"""
Periodic scheduler for FRC data synchronization.

Runs ``SyncOrchestrator.sync_all()`` every ``FRC_AUTO_SYNC_INTERVAL``
seconds on the asyncio event loop, separate from any request handling.
The orchestrator knows nothing about timing; everything timing-related
lives here.

Scheduler: APScheduler (lightweight, FastAPI-compatible)
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from frcsync.core.metrics import frc_scheduler_running
from frcsync.services.sync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "frc_sync_all"


class SyncScheduler:
    """
    Interval scheduler around a SyncOrchestrator.

    ``enable()``/``disable()`` pause and resume the job without tearing the
    scheduler down; ``stop()`` interrupts pending rate-limit waits and waits
    for the in-flight run to finish its current record.
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        interval_seconds: int = 3600,
        enabled: bool = True,
        run_on_start: bool = False,
    ):
        """
        Initialize the scheduler.

        Args:
            orchestrator: The sync entry point to invoke
            interval_seconds: Period between runs
            enabled: Whether the job fires; a disabled scheduler stays paused
            run_on_start: Fire the first run immediately instead of after one interval
        """
        if interval_seconds <= 0:
            raise ValueError(f"Sync interval must be positive, got {interval_seconds}")

        self.orchestrator = orchestrator
        self.interval_seconds = interval_seconds
        self.enabled = enabled
        self.run_on_start = run_on_start
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        logger.info(f"Starting FRC sync scheduler (every {self.interval_seconds}s)...")

        self.orchestrator.resume()

        self.scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                'coalesce': True,  # Combine missed runs into one
                'max_instances': 1,  # Only one instance of each job
                'misfire_grace_time': 300  # 5 minutes grace for misfires
            }
        )

        job_kwargs = {}
        if self.run_on_start:
            job_kwargs["next_run_time"] = datetime.now(timezone.utc)

        self.scheduler.add_job(
            self._run_sync,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=SYNC_JOB_ID,
            name="FRC Sync All",
            replace_existing=True,
            **job_kwargs
        )

        self.scheduler.start(paused=False)
        if not self.enabled:
            self.scheduler.pause_job(SYNC_JOB_ID)

        self.running = True
        frc_scheduler_running.set(1)

        logger.info(f"Scheduler started; next run: {self._format_next_run()}")

    async def stop(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the scheduler.

        Args:
            wait: Wait for an in-flight run to end (it stops after its current record)
            timeout: Maximum seconds to wait
        """
        if not self.running:
            return

        logger.info("Stopping scheduler...")
        self.orchestrator.request_stop()
        self.scheduler.shutdown(wait=False)
        self.running = False
        frc_scheduler_running.set(0)

        if wait:
            if await self.orchestrator.wait_until_idle(timeout):
                # Nothing in flight any more; manual runs may proceed
                self.orchestrator.resume()
            else:
                logger.warning(f"Sync run still in flight after {timeout}s; leaving it to finish")

        logger.info("Scheduler stopped")

    def set_interval(self, seconds: int) -> None:
        """
        Change the sync period; applies immediately when running.

        Raises:
            ValueError: If seconds is not positive
        """
        if seconds <= 0:
            raise ValueError(f"Sync interval must be positive, got {seconds}")

        self.interval_seconds = seconds
        if self.running:
            self.scheduler.reschedule_job(SYNC_JOB_ID, trigger=IntervalTrigger(seconds=seconds))
            logger.info(f"Sync interval set to {seconds}s; next run: {self._format_next_run()}")
        else:
            logger.info(f"Sync interval set to {seconds}s")

    def enable(self) -> None:
        """Let the job fire again."""
        self.enabled = True
        if self.running:
            self.scheduler.resume_job(SYNC_JOB_ID)
        logger.info("FRC sync scheduling enabled")

    def disable(self) -> None:
        """Pause the job; an in-flight run is not interrupted."""
        self.enabled = False
        if self.running:
            self.scheduler.pause_job(SYNC_JOB_ID)
        logger.info("FRC sync scheduling disabled")

    @property
    def next_run_time(self) -> Optional[datetime]:
        if not self.running:
            return None
        job = self.scheduler.get_job(SYNC_JOB_ID)
        return job.next_run_time if job else None

    def _format_next_run(self) -> str:
        next_run = self.next_run_time
        return next_run.isoformat() if next_run else "paused"

    async def _run_sync(self):
        """Job body: one sync cycle."""
        try:
            report = await self.orchestrator.sync_all(trigger="scheduled")
            logger.info(f"Scheduled sync finished with status {report.status}")
        except Exception as e:
            # sync_all() guards itself; this only catches wiring bugs
            logger.error(f"Scheduled sync raised: {e}", exc_info=True)

    def get_status(self) -> dict:
        next_run = self.next_run_time
        return {
            "running": self.running,
            "enabled": self.enabled,
            "interval_seconds": self.interval_seconds,
            "next_run_time": next_run.isoformat() if next_run else None,
            "sync_in_progress": self.orchestrator.is_running,
        }


# Global scheduler instance
_scheduler: Optional[SyncScheduler] = None


async def start_scheduler(orchestrator: SyncOrchestrator, settings=None) -> SyncScheduler:
    """Start the global scheduler from Settings."""
    global _scheduler
    if settings is None:
        from frcsync.core.config import get_settings
        settings = get_settings()

    if _scheduler is None:
        _scheduler = SyncScheduler(
            orchestrator,
            interval_seconds=settings.FRC_AUTO_SYNC_INTERVAL,
            enabled=settings.FRC_SCHEDULER_ENABLED,
        )
        await _scheduler.start()
    return _scheduler


async def stop_scheduler():
    """Stop the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None


def get_scheduler() -> Optional[SyncScheduler]:
    """Get the global scheduler instance."""
    return _scheduler

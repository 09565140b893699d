"""Sync orchestrator for FRC competition data.

One ``sync_all()`` run:
1. Returns immediately when sync is disabled or credentials are missing
2. Resolves the season: the configured one, else the season the API flags
   as current, else the UTC calendar year
3. If a default team is configured, fetches that team's events for the
   season and reconciles them
4. Fetches every event of the season and reconciles them
5. Logs a summary and returns a SyncReport

Steps are strictly sequential, so team events are stored before season
events. Runs never overlap: a run that starts while another is in flight is
skipped with a warning instead of queued. Unexpected errors are logged and
recorded in the report, never raised, so a scheduler job cannot crash on
them.

Stopping is cooperative: request_stop() interrupts rate-limiter waits and
lets the reconciler finish the record in progress before the run ends as
"cancelled".
"""
import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from frcsync.core.exceptions import SyncCancelledError
from frcsync.core.logging import sync_run_context
from frcsync.core.metrics import frc_sync_duration_seconds, frc_sync_runs_total
from frcsync.models.models import Event
from frcsync.services.sync.adapters.frc_api_adapter import FrcApiAdapter
from frcsync.services.sync.reconciler import EventReconciler, ReconcileResult
from frcsync.utils.timezone import utcnow

logger = logging.getLogger(__name__)


class SyncStatus:
    """Final status values of a sync run."""
    SUCCESS = "success"
    PARTIAL = "partial"  # completed, some records failed to persist
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"  # another run was in flight
    DISABLED = "disabled"
    NOT_CONFIGURED = "not_configured"


@dataclass
class SyncReport:
    """Summary of one sync_all() invocation."""
    status: str
    run_id: Optional[str] = None
    trigger: str = "scheduled"
    season_year: Optional[int] = None
    started_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    duration_seconds: float = 0.0
    queries: Dict[str, ReconcileResult] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def created(self) -> int:
        return sum(r.created for r in self.queries.values())

    @property
    def updated(self) -> int:
        return sum(r.updated for r in self.queries.values())

    @property
    def failed(self) -> int:
        return sum(r.failed for r in self.queries.values())

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "run_id": self.run_id,
            "trigger": self.trigger,
            "season_year": self.season_year,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
            "created": self.created,
            "updated": self.updated,
            "failed": self.failed,
            "queries": {name: result.to_dict() for name, result in self.queries.items()},
            "errors": list(self.errors),
        }


class SyncOrchestrator:
    """
    Coordinates fetch -> map -> reconcile for the FRC event queries.

    This is the main entry point of the sync engine; the scheduler, the
    manual trigger route and the standalone runner all go through sync_all().
    """

    def __init__(
        self,
        adapter: FrcApiAdapter,
        reconciler: EventReconciler,
        sync_enabled: bool = True,
        default_team_number: int = 0,
        season_year_provider: Optional[Callable[[], Optional[int]]] = None,
    ):
        """
        Initialize the sync orchestrator.

        Args:
            adapter: FRC API adapter (guard, cache, rate limit, mapping)
            reconciler: Event reconciler bound to a repository
            sync_enabled: Master switch; False turns sync_all() into a no-op
            default_team_number: Team whose events are synced first (0 = none)
            season_year_provider: Returns the configured season, or None to discover it
                from the API (falling back to the UTC year)
        """
        self.adapter = adapter
        self.reconciler = reconciler
        self.sync_enabled = sync_enabled
        self.default_team_number = default_team_number or 0
        self.season_year_provider = season_year_provider or (lambda: None)
        self._season_year: Optional[int] = None

        self._lock = asyncio.Lock()
        self._stop_requested = threading.Event()
        self._last_report: Optional[SyncReport] = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    @property
    def last_report(self) -> Optional[SyncReport]:
        return self._last_report

    # ========================================================================
    # Stop / resume
    # ========================================================================

    def request_stop(self) -> None:
        """Ask any in-flight run to stop at the next safe point."""
        self._stop_requested.set()
        self.adapter.rate_limiter.cancel_waits()

    def resume(self) -> None:
        """Clear a previous stop request so new runs may proceed."""
        self._stop_requested.clear()
        self.adapter.rate_limiter.resume()

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    async def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for an in-flight run to finish.

        Returns:
            True if idle, False if the timeout expired first
        """
        async def _wait():
            async with self._lock:
                pass

        try:
            await asyncio.wait_for(_wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False

    # ========================================================================
    # Season
    # ========================================================================

    async def resolve_season_year(self) -> int:
        """
        The season to sync.

        A configured season wins. Otherwise the API's current season is used,
        and the UTC calendar year when the API flags none.
        """
        configured = self.season_year_provider()
        if configured:
            return configured

        current = await self.adapter.get_current_season()
        if current is not None:
            self._season_year = current.year
        else:
            self._season_year = utcnow().year
            logger.warning(f"Falling back to calendar year {self._season_year} as the FRC season")
        return self._season_year

    # ========================================================================
    # Sync
    # ========================================================================

    async def sync_all(self, trigger: str = "scheduled") -> SyncReport:
        """
        Run one full synchronization cycle.

        Args:
            trigger: Who started the run ("scheduled", "manual", "startup", ...)

        Returns:
            SyncReport describing the run (status "skipped" if one was in flight)
        """
        # No await between the check and the acquire, so this is a try-lock
        if self._lock.locked():
            logger.warning(
                "Sync already in progress; skipping this cycle",
                extra={"event": "sync_skipped_overlap", "trigger": trigger}
            )
            frc_sync_runs_total.labels(status=SyncStatus.SKIPPED).inc()
            report = SyncReport(status=SyncStatus.SKIPPED, trigger=trigger)
            report.finished_at = report.started_at
            return report

        async with self._lock:
            with sync_run_context() as run_id:
                report = await self._run(run_id, trigger)

        frc_sync_runs_total.labels(status=report.status).inc()
        self._last_report = report
        return report

    async def _run(self, run_id: str, trigger: str) -> SyncReport:
        report = SyncReport(status=SyncStatus.SUCCESS, run_id=run_id, trigger=trigger)

        if not self.sync_enabled:
            logger.info("FRC sync disabled; nothing to do")
            return self._finish(report, SyncStatus.DISABLED)

        if not self.adapter.is_configured():
            logger.info(
                "FRC API credentials not configured; skipping sync",
                extra={"event": "frc_api_not_configured"}
            )
            return self._finish(report, SyncStatus.NOT_CONFIGURED)

        start = time.monotonic()
        logger.info(f"Starting FRC sync ({trigger})")

        try:
            if self._stop_requested.is_set():
                raise SyncCancelledError("Stop requested before the run started")

            season_year = await self.resolve_season_year()
            report.season_year = season_year

            if self.default_team_number > 0:
                await self._sync_query(
                    report,
                    "team_events",
                    lambda: self.adapter.get_team_events(self.default_team_number, season_year),
                )

            await self._sync_query(
                report,
                "season_events",
                lambda: self.adapter.get_events(season_year),
            )

        except SyncCancelledError as e:
            logger.warning(
                f"FRC sync cancelled: {e}",
                extra={"event": "sync_cancelled"}
            )
            return self._finish(report, SyncStatus.CANCELLED, start)

        except Exception as e:
            logger.exception(
                f"FRC sync failed: {e}",
                extra={"event": "sync_failed"}
            )
            report.errors.append(f"{type(e).__name__}: {e}")
            return self._finish(report, SyncStatus.FAILED, start)

        if report.errors and not report.queries:
            status = SyncStatus.FAILED
        elif report.errors or report.failed:
            status = SyncStatus.PARTIAL
        else:
            status = SyncStatus.SUCCESS

        report = self._finish(report, status, start)
        frc_sync_duration_seconds.observe(report.duration_seconds)
        logger.info(
            f"FRC sync completed: {report.created} created, {report.updated} updated, "
            f"{report.failed} failed in {report.duration_seconds:.2f}s",
            extra={
                "event": "sync_completed",
                "status": status,
                "created": report.created,
                "updated": report.updated,
                "failed": report.failed,
            }
        )
        return report

    async def _sync_query(self, report: SyncReport, name: str, fetch) -> None:
        """
        Fetch and reconcile one query, isolating its unexpected errors.

        SyncCancelledError propagates; anything else is logged and recorded
        so the next query still runs.
        """
        try:
            events: List[Event] = await fetch()
        except SyncCancelledError:
            raise
        except Exception as e:
            logger.exception(
                f"Fetching {name} failed: {e}",
                extra={"event": "sync_failed", "query": name}
            )
            report.errors.append(f"{name}: {type(e).__name__}: {e}")
            return

        result = await asyncio.to_thread(
            self.reconciler.reconcile, events, self._stop_requested.is_set
        )
        report.queries[name] = result

        if result.stopped:
            raise SyncCancelledError(f"Stopped during {name} reconciliation")

    def _finish(self, report: SyncReport, status: str, start: Optional[float] = None) -> SyncReport:
        report.status = status
        report.finished_at = utcnow()
        if start is not None:
            report.duration_seconds = time.monotonic() - start
        return report

    # ========================================================================
    # Status
    # ========================================================================

    def get_sync_status(self) -> Dict:
        """
        Return the engine's current state and the last run's report.

        Returns:
            Dict with configuration flags, running state and last report
        """
        return {
            "sync_enabled": self.sync_enabled,
            "configured": self.adapter.is_configured(),
            "default_team_number": self.default_team_number or None,
            "season_year": self.season_year_provider() or self._season_year,
            "running": self.is_running,
            "stop_requested": self.stop_requested,
            "last_run": self._last_report.to_dict() if self._last_report else None,
        }

    async def close(self) -> None:
        """Release the HTTP client."""
        await self.adapter.close()


def build_orchestrator(settings=None, session_factory=None, transport=None) -> SyncOrchestrator:
    """
    Wire a SyncOrchestrator from Settings.

    Args:
        settings: Application settings (defaults to get_settings())
        session_factory: SQLAlchemy sessionmaker (defaults to the process-wide one)
        transport: Optional httpx transport override for the API client

    Returns:
        Ready-to-use orchestrator
    """
    from frcsync.core.config import get_settings
    from frcsync.core.database import get_session_factory
    from frcsync.repositories.event_repository import SqlAlchemyEventRepository
    from frcsync.services.core.frc_api_service import FrcApiService
    from frcsync.services.core.rate_limiter import EndpointRateLimiter
    from frcsync.services.core.response_cache import ResponseCache

    settings = settings or get_settings()
    session_factory = session_factory or get_session_factory()

    adapter = FrcApiAdapter(
        api_service=FrcApiService.from_settings(settings, transport=transport),
        rate_limiter=EndpointRateLimiter(settings.requests_per_minute),
        cache=ResponseCache(default_ttl=settings.cache_ttl, maxsize=settings.FRC_CACHE_MAXSIZE),
        default_team_number=settings.DEFAULT_TEAM_NUMBER,
    )
    reconciler = EventReconciler(SqlAlchemyEventRepository(session_factory))

    return SyncOrchestrator(
        adapter=adapter,
        reconciler=reconciler,
        sync_enabled=settings.FRC_SYNC_ENABLED,
        default_team_number=settings.DEFAULT_TEAM_NUMBER,
        season_year_provider=lambda: settings.CURRENT_SEASON_YEAR,
    )

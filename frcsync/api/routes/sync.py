"""Sync API routes for FRC data synchronization management.

Provides endpoints for:
- Sync status (last run report, configuration flags)
- Manual sync trigger (goes through the same overlap guard as scheduled runs)
- Scheduler control (start/stop/enable/disable/interval)
- FRC API connection validation
"""
import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from frcsync.core.scheduler import get_scheduler
from frcsync.services.sync.orchestrator import SyncOrchestrator, SyncStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


def get_orchestrator(request: Request) -> SyncOrchestrator:
    """Dependency returning the application's sync orchestrator."""
    return request.app.state.orchestrator


def _scheduler_status() -> Dict:
    scheduler = get_scheduler()
    if scheduler is None:
        return {"running": False, "enabled": False, "interval_seconds": None, "next_run_time": None}
    return scheduler.get_status()


@router.get("/status")
async def get_sync_status(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """
    Get the sync engine status.

    Returns configuration flags, whether a run is in flight, the last run's
    report and the scheduler state.
    """
    status = orchestrator.get_sync_status()
    status["scheduler"] = _scheduler_status()
    return status


@router.post("/run")
async def trigger_sync(
    refresh: bool = Query(False, description="Drop cached season responses before fetching"),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """
    Manually trigger one sync run and wait for its report.

    Returns 409 when another run is already in flight.
    """
    if refresh:
        await orchestrator.adapter.invalidate_season(await orchestrator.resolve_season_year())

    report = await orchestrator.sync_all(trigger="manual")

    if report.status == SyncStatus.SKIPPED:
        raise HTTPException(status_code=409, detail="A sync run is already in progress")

    return report.to_dict()


@router.get("/validate")
async def validate_connection(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """Probe FRC API credentials and connectivity."""
    season_year = await orchestrator.resolve_season_year()
    ok = await orchestrator.adapter.validate_connection(season_year)
    return {
        "configured": orchestrator.adapter.is_configured(),
        "connected": ok,
        "season_year": season_year,
    }


@router.get("/scheduler/status")
async def get_scheduler_status() -> Dict:
    """Get the current status of the sync scheduler."""
    return _scheduler_status()


@router.post("/scheduler/start")
async def start_scheduler(request: Request) -> Dict:
    """Start the sync scheduler."""
    from frcsync.core.scheduler import start_scheduler as _start_scheduler

    scheduler = get_scheduler()
    if scheduler is not None and scheduler.running:
        return {"status": "already_running", **scheduler.get_status()}

    scheduler = await _start_scheduler(request.app.state.orchestrator, request.app.state.settings)
    return {"status": "started", **scheduler.get_status()}


@router.post("/scheduler/stop")
async def stop_scheduler() -> Dict:
    """
    Stop the sync scheduler.

    An in-flight run finishes its current record and ends as cancelled.
    """
    from frcsync.core.scheduler import stop_scheduler as _stop_scheduler

    scheduler = get_scheduler()
    if scheduler is None or not scheduler.running:
        return {"status": "not_running"}

    await _stop_scheduler()
    return {"status": "stopped"}


@router.post("/scheduler/enable")
async def enable_scheduler() -> Dict:
    """Resume periodic runs."""
    scheduler = get_scheduler()
    if scheduler is None:
        raise HTTPException(status_code=400, detail="Scheduler not running. Start the scheduler first.")
    scheduler.enable()
    return scheduler.get_status()


@router.post("/scheduler/disable")
async def disable_scheduler() -> Dict:
    """Pause periodic runs (manual runs still work)."""
    scheduler = get_scheduler()
    if scheduler is None:
        raise HTTPException(status_code=400, detail="Scheduler not running. Start the scheduler first.")
    scheduler.disable()
    return scheduler.get_status()


@router.put("/scheduler/interval")
async def set_scheduler_interval(
    seconds: int = Query(..., ge=1, description="Seconds between sync runs")
) -> Dict:
    """Change the sync period."""
    scheduler = get_scheduler()
    if scheduler is None:
        raise HTTPException(status_code=400, detail="Scheduler not running. Start the scheduler first.")
    scheduler.set_interval(seconds)
    return scheduler.get_status()

"""Tests for SyncScheduler."""
import asyncio
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
from conftest import event_json

from frcsync.core.scheduler import SYNC_JOB_ID, SyncScheduler
from frcsync.services.sync.orchestrator import SyncStatus


@pytest.fixture
def orchestrator(orchestrator_factory, fake_api):
    fake_api.routes["/2025/events"] = (200, {"Events": [event_json("CASJ")]})
    return orchestrator_factory()


class TestSchedulerLifecycle:

    @pytest.mark.parametrize("interval", [0, -10])
    def test_non_positive_interval_rejected(self, orchestrator, interval):
        with pytest.raises(ValueError):
            SyncScheduler(orchestrator, interval_seconds=interval)

    @pytest.mark.asyncio
    async def test_start_registers_interval_job(self, orchestrator):
        scheduler = SyncScheduler(orchestrator, interval_seconds=120)

        await scheduler.start()
        try:
            job = scheduler.scheduler.get_job(SYNC_JOB_ID)
            assert job is not None
            assert job.trigger.interval.total_seconds() == 120
            assert scheduler.next_run_time is not None
            status = scheduler.get_status()
            assert status["running"] is True
            assert status["enabled"] is True
            assert status["interval_seconds"] == 120
        finally:
            await scheduler.stop()

        assert scheduler.running is False
        assert scheduler.next_run_time is None

    @pytest.mark.asyncio
    async def test_start_twice_is_harmless(self, orchestrator):
        scheduler = SyncScheduler(orchestrator, interval_seconds=60)

        await scheduler.start()
        first = scheduler.scheduler
        await scheduler.start()

        assert scheduler.scheduler is first
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_when_not_running_is_a_no_op(self, orchestrator):
        await SyncScheduler(orchestrator).stop()

    @pytest.mark.asyncio
    async def test_run_on_start_fires_first_sync(self, orchestrator, fake_api):
        scheduler = SyncScheduler(orchestrator, interval_seconds=3600, run_on_start=True)

        await scheduler.start()
        try:
            for _ in range(200):
                if orchestrator.last_report is not None:
                    break
                await asyncio.sleep(0.01)
        finally:
            await scheduler.stop()

        assert orchestrator.last_report is not None
        assert orchestrator.last_report.status == SyncStatus.SUCCESS
        assert orchestrator.last_report.trigger == "scheduled"

    @pytest.mark.asyncio
    async def test_manual_runs_work_after_stop(self, orchestrator):
        scheduler = SyncScheduler(orchestrator, interval_seconds=3600)
        await scheduler.start()
        await scheduler.stop()

        report = await orchestrator.sync_all(trigger="manual")

        assert report.status == SyncStatus.SUCCESS


class TestSchedulerControl:

    @pytest.mark.asyncio
    async def test_set_interval_reschedules(self, orchestrator):
        scheduler = SyncScheduler(orchestrator, interval_seconds=3600)
        await scheduler.start()
        try:
            scheduler.set_interval(900)

            job = scheduler.scheduler.get_job(SYNC_JOB_ID)
            assert job.trigger.interval.total_seconds() == 900
            assert scheduler.interval_seconds == 900
        finally:
            await scheduler.stop()

    def test_set_interval_rejects_non_positive(self, orchestrator):
        scheduler = SyncScheduler(orchestrator)

        with pytest.raises(ValueError):
            scheduler.set_interval(0)
        assert scheduler.interval_seconds == 3600

    @pytest.mark.asyncio
    async def test_disable_pauses_and_enable_resumes(self, orchestrator):
        scheduler = SyncScheduler(orchestrator, interval_seconds=60)
        await scheduler.start()
        try:
            scheduler.disable()
            assert scheduler.next_run_time is None
            assert scheduler.get_status()["enabled"] is False

            scheduler.enable()
            assert scheduler.next_run_time is not None
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_disabled_scheduler_starts_paused(self, orchestrator):
        scheduler = SyncScheduler(orchestrator, interval_seconds=60, enabled=False)
        await scheduler.start()
        try:
            assert scheduler.running is True
            assert scheduler.next_run_time is None
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_job_swallows_unexpected_errors(self, orchestrator):
        scheduler = SyncScheduler(orchestrator)

        orchestrator.sync_all = AsyncMock(side_effect=RuntimeError("wiring bug"))

        await scheduler._run_sync()

        orchestrator.sync_all.assert_awaited_once_with(trigger="scheduled")

"""Tests for the background rollup helpers and the daily scheduler."""

import logging
from datetime import date, datetime

import pytest

from app.core.exceptions import StoreUnavailableError
from app.core.setting import Settings
from app.services import background_tasks, scheduler
from app.services.summary_store import SummaryStore

TODAY = date(2024, 1, 2)


@pytest.fixture
def test_sessions(session_maker, monkeypatch):
    monkeypatch.setattr(background_tasks, "async_session_maker", session_maker)
    monkeypatch.setattr(background_tasks, "utc_today", lambda: TODAY)
    return session_maker


class TestRollupBackground:
    """Test rollups run outside a request."""

    async def test_run_rollup_background_commits(self, test_sessions, session, add_redirect, add_visits):
        """Test a successful background rollup is committed and returned."""
        a = await add_redirect("a")
        await add_visits(a.id, datetime(2024, 1, 1, 9, 0), count=2)

        result = await background_tasks.run_rollup_background(date(2024, 1, 1))

        assert result.raw_events_processed == 2
        assert await SummaryStore(session).day_total(date(2024, 1, 1)) == 2

    async def test_run_rollup_background_logs_failures(self, test_sessions, monkeypatch, caplog):
        """Test a failed background rollup is logged and returns None."""
        async def broken(self, day):
            raise StoreUnavailableError("visits", RuntimeError("database is locked"))

        monkeypatch.setattr("app.services.rollup_service.RollupService.aggregate_day", broken)

        with caplog.at_level(logging.ERROR, logger="app.services.background_tasks"):
            result = await background_tasks.run_rollup_background(date(2024, 1, 1))

        assert result is None
        assert "Rollup for 2024-01-01 failed" in caplog.text

    async def test_rollup_previous_day(self, test_sessions, session, add_redirect, add_visits):
        """Test the scheduled job rolls up the day before today."""
        a = await add_redirect("a")
        await add_visits(a.id, datetime(2024, 1, 1, 12, 0))
        await add_visits(a.id, datetime(2024, 1, 2, 12, 0))

        result = await background_tasks.rollup_previous_day()

        assert result.day == date(2024, 1, 1)
        assert await SummaryStore(session).day_total(date(2024, 1, 1)) == 1
        assert await SummaryStore(session).has_rows(TODAY) is False


class TestScheduler:
    """Test the daily rollup scheduler."""

    def test_build_scheduler_registers_daily_job(self):
        """Test the rollup job is registered at the configured time."""
        built = scheduler.build_scheduler(Settings(ROLLUP_HOUR=2, ROLLUP_MINUTE=30))

        job = built.get_job(scheduler.ROLLUP_JOB_ID)
        assert job is not None
        fields = {field.name: str(field) for field in job.trigger.fields}
        assert fields["hour"] == "2"
        assert fields["minute"] == "30"
        assert not built.running

    def test_start_scheduler_disabled(self):
        """Test a disabled scheduler is never started."""
        assert scheduler.start_scheduler(Settings(ROLLUP_SCHEDULER_ENABLED=False)) is None

    async def test_start_and_shutdown_scheduler(self):
        """Test starting twice reuses the running scheduler and shutdown clears it."""
        started = scheduler.start_scheduler(Settings(ROLLUP_SCHEDULER_ENABLED=True))
        try:
            assert started.running
            assert scheduler.start_scheduler(Settings(ROLLUP_SCHEDULER_ENABLED=True)) is started
        finally:
            scheduler.shutdown_scheduler()

        assert scheduler._scheduler is None

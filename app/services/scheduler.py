"""
Rollup Scheduler

Runs the daily rollup in-process with APScheduler.

The job fires once a day at ROLLUP_HOUR:ROLLUP_MINUTE UTC and aggregates the
previous UTC day. max_instances=1 and coalesce keep a slow or missed run from
overlapping with the next one.
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.setting import Settings, settings as default_settings
from app.services.background_tasks import rollup_previous_day

logger = logging.getLogger("scheduler")

ROLLUP_JOB_ID = "daily_visit_rollup"

_scheduler: Optional[AsyncIOScheduler] = None


def build_scheduler(settings: Settings = default_settings) -> AsyncIOScheduler:
    """Create a scheduler with the daily rollup job registered (not started)."""
    scheduler = AsyncIOScheduler(
        timezone="UTC",
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": settings.ROLLUP_MISFIRE_GRACE_SECONDS,
        },
    )
    scheduler.add_job(
        rollup_previous_day,
        trigger=CronTrigger(hour=settings.ROLLUP_HOUR, minute=settings.ROLLUP_MINUTE, timezone="UTC"),
        id=ROLLUP_JOB_ID,
        name=ROLLUP_JOB_ID,
        replace_existing=True,
    )
    return scheduler


def start_scheduler(settings: Settings = default_settings) -> Optional[AsyncIOScheduler]:
    """Start the daily rollup scheduler unless disabled in settings."""
    global _scheduler

    if not settings.ROLLUP_SCHEDULER_ENABLED:
        logger.info("Daily rollup scheduler disabled")
        return None
    if _scheduler is not None and _scheduler.running:
        return _scheduler

    _scheduler = build_scheduler(settings)
    _scheduler.start()
    logger.info(
        f"Daily rollup scheduled at {settings.ROLLUP_HOUR:02d}:{settings.ROLLUP_MINUTE:02d} UTC"
    )
    return _scheduler


def shutdown_scheduler() -> None:
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Daily rollup scheduler stopped")
    _scheduler = None

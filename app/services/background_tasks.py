"""
Background Task Helpers

Runs rollups outside the request/response cycle.

Background tasks cannot use the endpoint's session as it's closed after the
endpoint returns, so each task opens its own. Failures are logged and never
propagated: by the time a task runs, its caller has already been answered.
"""

import logging
from datetime import date, timedelta
from typing import Optional

from app.core.validators import utc_today
from app.db.session import async_session_maker, session_scope
from app.services.rollup_service import RollupResult, RollupService

logger = logging.getLogger(__name__)


async def run_rollup_background(day: date) -> Optional[RollupResult]:
    """
    Background task to aggregate one day of visits.

    Args:
        day: The UTC day to roll up

    Returns:
        RollupResult on success, None if the rollup failed (already logged)
    """
    try:
        async with session_scope(async_session_maker) as session:
            result = await RollupService(session).aggregate_day(day)
    except Exception as e:
        logger.error(
            f"Rollup for {day.isoformat()} failed: {str(e)}",
            exc_info=True
        )
        return None

    logger.info(
        f"Rollup for {day.isoformat()} finished: {result.aggregated_groups} groups, "
        f"{result.raw_events_processed} visits"
    )
    return result


async def rollup_previous_day() -> Optional[RollupResult]:
    """Scheduled job: aggregate yesterday's UTC day."""
    return await run_rollup_background(utc_today() - timedelta(days=1))

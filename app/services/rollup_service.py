"""
Rollup Service

Compresses one UTC day of raw visits into daily summary rows.

Algorithm for aggregate_day(day):
1. Read every visit in [day 00:00, day+1 00:00). No visits: no-op.
2. Classify each visit into a DimensionKey (shared with the fallback queries).
3. Count visits per key in a Counter local to the call.
4. In one transaction: delete the day's existing summary rows, then
   upsert-add all counts as a single batch.
5. Re-sum the day and compare with the number of visits read. Only a
   matching total is committed; anything else is rolled back and raised.

Deleting before writing makes a re-run of the same day replace its rows
instead of adding to them, so scheduler retries and manual re-triggers
cannot double count.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import RollupIncompleteError, StoreUnavailableError
from app.core.normalizers import DimensionKey, build_dimension_key
from app.core.validators import day_bounds
from app.services.event_store import EventStore
from app.services.summary_store import SummaryStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RollupResult:
    """Outcome of one successful day rollup."""
    day: date
    aggregated_groups: int
    raw_events_processed: int
    replaced_rows: int = 0


def count_dimensions(events: Iterable) -> Counter:
    """Count raw visits per DimensionKey."""
    counts: Counter[DimensionKey] = Counter()
    for event in events:
        counts[build_dimension_key(event)] += 1
    return counts


class RollupService:
    """
    Service for the daily visit rollup.

    The service commits its own transaction; callers pass a session that
    has no pending work of its own.
    """

    def __init__(
        self,
        session: AsyncSession,
        event_store: Optional[EventStore] = None,
        summary_store: Optional[SummaryStore] = None
    ):
        self.session = session
        self.event_store = event_store or EventStore(session)
        self.summary_store = summary_store or SummaryStore(session)

    async def aggregate_day(self, day: date) -> RollupResult:
        """
        Roll up all visits of one UTC calendar day.

        Args:
            day: The day to aggregate

        Returns:
            RollupResult with the number of summary groups written and raw
            visits read

        Raises:
            StoreUnavailableError: If reading visits or writing summaries fails
            RollupIncompleteError: If the written rows do not add up to the
                visits read; nothing is committed in that case
        """
        start, end = day_bounds(day)
        events = await self.event_store.list_events(start, end)

        if not events:
            logger.info(f"Rollup {day.isoformat()}: no visits, nothing to aggregate")
            return RollupResult(day=day, aggregated_groups=0, raw_events_processed=0)

        counts = count_dimensions(events)

        try:
            replaced = await self.summary_store.delete_day(day)
            written = await self.summary_store.upsert_add(counts)

            stored_total = await self.summary_store.day_total(day)
            if stored_total != len(events):
                raise RollupIncompleteError(day, expected=len(events), written=stored_total)

            await self.session.commit()
        except StoreUnavailableError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            # commit itself failed
            await self.session.rollback()
            raise StoreUnavailableError(self.summary_store.store_name, e) from e

        if replaced:
            logger.warning(
                f"Rollup {day.isoformat()}: replaced {replaced} existing summary rows"
            )
        logger.info(
            f"Rollup {day.isoformat()}: {len(events)} visits -> {written} summary groups"
        )

        return RollupResult(
            day=day,
            aggregated_groups=written,
            raw_events_processed=len(events),
            replaced_rows=replaced,
        )

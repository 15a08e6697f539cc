"""
Statistics Service

Answers the admin dashboard's aggregate questions over a trailing window of
``days`` days ending today (UTC):

- get_stats_summary: total visits, redirects visited, redirects defined
- get_time_series: visits per day
- get_top_urls / get_top_countries / get_top_referers / get_top_user_agents

Every shape first reads the daily summary table. If the summary table holds
no rows at all for the window (today before the nightly rollup, or a fresh
install), the same answer is recomputed from raw visits in memory using
the rollup's own classification (build_dimension_key) and the same
exclusion filters, so callers see identical shapes from either path.

Known limitation: a window that is only partially rolled up is answered
from the summaries alone; raw visits of the missing days are not merged in.

Also provides per-redirect listings read directly from raw visits.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Collection, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.normalizers import (
    DIRECT_REFERER,
    INVALID_REFERER,
    UNKNOWN,
    DimensionKey,
)
from app.core.validators import utc_today, window_start
from app.services.event_store import EventStore
from app.services.redirect_service import RedirectService
from app.services.rollup_service import count_dimensions
from app.services.summary_store import ORDER_BY_COUNT, ORDER_BY_GROUP, SummaryStore

logger = logging.getLogger(__name__)

# Dimension values hidden from a breakdown, applied identically to the
# summary-backed and the raw-event paths.
EXCLUDED_DIMENSION_VALUES: dict[str, dict[str, frozenset]] = {
    "referers": {"referer_domain": frozenset({DIRECT_REFERER, INVALID_REFERER})},
    "user_agents": {"browser": frozenset({UNKNOWN}), "os": frozenset({UNKNOWN})},
    "countries": {},
    "urls": {},
}


@dataclass(frozen=True)
class StatsSummary:
    days: int
    total_visits: int
    unique_redirects: int
    total_redirects: int


@dataclass(frozen=True)
class TimeSeriesPoint:
    date: str
    count: int


@dataclass(frozen=True)
class TopUrl:
    redirect_id: int
    key: str
    url: str
    count: int


@dataclass(frozen=True)
class TopCountry:
    country: str
    count: int


@dataclass(frozen=True)
class TopReferer:
    domain: str
    count: int


@dataclass(frozen=True)
class TopUserAgent:
    browser: str
    os: str
    count: int


@dataclass(frozen=True)
class RedirectStats:
    id: int
    key: str
    url: str
    visit_count: int
    last_visit: Optional[datetime]


@dataclass(frozen=True)
class VisitRecord:
    id: int
    redirect_id: int
    timestamp: datetime
    ip: Optional[str]
    user_agent: Optional[str]
    referer: Optional[str]
    country: Optional[str]


def group_counts(
    counts: Mapping[DimensionKey, int],
    group_by: Sequence[str],
    exclude: Optional[Mapping[str, Collection[str]]] = None,
    order_by: str = ORDER_BY_COUNT,
) -> list[tuple[tuple, int]]:
    """
    In-memory counterpart of SummaryStore.query.

    Sums ``counts`` per ``group_by`` values after dropping excluded keys and
    sorts them the way the SQL path does: count desc then groups asc, or
    groups asc.

    Returns:
        List of (group values tuple, summed count)
    """
    exclude = exclude or {}
    grouped: Counter = Counter()
    for key, count in counts.items():
        if any(getattr(key, name) in values for name, values in exclude.items()):
            continue
        grouped[tuple(getattr(key, name) for name in group_by)] += count

    if order_by == ORDER_BY_COUNT:
        return sorted(grouped.items(), key=lambda item: (-item[1], item[0]))
    return sorted(grouped.items(), key=lambda item: item[0])


class StatsService:
    """
    Service for aggregate visit statistics.

    Each query is a stateless read: summary rows when the window has any,
    raw visits otherwise.
    """

    def __init__(
        self,
        session: AsyncSession,
        today: Optional[date] = None,
        clock: Optional[Callable[[], date]] = None
    ):
        """
        Args:
            session: Async database session
            today: Pin the last day of every window (tests, backfills)
            clock: Source of the current UTC day when ``today`` is not given
                (defaults to utc_today)
        """
        self.session = session
        self._today = today
        self._clock = clock or utc_today
        self.summary_store = SummaryStore(session)
        self.event_store = EventStore(session)
        self.redirect_service = RedirectService(session)

    @property
    def today(self) -> date:
        return self._today or self._clock()

    async def get_stats_summary(self, days: int = 1) -> StatsSummary:
        """Visits, visited redirects and all-time redirect count for the window."""
        since = window_start(days, self.today)

        if await self.summary_store.has_rows(since):
            total_visits, unique_redirects = await self.summary_store.totals(since)
        else:
            counts = await self._raw_counts(since, "summary", days)
            total_visits = sum(counts.values())
            unique_redirects = len({key.redirect_id for key in counts})

        total_redirects = await self.redirect_service.count_redirects()

        return StatsSummary(
            days=days,
            total_visits=total_visits,
            unique_redirects=unique_redirects,
            total_redirects=total_redirects,
        )

    async def get_time_series(self, days: int = 7) -> list[TimeSeriesPoint]:
        """Visits per calendar day, ascending; days without visits are omitted."""
        since = window_start(days, self.today)

        if await self.summary_store.has_rows(since):
            rows = await self.summary_store.query(["date"], since, order_by=ORDER_BY_GROUP)
            return [TimeSeriesPoint(date=row.date.isoformat(), count=int(row.visit_count)) for row in rows]

        counts = await self._raw_counts(since, "timeseries", days)
        return [
            TimeSeriesPoint(date=day.isoformat(), count=count)
            for (day,), count in group_counts(counts, ["date"], order_by=ORDER_BY_GROUP)
        ]

    async def get_top_urls(self, limit: int = 10, days: int = 7) -> list[TopUrl]:
        """Most visited redirects; visits of deleted redirects are not listed."""
        since = window_start(days, self.today)

        if await self.summary_store.has_rows(since):
            rows = await self.summary_store.query(
                ["redirect_id"],
                since,
                exclude=EXCLUDED_DIMENSION_VALUES["urls"],
                limit=limit,
                with_redirect=True,
            )
            return [
                TopUrl(redirect_id=row.redirect_id, key=row.key, url=row.url, count=int(row.visit_count))
                for row in rows
            ]

        counts = await self._raw_counts(since, "top-urls", days)
        grouped = group_counts(counts, ["redirect_id"], EXCLUDED_DIMENSION_VALUES["urls"])
        redirects = await self.redirect_service.get_redirects([group[0] for group, _ in grouped])

        top = []
        for (redirect_id,), count in grouped:
            redirect = redirects.get(redirect_id)
            if redirect is None:
                continue
            top.append(TopUrl(redirect_id=redirect_id, key=redirect.key, url=redirect.url, count=count))
        return top[:limit]

    async def get_top_countries(self, limit: int = 10, days: int = 7) -> list[TopCountry]:
        rows = await self._top(["country"], "countries", limit, days)
        return [TopCountry(country=country, count=count) for (country,), count in rows]

    async def get_top_referers(self, limit: int = 10, days: int = 7) -> list[TopReferer]:
        """Top referring hosts, without direct visits and unparseable referers."""
        rows = await self._top(["referer_domain"], "referers", limit, days)
        return [TopReferer(domain=domain, count=count) for (domain,), count in rows]

    async def get_top_user_agents(self, limit: int = 10, days: int = 7) -> list[TopUserAgent]:
        """Top (browser, os) pairs, without pairs where either side is Unknown."""
        rows = await self._top(["browser", "os"], "user_agents", limit, days)
        return [TopUserAgent(browser=browser, os=os_name, count=count) for (browser, os_name), count in rows]

    async def get_redirect_stats(self) -> list[RedirectStats]:
        """All-time visit totals of every redirect, busiest first."""
        rows = await self.redirect_service.list_redirect_stats()
        return [
            RedirectStats(
                id=row.id,
                key=row.key,
                url=row.url,
                visit_count=int(row.visit_count),
                last_visit=row.last_visit,
            )
            for row in rows
        ]

    async def get_redirect_visits(self, redirect_id: int, limit: int = 100) -> list[VisitRecord]:
        """
        Most recent raw visits of one redirect, newest first.

        Raises:
            RedirectNotFoundError: If the redirect does not exist
        """
        await self.redirect_service.get_redirect(redirect_id)
        events = await self.event_store.list_recent_for_redirect(redirect_id, limit)
        return [
            VisitRecord(
                id=event.id,
                redirect_id=event.redirect_id,
                timestamp=event.timestamp,
                ip=event.ip,
                user_agent=event.user_agent,
                referer=event.referer,
                country=event.country,
            )
            for event in events
        ]

    async def _top(
        self,
        group_by: Sequence[str],
        shape: str,
        limit: int,
        days: int
    ) -> list[tuple[tuple, int]]:
        """Top-N groups for a breakdown, from summaries or raw visits."""
        since = window_start(days, self.today)
        exclude = EXCLUDED_DIMENSION_VALUES[shape]

        if await self.summary_store.has_rows(since):
            rows = await self.summary_store.query(group_by, since, exclude=exclude, limit=limit)
            return [
                (tuple(getattr(row, name) for name in group_by), int(row.visit_count))
                for row in rows
            ]

        counts = await self._raw_counts(since, shape, days)
        return group_counts(counts, group_by, exclude)[:limit]

    async def _raw_counts(self, since: date, shape: str, days: int) -> Counter:
        logger.debug(
            f"No summary rows since {since.isoformat()}, computing {shape} "
            f"for {days} day(s) from raw visits"
        )
        start = datetime.combine(since, datetime.min.time())
        events = await self.event_store.list_events(start)
        return count_dimensions(events)

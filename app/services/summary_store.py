"""
Summary Store

Reads and writes the daily_visit_summaries table.

Writes:
- upsert_add: merge-additive batch upsert of (DimensionKey -> count)
- delete_day: drop a day's rows before it is recomputed

Reads:
- query: grouped sums over a trailing window, the single read primitive
  behind every summary-backed statistic
- has_rows / day_total: coverage and conservation checks

Every SQLAlchemy failure is re-raised as StoreUnavailableError.
"""

from datetime import date
from typing import Collection, Mapping, Optional, Sequence

from sqlalchemy import delete, exists, func, select
from sqlalchemy.engine import Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StoreUnavailableError
from app.core.normalizers import DimensionKey
from app.db.interface import DatabaseAdapter
from app.db.models import SUMMARY_KEY_COLUMNS, DailyVisitSummary, Redirect
from app.db.sqlite_adapter import get_database_adapter

GROUPABLE_COLUMNS = frozenset(SUMMARY_KEY_COLUMNS)

ORDER_BY_COUNT = "count"
ORDER_BY_GROUP = "group"


class SummaryStore:
    """Access to the daily visit summary table."""

    store_name = DailyVisitSummary.__tablename__

    def __init__(self, session: AsyncSession, adapter: Optional[DatabaseAdapter] = None):
        self.session = session
        self.adapter = adapter or get_database_adapter()

    async def upsert_add(self, counts: Mapping[DimensionKey, int]) -> int:
        """
        Merge ``counts`` into the table as one batch statement.

        Existing rows with the same key get the delta added to their
        visit_count; new keys are inserted. The caller owns the transaction.

        Returns:
            Number of keys written
        """
        if not counts:
            return 0

        rows = []
        for key, delta in counts.items():
            if delta < 0:
                raise ValueError(f"visit_count delta must be non-negative, got {delta} for {key}")
            row = key._asdict()
            row["visit_count"] = delta
            rows.append(row)

        statement = self.adapter.build_upsert_add(
            DailyVisitSummary.__table__,
            key_columns=SUMMARY_KEY_COLUMNS,
            count_column="visit_count",
        )
        try:
            await self.session.execute(statement, rows)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(self.store_name, e) from e
        return len(rows)

    async def delete_day(self, day: date) -> int:
        """Delete every summary row of ``day``; returns the number removed."""
        statement = delete(DailyVisitSummary).where(DailyVisitSummary.date == day)
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(self.store_name, e) from e
        return result.rowcount or 0

    async def day_total(self, day: date) -> int:
        """Sum of visit_count for one day (0 when the day has no rows)."""
        statement = select(func.coalesce(func.sum(DailyVisitSummary.visit_count), 0)).where(
            DailyVisitSummary.date == day
        )
        return int(await self._scalar(statement))

    async def has_rows(self, since: date) -> bool:
        """Whether any summary row exists on or after ``since``."""
        statement = select(exists().where(DailyVisitSummary.date >= since))
        return bool(await self._scalar(statement))

    async def query(
        self,
        group_by: Sequence[str],
        since: date,
        exclude: Optional[Mapping[str, Collection[str]]] = None,
        order_by: str = ORDER_BY_COUNT,
        limit: Optional[int] = None,
        with_redirect: bool = False,
    ) -> Sequence[Row]:
        """
        Sum visit_count over rows dated ``since`` or later, grouped by columns.

        Args:
            group_by: Summary key columns to group on
            since: First day of the window (inclusive)
            exclude: Column -> values; rows holding any of them are skipped
            order_by: "count" (visit_count desc, then groups asc) or "group"
                (groups asc)
            limit: Maximum number of groups returned
            with_redirect: Inner-join redirects and add ``key`` and ``url``;
                requires grouping on redirect_id

        Returns:
            Rows exposing each grouped column plus ``visit_count``
        """
        unknown = [name for name in group_by if name not in GROUPABLE_COLUMNS]
        if unknown:
            raise ValueError(f"Cannot group summaries by {unknown}")
        if with_redirect and "redirect_id" not in group_by:
            raise ValueError("with_redirect requires grouping by redirect_id")

        group_columns = [getattr(DailyVisitSummary, name) for name in group_by]
        total = func.sum(DailyVisitSummary.visit_count).label("visit_count")

        columns = list(group_columns)
        if with_redirect:
            columns += [Redirect.key, Redirect.url]

        statement = select(*columns, total).where(DailyVisitSummary.date >= since)
        if with_redirect:
            statement = statement.join(Redirect, Redirect.id == DailyVisitSummary.redirect_id)

        for name, values in (exclude or {}).items():
            statement = statement.where(getattr(DailyVisitSummary, name).not_in(list(values)))

        grouping = list(group_columns)
        if with_redirect:
            grouping += [Redirect.key, Redirect.url]
        statement = statement.group_by(*grouping)

        if order_by == ORDER_BY_COUNT:
            statement = statement.order_by(total.desc(), *group_columns)
        elif order_by == ORDER_BY_GROUP:
            statement = statement.order_by(*group_columns)
        else:
            raise ValueError(f"Unknown order_by '{order_by}'")

        if limit is not None:
            statement = statement.limit(limit)

        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(self.store_name, e) from e
        return result.all()

    async def totals(self, since: date) -> tuple[int, int]:
        """
        Total visits and distinct redirects over rows dated ``since`` or later.

        Returns (0, 0) when the window holds no summary rows.
        """
        statement = select(
            func.coalesce(func.sum(DailyVisitSummary.visit_count), 0),
            func.count(func.distinct(DailyVisitSummary.redirect_id)),
        ).where(DailyVisitSummary.date >= since, DailyVisitSummary.visit_count > 0)
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(self.store_name, e) from e
        total_visits, unique_redirects = result.one()
        return int(total_visits), int(unique_redirects)

    async def _scalar(self, statement):
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(self.store_name, e) from e
        return result.scalar_one()

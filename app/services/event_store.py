"""
Raw Event Store (read side)

Read access to the append-only visits table. The redirect handler owns the
write path; the rollup job and the fallback queries only read from here.
"""

from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StoreUnavailableError
from app.db.models import VisitEvent


class EventStore:
    """Reads raw visit events by time window or by redirect."""

    store_name = "visits"

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_events(
        self,
        start: datetime,
        end: Optional[datetime] = None
    ) -> Sequence[VisitEvent]:
        """
        List visits with start <= timestamp < end, oldest first.

        Args:
            start: Inclusive lower bound (naive UTC)
            end: Exclusive upper bound; None reads up to the newest visit

        Raises:
            StoreUnavailableError: If the visits table cannot be read
        """
        statement = select(VisitEvent).where(VisitEvent.timestamp >= start)
        if end is not None:
            statement = statement.where(VisitEvent.timestamp < end)
        statement = statement.order_by(VisitEvent.timestamp, VisitEvent.id)

        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(self.store_name, e) from e
        return result.scalars().all()

    async def list_recent_for_redirect(
        self,
        redirect_id: int,
        limit: int
    ) -> Sequence[VisitEvent]:
        """Newest visits of one redirect first, at most ``limit`` rows."""
        statement = (
            select(VisitEvent)
            .where(VisitEvent.redirect_id == redirect_id)
            .order_by(VisitEvent.timestamp.desc(), VisitEvent.id.desc())
            .limit(limit)
        )
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(self.store_name, e) from e
        return result.scalars().all()

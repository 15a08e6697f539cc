"""
Redirect Service

Read-only access to the redirect mappings that visits point at.

The CRUD side of redirects lives elsewhere; analytics only needs to count
mappings, resolve ids to key/url for display, and list per-redirect totals.
"""

from typing import Iterable, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.engine import Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import RedirectNotFoundError, StoreUnavailableError
from app.db.models import Redirect, VisitEvent


class RedirectService:
    """
    Service for looking up redirect mappings.

    Missing redirects are reported as absent (None / left out of a mapping)
    except by get_redirect, which raises RedirectNotFoundError.
    """

    store_name = Redirect.__tablename__

    def __init__(self, session: AsyncSession):
        self.session = session

    async def count_redirects(self) -> int:
        """All-time number of redirect mappings."""
        result = await self._execute(select(func.count(Redirect.id)))
        return int(result.scalar_one())

    async def find_redirect(self, redirect_id: int) -> Optional[Redirect]:
        result = await self._execute(select(Redirect).where(Redirect.id == redirect_id))
        return result.scalar_one_or_none()

    async def get_redirect(self, redirect_id: int) -> Redirect:
        """
        Get one redirect mapping.

        Raises:
            RedirectNotFoundError: If no mapping has this id
        """
        redirect = await self.find_redirect(redirect_id)
        if redirect is None:
            raise RedirectNotFoundError(redirect_id)
        return redirect

    async def get_redirects(self, redirect_ids: Iterable[int]) -> dict[int, Redirect]:
        """Map each existing id in ``redirect_ids`` to its redirect."""
        ids = sorted(set(redirect_ids))
        if not ids:
            return {}
        result = await self._execute(select(Redirect).where(Redirect.id.in_(ids)))
        return {redirect.id: redirect for redirect in result.scalars().all()}

    async def list_redirect_stats(self) -> Sequence[Row]:
        """
        All-time visit totals per redirect, read from raw visits.

        Redirects without visits are included with a count of 0 and no
        last visit. Ordered by visit count descending, then id.

        Returns:
            Rows with id, key, url, visit_count and last_visit
        """
        visit_count = func.count(VisitEvent.id).label("visit_count")
        statement = (
            select(
                Redirect.id,
                Redirect.key,
                Redirect.url,
                visit_count,
                func.max(VisitEvent.timestamp).label("last_visit"),
            )
            .outerjoin(VisitEvent, VisitEvent.redirect_id == Redirect.id)
            .group_by(Redirect.id, Redirect.key, Redirect.url)
            .order_by(visit_count.desc(), Redirect.id)
        )
        result = await self._execute(statement)
        return result.all()

    async def _execute(self, statement):
        try:
            return await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(self.store_name, e) from e

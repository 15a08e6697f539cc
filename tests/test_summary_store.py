"""Tests for the summary store's merge-upsert and grouped reads."""

from datetime import date

import pytest

from app.core.normalizers import DIRECT_REFERER, INVALID_REFERER, DimensionKey
from app.services.summary_store import ORDER_BY_GROUP, SummaryStore

DAY = date(2024, 1, 1)


def key(redirect_id=1, day=DAY, country="US", referer="m.weibo.cn", browser="Chrome", os="Windows 10/11"):
    return DimensionKey(
        date=day,
        redirect_id=redirect_id,
        country=country,
        referer_domain=referer,
        browser=browser,
        os=os,
    )


class TestUpsertAdd:
    """Test the merge-additive batch write."""

    async def test_inserts_then_accumulates(self, session):
        """Test new keys are inserted and existing keys have their counts added to."""
        store = SummaryStore(session)

        assert await store.upsert_add({key(): 3, key(country="CA"): 2}) == 2
        await session.commit()
        assert await store.upsert_add({key(): 4}) == 1
        await session.commit()

        rows = await store.query(["country"], DAY, order_by=ORDER_BY_GROUP)
        assert [(row.country, row.visit_count) for row in rows] == [("CA", 2), ("US", 7)]
        assert await store.day_total(DAY) == 9

    async def test_empty_batch_writes_nothing(self, session):
        """Test an empty batch is a no-op."""
        store = SummaryStore(session)
        assert await store.upsert_add({}) == 0
        assert await store.has_rows(DAY) is False

    async def test_rejects_negative_delta(self, session):
        """Test a negative count is refused before anything is written."""
        with pytest.raises(ValueError):
            await SummaryStore(session).upsert_add({key(): -1})


class TestDayOperations:
    """Test per-day deletes, totals and presence checks."""

    async def test_delete_day_only_touches_that_day(self, session):
        """Test deleting one day leaves the neighbouring day intact."""
        store = SummaryStore(session)
        await store.upsert_add({key(): 1, key(day=date(2024, 1, 2)): 5})
        await session.commit()

        assert await store.delete_day(DAY) == 1
        await session.commit()

        assert await store.day_total(DAY) == 0
        assert await store.day_total(date(2024, 1, 2)) == 5

    async def test_has_rows_respects_window(self, session):
        """Test has_rows only sees rows on or after the window start."""
        store = SummaryStore(session)
        await store.upsert_add({key(): 1})
        await session.commit()

        assert await store.has_rows(DAY) is True
        assert await store.has_rows(date(2024, 1, 2)) is False

    async def test_totals(self, session):
        """Test totals return visits and distinct redirects."""
        store = SummaryStore(session)
        assert await store.totals(DAY) == (0, 0)

        await store.upsert_add({key(redirect_id=1): 3, key(redirect_id=1, country="CA"): 1, key(redirect_id=2): 2})
        await session.commit()

        assert await store.totals(DAY) == (6, 2)


class TestQuery:
    """Test grouped reads."""

    async def test_excludes_orders_and_limits(self, session):
        """Test exclusions apply before ordering and the limit."""
        store = SummaryStore(session)
        await store.upsert_add({
            key(referer="a.example"): 2,
            key(referer="b.example"): 5,
            key(referer="c.example"): 2,
            key(referer=DIRECT_REFERER): 50,
            key(referer=INVALID_REFERER): 40,
        })
        await session.commit()

        rows = await store.query(
            ["referer_domain"],
            DAY,
            exclude={"referer_domain": {DIRECT_REFERER, INVALID_REFERER}},
            limit=2,
        )

        # count desc, ties by value asc
        assert [(row.referer_domain, row.visit_count) for row in rows] == [("b.example", 5), ("a.example", 2)]

    async def test_with_redirect_joins_mappings(self, session, add_redirect):
        """Test the redirect join adds key and url and drops unknown redirects."""
        redirect = await add_redirect("a")
        store = SummaryStore(session)
        await store.upsert_add({key(redirect_id=redirect.id): 3, key(redirect_id=999): 10})
        await session.commit()

        rows = await store.query(["redirect_id"], DAY, with_redirect=True)

        assert [(row.redirect_id, row.key, row.visit_count) for row in rows] == [(redirect.id, "a", 3)]

    async def test_rejects_unknown_columns(self, session):
        """Test grouping by a non-dimension column is refused."""
        with pytest.raises(ValueError):
            await SummaryStore(session).query(["ip"], DAY)
        with pytest.raises(ValueError):
            await SummaryStore(session).query(["country"], DAY, with_redirect=True)

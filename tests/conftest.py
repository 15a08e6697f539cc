"""
Shared fixtures: an in-memory SQLite database per test and helpers to seed
redirects and raw visits.
"""

from datetime import datetime
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from app.db.models import Redirect, VisitEvent
from app.db.sqlite_adapter import get_database_adapter

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
FIREFOX_LINUX = "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"


@pytest_asyncio.fixture
async def engine():
    # StaticPool keeps the single in-memory database alive across sessions
    engine = get_database_adapter().create_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(
        engine,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def add_redirect(session):
    async def _add(key: str, url: Optional[str] = None) -> Redirect:
        redirect = Redirect(key=key, url=url or f"https://example.com/{key}")
        session.add(redirect)
        await session.commit()
        await session.refresh(redirect)
        return redirect

    return _add


@pytest.fixture
def add_visits(session):
    async def _add(
        redirect_id: int,
        timestamp: datetime,
        count: int = 1,
        user_agent: Optional[str] = CHROME_WINDOWS,
        referer: Optional[str] = None,
        country: Optional[str] = "US",
    ) -> None:
        for _ in range(count):
            session.add(
                VisitEvent(
                    redirect_id=redirect_id,
                    timestamp=timestamp,
                    ip="203.0.113.7",
                    user_agent=user_agent,
                    referer=referer,
                    country=country,
                )
            )
        await session.commit()

    return _add

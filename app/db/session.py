"""
Database Session Management

This module handles async database connections using SQLAlchemy's async engine.
Uses a database abstraction layer to support different database backends.

Two ways to obtain a session:
- get_session(): FastAPI dependency for request handlers (commit on success,
  rollback on exception)
- session_scope(): async context manager for work that outlives a request,
  such as background and scheduled rollups
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from app.core.setting import settings
from app.db.sqlite_adapter import get_database_adapter

# Get the database adapter (currently SQLite by default)
db_adapter = get_database_adapter()

# The adapter handles all database-specific configuration
engine = db_adapter.create_engine(
    settings.DATABASE_URL
)

async_session_maker = async_sessionmaker(
    engine,
    class_=SQLModelAsyncSession,
    expire_on_commit=False,  # Prevents SQLAlchemy from expiring objects after commit
    autocommit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function for FastAPI to get database session.

    Usage in FastAPI:
        @router.get("/endpoint")
        async def endpoint(session: AsyncSession = Depends(get_session)):
            pass
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def session_scope(
    session_maker: async_sessionmaker = None
) -> AsyncGenerator[AsyncSession, None]:
    """
    Open a standalone session outside the request cycle.

    Background tasks cannot reuse the endpoint's session, which is closed as
    soon as the response is sent. Services commit their own units of work;
    anything left uncommitted is rolled back when the scope exits on error.

    Args:
        session_maker: Session factory to use (defaults to the application's)
    """
    maker = session_maker or async_session_maker
    async with maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise

"""
SQLite Database Adapter

This module implements the DatabaseAdapter interface for SQLite.
All SQLite-specific configuration and behavior is encapsulated here.

SQLite is a file-based database that's perfect for:
- Local development
- Testing
- Single-instance deployments

Key characteristics:
- File-based (single .db file)
- Single writer at a time (file locking), which also serializes
  concurrent rollup transactions
- ON CONFLICT DO UPDATE supported since SQLite 3.24
"""

from typing import Any, Sequence

from sqlalchemy import Table
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool
from sqlalchemy.sql.dml import Insert

from app.db.interface import DatabaseAdapter


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter implementation.

    This adapter handles all SQLite-specific configuration and operations.
    """

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create SQLite async engine with appropriate configuration.

        SQLite-specific configuration:
        - NullPool: Single connection (file-based, no pooling needed)
        - check_same_thread=False: Required for async SQLite operations

        Args:
            database_url: SQLite connection string (sqlite+aiosqlite:///...)
            **kwargs: Additional engine options (merged with SQLite defaults)

        Returns:
            Configured AsyncEngine for SQLite
        """
        engine_kwargs = self.get_engine_kwargs()
        engine_kwargs.update(kwargs)

        return create_async_engine(
            database_url,
            poolclass=engine_kwargs.pop("poolclass", self.get_pool_class()),
            connect_args=self.get_connect_args(),
            **engine_kwargs
        )

    def get_pool_class(self) -> type[NullPool]:
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        return {
            "check_same_thread": False
        }

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False  # Set to True only for SQL debugging in development
        }

    def build_upsert_add(
        self,
        table: Table,
        key_columns: Sequence[str],
        count_column: str
    ) -> Insert:
        """
        Build INSERT ... ON CONFLICT (key) DO UPDATE SET count = count + excluded.count.

        ``excluded`` is SQLite's name for the row that failed to insert.
        """
        statement = sqlite_insert(table)
        return statement.on_conflict_do_update(
            index_elements=list(key_columns),
            set_={count_column: table.c[count_column] + statement.excluded[count_column]},
        )

    def get_dialect_name(self) -> str:
        return "sqlite"


def get_database_adapter() -> DatabaseAdapter:
    """
    Factory function to get the database adapter.

    Returns SQLiteAdapter by default. To switch to PostgreSQL, create a
    PostgreSQLAdapter class (sqlalchemy.dialects.postgresql.insert offers the
    same on_conflict_do_update API) and update this function.

    Returns:
        DatabaseAdapter instance
    """
    return SQLiteAdapter()

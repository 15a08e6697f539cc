"""
Database Abstraction Interface

This module defines the database abstraction layer that allows switching between
different database backends (SQLite, PostgreSQL, etc.) without changing the
rest of the codebase.

Besides engine configuration, the adapter owns the one statement whose SQL
differs between dialects: the merge-additive upsert used by the daily rollup
(INSERT ... ON CONFLICT (key) DO UPDATE SET count = count + excluded.count).
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from sqlalchemy import Table
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import Pool
from sqlalchemy.sql.dml import Insert


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    This interface defines the contract that all database implementations
    must follow. By using this abstraction, we can switch between SQLite,
    PostgreSQL, or any other database without modifying the rest of the codebase.

    To add a new database backend:
    1. Create a new class inheriting from DatabaseAdapter
    2. Implement all abstract methods
    3. Update the factory function to return the new adapter
    """

    @abstractmethod
    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create and configure the async database engine.

        Args:
            database_url: Connection string for the database
            **kwargs: Additional engine configuration options

        Returns:
            Configured AsyncEngine instance
        """
        pass

    @abstractmethod
    def get_pool_class(self) -> Optional[type[Pool]]:
        """
        Get the connection pool class for this database type.

        Returns:
            Pool class (e.g., NullPool for SQLite, QueuePool for PostgreSQL)
            or None to use default
        """
        pass

    @abstractmethod
    def get_connect_args(self) -> dict[str, Any]:
        """Get connection arguments specific to this database type."""
        pass

    @abstractmethod
    def get_engine_kwargs(self) -> dict[str, Any]:
        """Get additional engine configuration specific to this database type."""
        pass

    @abstractmethod
    def build_upsert_add(
        self,
        table: Table,
        key_columns: Sequence[str],
        count_column: str
    ) -> Insert:
        """
        Build a merge-additive upsert statement for ``table``.

        The statement is executed with a list of parameter dicts (one per
        row, as a single batch). A row whose ``key_columns`` collide with an
        existing row adds its ``count_column`` to the stored value instead of
        inserting a duplicate.

        Args:
            table: Target table (must carry a unique constraint on key_columns)
            key_columns: Columns forming the uniqueness key
            count_column: Column accumulated on conflict

        Returns:
            Executable INSERT statement
        """
        pass

    @abstractmethod
    def get_dialect_name(self) -> str:
        """
        Get the SQLAlchemy dialect name for this database.

        Returns:
            Dialect name (e.g., 'sqlite', 'postgresql')
        """
        pass

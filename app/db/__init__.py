"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: Abstract base class for database implementations
- SQLiteAdapter: SQLite-specific implementation (default)
- Session management: request sessions and standalone session scopes
- Models: redirects, raw visits and daily visit summaries
"""

from app.db.interface import DatabaseAdapter
from app.db.session import get_session, session_scope, async_session_maker, engine

__all__ = [
    "DatabaseAdapter",
    "get_session",
    "session_scope",
    "async_session_maker",
    "engine",
]

"""
Conversation session storage.
"""

from .session_store import SessionStore, InMemorySessionStore, SQLiteSessionStore
from .sweeper import SessionSweeper

__all__ = [
    "SessionStore",
    "InMemorySessionStore",
    "SQLiteSessionStore",
    "SessionSweeper",
]

"""
Entity persistence: in-memory and SQLite repositories.
"""

from .repository import BaseRepository, InMemoryRepository
from .sqlite_store import SqliteRepository

__all__ = ["BaseRepository", "InMemoryRepository", "SqliteRepository"]

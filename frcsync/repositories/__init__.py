"""
Repository layer for data access.

Usage:
    from frcsync.repositories import SqlAlchemyEventRepository
    from frcsync.core.database import get_session_factory

    repo = SqlAlchemyEventRepository(get_session_factory())
    event = repo.find_by_natural_key("CASJ", 2025)
"""

from frcsync.repositories.base import BaseRepository
from frcsync.repositories.event_repository import EventRepository, SqlAlchemyEventRepository

__all__ = ["BaseRepository", "EventRepository", "SqlAlchemyEventRepository"]

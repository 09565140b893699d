"""
Domain models.

Usage:
    from frcsync.models import Event, EventType, Ranking
"""
from frcsync.models.models import Base, Event, EventType, Ranking

__all__ = ["Base", "Event", "EventType", "Ranking"]

"""
Event persistence.

``EventRepository`` is the contract the reconciler depends on: look up an
event by its natural key, and persist one event. Any store satisfying it can
back a sync run; ``SqlAlchemyEventRepository`` is the default.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy.orm import sessionmaker

from frcsync.models.models import Event
from frcsync.repositories.base import BaseRepository


class EventRepository(ABC):
    """Storage contract for events keyed by ``(event_code, season_year)``."""

    @abstractmethod
    def find_by_natural_key(self, event_code: str, season_year: int) -> Optional[Event]:
        """Return the stored event for the key, or None."""

    @abstractmethod
    def save(self, event: Event) -> Event:
        """Insert or update one event; raises on failure."""


class SqlAlchemyEventRepository(BaseRepository[Event], EventRepository):
    """EventRepository backed by the ``frc_events`` table."""

    def __init__(self, session_factory: sessionmaker):
        super().__init__(Event, session_factory)

    def find_by_natural_key(self, event_code: str, season_year: int) -> Optional[Event]:
        with self.session_scope() as db:
            return db.query(Event).filter(
                Event.event_code == event_code,
                Event.season_year == season_year
            ).first()

    def find_by_season(self, season_year: int, event_type: Optional[str] = None) -> List[Event]:
        """
        All events for a season ordered by start date.

        Args:
            season_year: Season to list
            event_type: Optional EventType value to filter on

        Returns:
            List of events
        """
        with self.session_scope() as db:
            query = db.query(Event).filter(Event.season_year == season_year)
            if event_type:
                query = query.filter(Event.event_type == event_type)
            return query.order_by(Event.start_date, Event.event_code).all()

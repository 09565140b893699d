"""
Domain models for FRC competition data.

Event is persisted (one row per natural key ``(event_code, season_year)``);
Ranking is a transient snapshot built per request and never stored by the
engine.
"""
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Column, String, Integer, DateTime, Date, Boolean, Text, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base

from frcsync.utils.timezone import utcnow

Base = declarative_base()


class EventType(Enum):
    """Competition event types."""
    REGIONAL = "regional"
    DISTRICT = "district"
    DISTRICT_CHAMPIONSHIP = "district_championship"
    CHAMPIONSHIP = "championship"
    OFF_SEASON = "off_season"
    SCRIMMAGE = "scrimmage"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


def _new_id() -> str:
    return str(uuid.uuid4())


class Event(Base):
    """One FRC competition event for one season."""
    __tablename__ = "frc_events"

    id = Column(String(36), primary_key=True, default=_new_id)
    event_code = Column(String(32), nullable=False)  # e.g. "CASJ"
    season_year = Column(Integer, nullable=False)
    name = Column(String(255), nullable=True)
    event_type = Column(String(32), nullable=False, default=EventType.SCRIMMAGE.value)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    location = Column(Text, nullable=True)  # free-text address
    venue = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state_province = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    website = Column(String(500), nullable=True)
    live_stream_url = Column(String(500), nullable=True)
    registration_open = Column(DateTime, nullable=True)
    registration_close = Column(DateTime, nullable=True)
    team_count = Column(Integer, nullable=True)
    is_official = Column(Boolean, nullable=False, default=True)
    is_public = Column(Boolean, nullable=False, default=True)
    last_synced = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint('event_code', 'season_year', name='uq_frc_events_code_season'),
        Index('ix_frc_events_season', 'season_year'),
        Index('ix_frc_events_start_date', 'start_date'),
    )

    def __repr__(self) -> str:
        return f"<Event {self.event_code}/{self.season_year} {self.name!r}>"

    @property
    def natural_key(self) -> tuple:
        return (self.event_code, self.season_year)

    @property
    def type(self) -> EventType:
        """Event type as an enum (stored as its string value)."""
        try:
            return EventType(self.event_type)
        except ValueError:
            return EventType.SCRIMMAGE

    # ------------------------------------------------------------------
    # Schedule helpers
    # ------------------------------------------------------------------

    def is_upcoming(self, today: Optional[date] = None) -> bool:
        """Event starts after today."""
        today = today or utcnow().date()
        return self.start_date is not None and self.start_date > today

    def is_active(self, today: Optional[date] = None) -> bool:
        """Today falls within the event's dates (inclusive)."""
        today = today or utcnow().date()
        if self.start_date is None or self.end_date is None:
            return False
        return self.start_date <= today <= self.end_date

    def is_completed(self, today: Optional[date] = None) -> bool:
        """Event ended before today."""
        today = today or utcnow().date()
        return self.end_date is not None and self.end_date < today

    def duration_days(self) -> int:
        """Length of the event in days, counting both ends; 0 when dates are unknown."""
        if self.start_date is None or self.end_date is None:
            return 0
        return (self.end_date - self.start_date).days + 1

    def days_until_start(self, today: Optional[date] = None) -> int:
        """Days until the event starts; -1 when the start date is unknown."""
        if self.start_date is None:
            return -1
        today = today or utcnow().date()
        return (self.start_date - today).days

    def is_registration_open(self, now: Optional[datetime] = None) -> bool:
        """Registration window is known and contains ``now``."""
        if self.registration_open is None or self.registration_close is None:
            return False
        now = now or utcnow()
        return self.registration_open <= now <= self.registration_close

    @property
    def full_display_name(self) -> str:
        """Name with city and state, e.g. "Silicon Valley Regional - San Jose, CA"."""
        display = self.name or self.event_code or ""
        if self.city:
            display += f" - {self.city}"
            if self.state_province:
                display += f", {self.state_province}"
        return display

    def to_dict(self) -> dict:
        return {
            "event_code": self.event_code,
            "season_year": self.season_year,
            "name": self.name,
            "event_type": self.event_type,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "location": self.location,
            "venue": self.venue,
            "city": self.city,
            "state_province": self.state_province,
            "country": self.country,
            "website": self.website,
            "live_stream_url": self.live_stream_url,
            "registration_open": self.registration_open.isoformat() if self.registration_open else None,
            "registration_close": self.registration_close.isoformat() if self.registration_close else None,
            "team_count": self.team_count,
            "is_official": self.is_official,
            "is_public": self.is_public,
            "last_synced": self.last_synced.isoformat() if self.last_synced else None,
        }


@dataclass
class Ranking:
    """One team's standing at one event, as of the last fetch."""
    team_number: Optional[int]
    event_code: str
    season_year: int
    rank: Optional[int] = None
    wins: Optional[int] = None
    losses: Optional[int] = None
    ties: Optional[int] = None
    ranking_points: Optional[Decimal] = None

    def to_dict(self) -> dict:
        return {
            "team_number": self.team_number,
            "event_code": self.event_code,
            "season_year": self.season_year,
            "rank": self.rank,
            "wins": self.wins,
            "losses": self.losses,
            "ties": self.ties,
            "ranking_points": str(self.ranking_points) if self.ranking_points is not None else None,
        }

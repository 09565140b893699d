"""
FRC Events API DTO mapper.

Converts transport DTOs into domain objects:
- FrcEventDto  -> Event   (persisted by the reconciler)
- FrcRankingDto -> Ranking (transient)

Mapping is pure: no I/O, no clock, no shared state. Malformed optional
fields (dates, counts, points) are left unset instead of raising, so one bad
value never costs the whole record.
"""
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Union

from frcsync.models.models import Event, EventType, Ranking
from frcsync.services.frc.schemas import FrcEventDto, FrcRankingDto
from frcsync.utils.timezone import to_naive_utc

logger = logging.getLogger(__name__)

# Normalized spelling (lower-case, no spaces/underscores/dashes) -> EventType.
# Covers the API's own type names as well as the short forms in common use.
EVENT_TYPE_ALIASES: Dict[str, EventType] = {
    "regional": EventType.REGIONAL,
    "district": EventType.DISTRICT,
    "districtevent": EventType.DISTRICT,
    "districtchampionship": EventType.DISTRICT_CHAMPIONSHIP,
    "districtchampionshipwithlevels": EventType.DISTRICT_CHAMPIONSHIP,
    "districtchampionshipdivision": EventType.DISTRICT_CHAMPIONSHIP,
    "dcmp": EventType.DISTRICT_CHAMPIONSHIP,
    "championship": EventType.CHAMPIONSHIP,
    "championshipsubdivision": EventType.CHAMPIONSHIP,
    "championshipdivision": EventType.CHAMPIONSHIP,
    "cmp": EventType.CHAMPIONSHIP,
    "offseason": EventType.OFF_SEASON,
    "offseasonwithazuresync": EventType.OFF_SEASON,
    "scrimmage": EventType.SCRIMMAGE,
}


def _normalize_type(value: str) -> str:
    return "".join(ch for ch in value.lower() if ch not in " _-")


def map_event_type(value: Optional[str]) -> EventType:
    """
    Match an API type string case-insensitively against the vocabulary.

    Args:
        value: e.g. "Regional", "district championship", "cmp"

    Returns:
        The matching EventType, or SCRIMMAGE when unknown or missing
    """
    if not value:
        return EventType.SCRIMMAGE
    return EVENT_TYPE_ALIASES.get(_normalize_type(value), EventType.SCRIMMAGE)


def _iso(value: str) -> str:
    # datetime.fromisoformat() only learned "Z" in 3.11
    value = value.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    return value


def parse_date(value: Any) -> Optional[date]:
    """
    Parse an ISO-8601 date or date-time into a date.

    The API sends event dates as "2025-03-06T00:00:00"; plain dates are
    accepted too. Returns None for null or unparsable input.
    """
    if not value or not isinstance(value, str):
        return None
    text = _iso(value)
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        logger.debug(f"Ignoring unparsable date {value!r}")
        return None


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 date-time into a naive UTC datetime.

    Offset-aware values are converted to UTC; naive values are taken as-is.
    A bare date becomes midnight. Returns None for null or unparsable input.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        return to_naive_utc(datetime.fromisoformat(_iso(value)))
    except ValueError:
        logger.debug(f"Ignoring unparsable date-time {value!r}")
        return None


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        # str() first so 2.1 stays 2.1 instead of its binary expansion
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _first_webcast(webcasts: Optional[list]) -> Optional[str]:
    for webcast in webcasts or []:
        if isinstance(webcast, str) and webcast:
            return webcast
        if isinstance(webcast, dict):
            url = webcast.get("url") or webcast.get("link")
            if url:
                return url
    return None


def map_event(dto: Union[FrcEventDto, dict], season_year: int) -> Event:
    """
    Build a transient Event from an API event summary.

    ``last_synced`` is left unset; the reconciler stamps it when persisting.

    Args:
        dto: Event DTO (or its raw JSON dict)
        season_year: Season the event belongs to

    Returns:
        Unsaved Event
    """
    if isinstance(dto, dict):
        dto = FrcEventDto.model_validate(dto)

    return Event(
        event_code=dto.code,
        season_year=season_year,
        name=dto.name,
        event_type=map_event_type(dto.type).value,
        start_date=parse_date(dto.date_start),
        end_date=parse_date(dto.date_end),
        location=dto.address,
        venue=dto.venue,
        city=dto.city,
        state_province=dto.state_prov,
        country=dto.country,
        website=dto.website,
        live_stream_url=_first_webcast(dto.webcasts),
        registration_open=parse_datetime(dto.reg_open),
        registration_close=parse_datetime(dto.reg_close),
        team_count=_to_int(dto.team_count),
        is_official=dto.is_official if dto.is_official is not None else True,
        is_public=dto.is_public if dto.is_public is not None else True,
    )


def map_ranking(dto: Union[FrcRankingDto, dict], event_code: str, season_year: int) -> Ranking:
    """Build a Ranking snapshot from one API ranking row."""
    if isinstance(dto, dict):
        dto = FrcRankingDto.model_validate(dto)

    return Ranking(
        team_number=dto.team_number,
        event_code=event_code,
        season_year=season_year,
        rank=dto.rank,
        wins=dto.wins,
        losses=dto.losses,
        ties=dto.ties,
        ranking_points=_to_decimal(dto.ranking_points),
    )

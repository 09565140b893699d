"""FRC event, ranking and team API routes.

Stored events come from the local database (what the sync engine has
reconciled). Rankings and team descriptors are fetched live through the
adapter, so they share the engine's rate limiter and response cache.
"""
import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from frcsync.models.models import EventType
from frcsync.repositories.event_repository import SqlAlchemyEventRepository
from frcsync.services.sync.adapters.frc_api_adapter import FrcApiAdapter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])


def get_event_repository(request: Request) -> SqlAlchemyEventRepository:
    """Dependency returning the stored-event repository."""
    return request.app.state.event_repository


def get_adapter(request: Request) -> FrcApiAdapter:
    """Dependency returning the FRC API adapter."""
    return request.app.state.orchestrator.adapter


def _event_detail(event) -> Dict:
    data = event.to_dict()
    data.update({
        "display_name": event.full_display_name,
        "is_upcoming": event.is_upcoming(),
        "is_active": event.is_active(),
        "is_completed": event.is_completed(),
        "duration_days": event.duration_days(),
        "days_until_start": event.days_until_start(),
        "is_registration_open": event.is_registration_open(),
    })
    return data


@router.get("/events/{season_year}")
async def list_events(
    season_year: int,
    event_type: Optional[str] = Query(None, description="regional, district, district_championship, ..."),
    repository: SqlAlchemyEventRepository = Depends(get_event_repository)
) -> Dict:
    """List stored events of a season, ordered by start date."""
    if event_type is not None:
        valid = {t.value for t in EventType}
        if event_type not in valid:
            raise HTTPException(
                status_code=400,
                detail=f"Unknown event_type '{event_type}'. Expected one of: {', '.join(sorted(valid))}"
            )

    events = repository.find_by_season(season_year, event_type=event_type)
    return {
        "season_year": season_year,
        "count": len(events),
        "events": [event.to_dict() for event in events],
    }


@router.get("/events/{season_year}/{event_code}")
async def get_event(
    season_year: int,
    event_code: str,
    repository: SqlAlchemyEventRepository = Depends(get_event_repository)
) -> Dict:
    """Stored event with schedule helpers."""
    event = repository.find_by_natural_key(event_code.upper(), season_year)
    if event is None:
        raise HTTPException(status_code=404, detail=f"Event {event_code} not found for season {season_year}")
    return _event_detail(event)


@router.get("/events/{season_year}/{event_code}/rankings")
async def get_event_rankings(
    season_year: int,
    event_code: str,
    adapter: FrcApiAdapter = Depends(get_adapter)
) -> Dict:
    """Live rankings for an event (rate-limited and cached)."""
    rankings = await adapter.get_event_rankings(event_code.upper(), season_year)
    return {
        "event_code": event_code.upper(),
        "season_year": season_year,
        "count": len(rankings),
        "rankings": [ranking.to_dict() for ranking in rankings],
    }


@router.get("/teams/current")
async def get_current_team(
    adapter: FrcApiAdapter = Depends(get_adapter)
) -> Dict:
    """Descriptor of the configured default team."""
    if adapter.default_team_number <= 0:
        raise HTTPException(status_code=404, detail="No default team number configured")

    team = await adapter.get_current_team()
    if team is None:
        raise HTTPException(status_code=404, detail=f"Team {adapter.default_team_number} not found")
    return team.model_dump()


@router.get("/teams/current/events")
async def get_current_team_events(
    season_year: int = Query(..., ge=1992, description="Season year"),
    adapter: FrcApiAdapter = Depends(get_adapter)
) -> Dict:
    """Live events of the configured default team."""
    events = await adapter.get_current_team_events(season_year)
    return {
        "team_number": adapter.default_team_number or None,
        "season_year": season_year,
        "count": len(events),
        "events": [event.to_dict() for event in events],
    }


@router.get("/teams/{team_number}")
async def get_team(
    team_number: int,
    adapter: FrcApiAdapter = Depends(get_adapter)
) -> Dict:
    """Live team descriptor."""
    team = await adapter.get_team(team_number)
    if team is None:
        raise HTTPException(status_code=404, detail=f"Team {team_number} not found")
    return team.model_dump()

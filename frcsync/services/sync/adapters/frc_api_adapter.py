"""FRC Events API adapter for the sync orchestrator.

Wraps FrcApiService with the cross-cutting concerns every query needs, in
this order:

1. Configuration guard: no credentials means an empty result, with no cache
   lookup, no rate-limit wait and no network I/O
2. Response cache (keyed per query and season)
3. Per-endpoint rate limiter (only on a cache miss, and again before every
   retried request)
4. HTTP fetch
5. DTO -> domain mapping

The cache stores transport DTOs, not domain objects, so every caller gets
freshly mapped Events it may mutate freely.
"""
import logging
from functools import partial
from typing import List, Optional

from frcsync.models.models import Event, Ranking
from frcsync.services.core.frc_api_service import FrcApiService
from frcsync.services.core.rate_limiter import EndpointRateLimiter
from frcsync.services.core.response_cache import ResponseCache
from frcsync.services.frc.mapper import map_event, map_ranking
from frcsync.services.frc.schemas import FrcEventDto, FrcSeasonDto, FrcTeamDto

logger = logging.getLogger(__name__)


class FrcApiAdapter:
    """
    Adapter for the FRC Events API data source.

    Produces domain objects for the orchestrator and the HTTP routes.
    """

    def __init__(
        self,
        api_service: FrcApiService,
        rate_limiter: EndpointRateLimiter,
        cache: ResponseCache,
        default_team_number: int = 0,
    ):
        """
        Initialize the adapter.

        Args:
            api_service: HTTP client for the FRC Events API
            rate_limiter: Shared per-endpoint limiter
            cache: Shared response cache
            default_team_number: Team used by the current-team helpers (0 = none)
        """
        self.api_service = api_service
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.default_team_number = default_team_number or 0

    def is_configured(self) -> bool:
        return self.api_service.is_configured()

    def _acquire_for(self, endpoint_key: str):
        return partial(self.rate_limiter.acquire, endpoint_key)

    def _map_events(self, dtos: List[FrcEventDto], season_year: int) -> List[Event]:
        events = []
        for dto in dtos:
            if not dto.code:
                logger.warning(
                    f"Skipping event without a code in season {season_year}: {dto.name!r}",
                    extra={"event": "frc_api_decode_error", "season_year": season_year}
                )
                continue
            events.append(map_event(dto, season_year))
        return events

    # ========================================================================
    # Seasons
    # ========================================================================

    async def get_seasons(self) -> List[FrcSeasonDto]:
        """Seasons known to the API (empty when not configured or on fetch failure)."""
        if not self.is_configured():
            return []

        async def fetch():
            response = await self.api_service.fetch_seasons(acquire=self._acquire_for("seasons"))
            return response.seasons

        return await self.cache.get_or_fetch(("seasons",), fetch)

    async def get_current_season(self) -> Optional[FrcSeasonDto]:
        """
        The first season the API flags as current.

        Returns:
            The current season, or None when no season is flagged (or none could be fetched)
        """
        for season in await self.get_seasons():
            if season.is_current and season.year:
                logger.info(f"Found current FRC season: {season.year} {season.name or ''}".rstrip())
                return season

        logger.warning(
            "No current FRC season found",
            extra={"event": "frc_season_not_found"}
        )
        return None

    # ========================================================================
    # Events
    # ========================================================================

    async def get_events(self, season_year: int) -> List[Event]:
        """
        All events of a season.

        Args:
            season_year: Season to fetch

        Returns:
            Mapped events (empty when not configured or on fetch failure)
        """
        if not self.is_configured():
            return []

        async def fetch():
            response = await self.api_service.fetch_events(season_year, acquire=self._acquire_for("events"))
            return response.events

        dtos = await self.cache.get_or_fetch(("events", season_year), fetch)
        events = self._map_events(dtos, season_year)
        logger.info(f"Fetched {len(events)} FRC events for season {season_year}")
        return events

    async def get_team_events(self, team_number: int, season_year: int) -> List[Event]:
        """
        Events a team is registered for in a season.

        Returns:
            Mapped events (empty when not configured or on fetch failure)
        """
        if not self.is_configured():
            return []

        async def fetch():
            response = await self.api_service.fetch_team_events(
                team_number, season_year, acquire=self._acquire_for(f"team-events-{team_number}")
            )
            return response.events

        dtos = await self.cache.get_or_fetch(("team-events", team_number, season_year), fetch)
        events = self._map_events(dtos, season_year)
        logger.info(f"Fetched {len(events)} FRC events for team {team_number} in season {season_year}")
        return events

    async def get_event(self, event_code: str, season_year: int) -> Optional[Event]:
        """Single event by code, or None."""
        if not self.is_configured():
            return None

        async def fetch():
            return await self.api_service.fetch_event(
                season_year, event_code, acquire=self._acquire_for(f"event-{event_code}")
            )

        dto = await self.cache.get_or_fetch(("event", event_code.upper(), season_year), fetch)
        if dto is None:
            return None
        return map_event(dto, season_year)

    async def get_current_team_events(self, season_year: int) -> List[Event]:
        """Events for the configured default team; empty when none is configured."""
        if self.default_team_number <= 0:
            logger.warning("No default team number configured; no team events to fetch")
            return []
        return await self.get_team_events(self.default_team_number, season_year)

    # ========================================================================
    # Rankings
    # ========================================================================

    async def get_event_rankings(self, event_code: str, season_year: int) -> List[Ranking]:
        """
        Current rankings for an event.

        Returns:
            Ranking snapshots (empty when not configured or on fetch failure)
        """
        if not self.is_configured():
            return []

        async def fetch():
            response = await self.api_service.fetch_rankings(
                event_code, season_year, acquire=self._acquire_for(f"rankings-{event_code}")
            )
            return response.rankings

        dtos = await self.cache.get_or_fetch(("rankings", event_code.upper(), season_year), fetch)
        return [map_ranking(dto, event_code, season_year) for dto in dtos]

    # ========================================================================
    # Teams
    # ========================================================================

    async def get_team(self, team_number: int) -> Optional[FrcTeamDto]:
        """Team descriptor, or None."""
        if not self.is_configured():
            return None

        async def fetch():
            return await self.api_service.fetch_team(team_number, acquire=self._acquire_for(f"team-{team_number}"))

        return await self.cache.get_or_fetch(("team", team_number), fetch)

    async def get_current_team(self) -> Optional[FrcTeamDto]:
        """Descriptor of the configured default team, or None."""
        if self.default_team_number <= 0:
            logger.warning("No default team number configured; cannot fetch current team")
            return None
        return await self.get_team(self.default_team_number)

    # ========================================================================
    # Maintenance
    # ========================================================================

    async def validate_connection(self, season_year: int) -> bool:
        """Probe the API (rate-limited, never cached)."""
        if not self.is_configured():
            return False
        return await self.api_service.validate_connection(season_year, acquire=self._acquire_for("events"))

    async def invalidate_season(self, season_year: int) -> None:
        """Drop cached event lists for a season so the next fetch hits the API."""
        await self.cache.invalidate(("events", season_year))
        if self.default_team_number > 0:
            await self.cache.invalidate(("team-events", self.default_team_number, season_year))

    async def close(self) -> None:
        await self.api_service.close()

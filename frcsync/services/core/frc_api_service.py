"""
FIRST FRC Events API client.

Issues authenticated GET requests against the FRC Events API (v3.0) and
deserializes the JSON payloads into transport DTOs:
- GET {base}/seasons
- GET {base}/{season}/events
- GET {base}/{season}/teams/{teamNumber}/events
- GET {base}/{season}/rankings/{eventCode}
- GET {base}/teams/{teamNumber}

No exception escapes this client for expected failures. Every fetch returns
an empty response (or None) when credentials are missing, the API answers
404 or another error status, the network fails, or the body cannot be
decoded. Each of those outcomes is logged with a distinct ``event`` tag so
"no data" and "fetch failed" remain distinguishable.

Transient failures (transport errors, 5xx, 429) are retried with exponential
backoff before they are absorbed. Every fetch takes an optional ``acquire``
coroutine function that is awaited before each attempt, retries included, so
the caller's rate limit also spaces retried requests. A 429 ``Retry-After``
header lengthens the backoff.
"""
import asyncio
import base64
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from frcsync.core.logging import get_logger
from frcsync.core.metrics import frc_api_requests_total
from frcsync.services.frc.schemas import (
    FrcEventDto,
    FrcEventResponse,
    FrcRankingResponse,
    FrcSeasonResponse,
    FrcTeamDto,
)

logger = get_logger(__name__)

FRC_API_BASE = "https://frc-api.firstinspires.org/v3.0"
MAX_RETRY_AFTER_SECONDS = 60.0

Acquire = Callable[[], Awaitable[Any]]


class _RetryableStatus(Exception):
    """Raised inside a retry attempt for status codes worth retrying."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response

    @property
    def retry_after(self) -> float:
        """Seconds from a numeric Retry-After header (0 when absent or a date)."""
        value = self.response.headers.get("Retry-After")
        try:
            return min(max(float(value), 0.0), MAX_RETRY_AFTER_SECONDS)
        except (TypeError, ValueError):
            return 0.0


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, (httpx.TransportError, _RetryableStatus))


class FrcApiService:
    """
    HTTP client adapter for the FRC Events API.

    The underlying ``httpx.AsyncClient`` is created lazily and reused; pass
    ``transport`` to substitute a fake (e.g. ``httpx.MockTransport``) in tests.
    """

    def __init__(
        self,
        base_url: str = FRC_API_BASE,
        username: str = "",
        auth_key: str = "",
        auth_token: str = "",
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_wait: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the client.

        Args:
            base_url: API root, e.g. https://frc-api.firstinspires.org/v3.0
            username: Basic-auth username
            auth_key: Basic-auth key
            auth_token: Pre-encoded base64 "username:key" (used when set)
            timeout: Per-request timeout in seconds
            max_retries: Retries after the first attempt for transient failures
            retry_wait: Backoff multiplier in seconds (0 disables waiting)
            transport: Optional httpx transport override
            retry_sleep: Async sleep used between retries (injectable for tests)
        """
        self.base_url = base_url.rstrip("/")
        self.username = username or ""
        self.auth_key = auth_key or ""
        self.auth_token = auth_token or ""
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self.retry_wait = retry_wait
        self._transport = transport
        self._retry_sleep = retry_sleep
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "FrcApiService":
        """Build a client from application Settings."""
        return cls(
            base_url=settings.FRC_API_BASE_URL,
            username=settings.FRC_API_USERNAME,
            auth_key=settings.FRC_API_AUTH_KEY,
            auth_token=settings.FRC_API_AUTH_TOKEN,
            timeout=settings.FRC_API_TIMEOUT,
            max_retries=settings.FRC_API_MAX_RETRIES,
            transport=transport,
        )

    def is_configured(self) -> bool:
        """Credentials are present (username and key, or a pre-encoded token)."""
        if self.auth_token:
            return True
        return bool(self.username) and bool(self.auth_key)

    def _get_headers(self) -> Dict[str, str]:
        """JSON content negotiation plus Basic auth."""
        if self.auth_token:
            credentials = self.auth_token
        else:
            credentials = base64.b64encode(
                f"{self.username}:{self.auth_key}".encode("utf-8")
            ).decode("ascii")

        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Basic {credentials}",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                headers=self._get_headers(),
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _backoff(self, retry_state) -> float:
        """Exponential backoff, stretched to a 429's Retry-After when longer."""
        delay = wait_exponential(multiplier=self.retry_wait, max=10)(retry_state)
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, _RetryableStatus):
            delay = max(delay, exc.retry_after)
        return delay

    async def _send(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        acquire: Optional[Acquire] = None,
    ) -> httpx.Response:
        """GET with retries for transient failures; returns the final response."""
        client = await self._get_client()

        async for attempt in AsyncRetrying(
            retry=retry_if_exception(_is_transient),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self._backoff,
            sleep=self._retry_sleep,
            reraise=True,
        ):
            with attempt:
                if acquire is not None:
                    await acquire()
                response = await client.get(path, params=params)
                if response.status_code >= 500 or response.status_code == 429:
                    raise _RetryableStatus(response)
                return response

    async def _get_json(
        self,
        endpoint: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        acquire: Optional[Acquire] = None,
    ) -> Optional[Any]:
        """
        Fetch and decode one JSON document.

        Args:
            endpoint: Logical endpoint name for logs and metrics
            path: Path relative to the base URL
            params: Optional query parameters
            acquire: Awaited before every attempt (e.g. a rate-limiter acquire)

        Returns:
            Decoded JSON, or None for any absorbed failure
        """
        log_extra = {"endpoint": endpoint, "path": path}

        if not self.is_configured():
            logger.warning(
                f"FRC API not configured; skipping {endpoint}",
                extra={"event": "frc_api_not_configured", **log_extra}
            )
            frc_api_requests_total.labels(endpoint=endpoint, outcome="not_configured").inc()
            return None

        try:
            response = await self._send(path, params=params, acquire=acquire)
        except _RetryableStatus as e:
            response = e.response
        except httpx.HTTPError as e:
            logger.error(
                f"FRC API transport error on {endpoint}: {type(e).__name__}: {e}",
                extra={"event": "frc_api_transport_error", **log_extra}
            )
            frc_api_requests_total.labels(endpoint=endpoint, outcome="transport_error").inc()
            return None

        status = response.status_code
        if status == 404:
            logger.warning(
                f"FRC API resource not found: {path}",
                extra={"event": "frc_api_not_found", "status_code": status, **log_extra}
            )
            frc_api_requests_total.labels(endpoint=endpoint, outcome="not_found").inc()
            return None

        if status >= 400:
            log = logger.error if status >= 500 else logger.warning
            log(
                f"FRC API request failed on {endpoint}: HTTP {status}",
                extra={"event": "frc_api_request_failed", "status_code": status, **log_extra}
            )
            frc_api_requests_total.labels(endpoint=endpoint, outcome="http_error").inc()
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.error(
                f"FRC API returned undecodable body on {endpoint}: {e}",
                extra={"event": "frc_api_decode_error", "status_code": status, **log_extra}
            )
            frc_api_requests_total.labels(endpoint=endpoint, outcome="decode_error").inc()
            return None

        frc_api_requests_total.labels(endpoint=endpoint, outcome="success").inc()
        return data

    def _decode(self, model, data: Any, endpoint: str):
        """Validate JSON against a DTO model; None (and a log) on mismatch."""
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(
                f"FRC API payload did not match {model.__name__} on {endpoint}: {e.error_count()} errors",
                extra={"event": "frc_api_decode_error", "endpoint": endpoint}
            )
            return None

    # Season Methods

    async def fetch_seasons(self, acquire: Optional[Acquire] = None) -> FrcSeasonResponse:
        """
        Fetch the seasons the API knows about.

        Accepts either a bare JSON array or a ``{"Seasons": [...]}`` envelope.

        Returns:
            Season response (empty on any absorbed failure)
        """
        endpoint = "seasons"
        data = await self._get_json(endpoint, "/seasons", acquire=acquire)
        if data is None:
            return FrcSeasonResponse()
        if isinstance(data, list):
            data = {"Seasons": data}
        return self._decode(FrcSeasonResponse, data, endpoint) or FrcSeasonResponse()

    # Event Methods

    async def fetch_events(self, season_year: int, acquire: Optional[Acquire] = None) -> FrcEventResponse:
        """
        Fetch every event of a season.

        Returns:
            Event response (empty on any absorbed failure)
        """
        endpoint = "events"
        data = await self._get_json(endpoint, f"/{season_year}/events", acquire=acquire)
        if data is None:
            return FrcEventResponse()
        return self._decode(FrcEventResponse, data, endpoint) or FrcEventResponse()

    async def fetch_team_events(
        self,
        team_number: int,
        season_year: int,
        acquire: Optional[Acquire] = None,
    ) -> FrcEventResponse:
        """
        Fetch the events a team is registered for in a season.

        Returns:
            Event response (empty on any absorbed failure)
        """
        endpoint = "team-events"
        data = await self._get_json(endpoint, f"/{season_year}/teams/{team_number}/events", acquire=acquire)
        if data is None:
            return FrcEventResponse()
        return self._decode(FrcEventResponse, data, endpoint) or FrcEventResponse()

    async def fetch_event(
        self,
        season_year: int,
        event_code: str,
        acquire: Optional[Acquire] = None,
    ) -> Optional[FrcEventDto]:
        """
        Fetch a single event by code.

        Returns:
            The event, or None if it does not exist or the fetch failed
        """
        endpoint = "event"
        data = await self._get_json(
            endpoint,
            f"/{season_year}/events",
            params={"eventCode": event_code},
            acquire=acquire,
        )
        if data is None:
            return None

        response = self._decode(FrcEventResponse, data, endpoint)
        if response is None:
            return None

        for event in response.events:
            if event.code and event.code.upper() == event_code.upper():
                return event

        logger.warning(
            f"FRC event {event_code} not found for season {season_year}",
            extra={"event": "frc_api_not_found", "endpoint": endpoint, "event_code": event_code}
        )
        return None

    # Ranking Methods

    async def fetch_rankings(
        self,
        event_code: str,
        season_year: int,
        acquire: Optional[Acquire] = None,
    ) -> FrcRankingResponse:
        """
        Fetch current rankings for an event.

        Returns:
            Ranking response (empty on any absorbed failure)
        """
        endpoint = "rankings"
        data = await self._get_json(endpoint, f"/{season_year}/rankings/{event_code}", acquire=acquire)
        if data is None:
            return FrcRankingResponse()
        return self._decode(FrcRankingResponse, data, endpoint) or FrcRankingResponse()

    # Team Methods

    async def fetch_team(self, team_number: int, acquire: Optional[Acquire] = None) -> Optional[FrcTeamDto]:
        """
        Fetch a team descriptor.

        Accepts either a bare team object or the API's ``{"teams": [...]}``
        envelope.

        Returns:
            The team, or None if it does not exist or the fetch failed
        """
        endpoint = "team"
        data = await self._get_json(endpoint, f"/teams/{team_number}", acquire=acquire)
        if data is None:
            return None

        if isinstance(data, dict) and isinstance(data.get("teams"), list):
            if not data["teams"]:
                logger.warning(
                    f"FRC team {team_number} not found",
                    extra={"event": "frc_api_not_found", "endpoint": endpoint, "team_number": team_number}
                )
                return None
            data = data["teams"][0]

        return self._decode(FrcTeamDto, data, endpoint)

    async def validate_connection(self, season_year: int, acquire: Optional[Acquire] = None) -> bool:
        """
        Probe credentials and connectivity with a season events request.

        Returns:
            True if the API answered successfully
        """
        if not self.is_configured():
            logger.warning(
                "FRC API not configured; cannot validate connection",
                extra={"event": "frc_api_not_configured", "endpoint": "validate"}
            )
            return False

        data = await self._get_json("validate", f"/{season_year}/events", acquire=acquire)
        if data is None:
            return False

        logger.info("FRC API connection validated")
        return True

"""Shared pytest fixtures for frcsync tests."""
import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
from sqlalchemy.orm import sessionmaker

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from frcsync.core.config import Settings
from frcsync.core.database import create_db_engine, create_session_factory, init_db
from frcsync.models.models import Event, EventType
from frcsync.repositories.event_repository import SqlAlchemyEventRepository

TEST_BASE_URL = "https://frc.test/v3.0"


@pytest.fixture(scope="function")
def db_engine():
    """Isolated in-memory database with all tables created."""
    engine = create_db_engine("sqlite:///:memory:")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    return create_session_factory(db_engine)


@pytest.fixture(scope="function")
def event_repository(session_factory) -> SqlAlchemyEventRepository:
    return SqlAlchemyEventRepository(session_factory)


@pytest.fixture
def test_settings() -> Settings:
    """Configured settings that never touch a real .env file."""
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        DATABASE_URL="sqlite:///:memory:",
        LOG_JSON=False,
        FRC_API_BASE_URL=TEST_BASE_URL,
        FRC_API_USERNAME="testuser",
        FRC_API_AUTH_KEY="testkey",
        FRC_API_MAX_RETRIES=0,
        FRC_API_REQUESTS_PER_MINUTE=600,
        DEFAULT_TEAM_NUMBER=0,
        CURRENT_SEASON_YEAR=2025,
        FRC_SYNC_ENABLED=True,
        FRC_SCHEDULER_ENABLED=True,
        FRC_AUTO_SYNC_INTERVAL=3600,
    )


def make_event(
    event_code: str = "ABC123",
    season_year: int = 2025,
    **overrides
) -> Event:
    """Build a transient Event with sensible defaults."""
    fields = dict(
        event_code=event_code,
        season_year=season_year,
        name=f"{event_code} Regional",
        event_type=EventType.REGIONAL.value,
        start_date=date(season_year, 3, 6),
        end_date=date(season_year, 3, 8),
        city="San Jose",
        state_province="CA",
        country="USA",
        team_count=40,
        is_official=True,
        is_public=True,
    )
    fields.update(overrides)
    return Event(**fields)


def event_json(code: str, **overrides) -> Dict[str, Any]:
    """One event summary as the FRC API returns it."""
    data = {
        "code": code,
        "name": f"{code} Regional",
        "type": "Regional",
        "dateStart": "2025-03-06T00:00:00",
        "dateEnd": "2025-03-08T23:59:59",
        "address": "1 Arena Way",
        "venue": "Arena",
        "city": "San Jose",
        "stateprov": "CA",
        "country": "USA",
        "website": f"https://example.org/{code.lower()}",
        "webcasts": [],
        "teamCount": 40,
    }
    data.update(overrides)
    return data


class FakeFrcApi:
    """
    In-process stand-in for the FRC Events API.

    Routes map a path (relative to the /v3.0 base) to ``(status, json)``.
    Unrouted paths answer 404. Every request is recorded.
    """

    def __init__(self, routes: Optional[Dict[str, Tuple[int, Any]]] = None):
        self.routes: Dict[str, Tuple[int, Any]] = dict(routes or {})
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith("/v3.0"):
            path = path[len("/v3.0"):]

        status, body = self.routes.get(path, (404, {"message": "Not Found"}))
        if isinstance(body, (bytes, str)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def fake_api() -> FakeFrcApi:
    return FakeFrcApi()


@pytest.fixture
def orchestrator_factory(test_settings, session_factory, fake_api):
    """Build orchestrators wired to the fake API and the test database."""
    from frcsync.services.sync.orchestrator import build_orchestrator

    def _build(**setting_overrides):
        settings = test_settings.model_copy(update=setting_overrides) if setting_overrides else test_settings
        orchestrator = build_orchestrator(
            settings=settings,
            session_factory=session_factory,
            transport=fake_api.transport,
        )
        return orchestrator

    return _build

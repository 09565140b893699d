"""
Engine configuration with environment-specific secrets management.

Supported environment files (loaded in order of precedence):
1. .env.{ENVIRONMENT} (e.g., .env.production, .env.development)
2. .env (fallback)

Required secrets for production (when sync is enabled):
- FRC_API_USERNAME + FRC_API_AUTH_KEY, or FRC_API_AUTH_TOKEN
"""
import os
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the project root directory (3 levels up from this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent

logger = logging.getLogger(__name__)

DEFAULT_REQUESTS_PER_MINUTE = 20


class Settings(BaseSettings):
    """Settings for the FRC event synchronization engine."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Allow extra fields from .env
    )

    # Environment
    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    APP_NAME: str = "FRC Event Sync"
    APP_VERSION: str = "1.0.0"

    # Database
    DATABASE_URL: str = "sqlite:///./frcsync.db"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # FRC Events API
    FRC_API_BASE_URL: str = "https://frc-api.firstinspires.org/v3.0"
    FRC_API_USERNAME: str = ""
    FRC_API_AUTH_KEY: str = ""
    FRC_API_AUTH_TOKEN: str = ""  # Pre-encoded base64 "username:key"
    FRC_API_TIMEOUT: float = 30.0
    FRC_API_MAX_RETRIES: int = 2
    FRC_API_REQUESTS_PER_MINUTE: int = DEFAULT_REQUESTS_PER_MINUTE

    # Team / season
    DEFAULT_TEAM_NUMBER: int = 0
    CURRENT_SEASON_YEAR: Optional[int] = None  # None -> the season the API flags as current

    # Synchronization
    FRC_SYNC_ENABLED: bool = True
    FRC_SCHEDULER_ENABLED: bool = True
    FRC_AUTO_SYNC_INTERVAL: int = 3600  # seconds
    FRC_CACHE_TTL: Optional[float] = None  # seconds; None -> half the sync interval
    FRC_CACHE_MAXSIZE: int = 256

    @property
    def is_configured(self) -> bool:
        """Credentials are present (username and key, or a pre-encoded token)."""
        if self.FRC_API_AUTH_TOKEN:
            return True
        return bool(self.FRC_API_USERNAME) and bool(self.FRC_API_AUTH_KEY)

    @property
    def requests_per_minute(self) -> int:
        """Configured rate, falling back to the default when unset or non-positive."""
        if self.FRC_API_REQUESTS_PER_MINUTE and self.FRC_API_REQUESTS_PER_MINUTE > 0:
            return self.FRC_API_REQUESTS_PER_MINUTE
        return DEFAULT_REQUESTS_PER_MINUTE

    @property
    def cache_ttl(self) -> float:
        """
        Maximum age of a cached API response.

        Defaults to half the auto-sync interval so every scheduled run
        fetches fresh data while on-demand lookups in between reuse it.
        """
        if self.FRC_CACHE_TTL is not None and self.FRC_CACHE_TTL > 0:
            return float(self.FRC_CACHE_TTL)
        return max(1.0, self.FRC_AUTO_SYNC_INTERVAL / 2)

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"

    def validate_required_secrets(self) -> list[str]:
        """
        Validate that required secrets are set for the current environment.

        Returns:
            List of missing secret names (empty if all present)
        """
        missing = []

        if self.FRC_SYNC_ENABLED and not self.is_configured:
            if not self.FRC_API_AUTH_TOKEN:
                if not self.FRC_API_USERNAME:
                    missing.append("FRC_API_USERNAME")
                if not self.FRC_API_AUTH_KEY:
                    missing.append("FRC_API_AUTH_KEY")

        return missing


def _resolve_env_file() -> Path:
    """
    Pick the environment file based on the ENVIRONMENT variable.

    Loads in order of precedence:
    1. .env.{ENVIRONMENT} (e.g., .env.production, .env.development)
    2. .env (fallback)
    """
    environment = os.getenv("ENVIRONMENT", "development")

    env_file = PROJECT_ROOT / f".env.{environment}"
    if env_file.exists():
        logger.info(f"Loading environment from {env_file.name}")
        return env_file

    return PROJECT_ROOT / ".env"


@lru_cache()
def get_settings() -> Settings:
    """
    Build the settings singleton from the auto-detected env file.

    Raises:
        ValueError: In production when credentials are missing and sync is enabled
    """
    settings = Settings(_env_file=str(_resolve_env_file()))

    missing_secrets = settings.validate_required_secrets()
    if missing_secrets:
        logger.warning(
            f"Missing FRC API credentials for {settings.ENVIRONMENT}: {', '.join(missing_secrets)}"
        )
        if settings.is_production():
            raise ValueError(
                f"Cannot start in production with missing secrets: {', '.join(missing_secrets)}. "
                f"Set them in .env.production or disable FRC_SYNC_ENABLED"
            )

    return settings

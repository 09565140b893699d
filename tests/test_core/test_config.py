"""Tests for Settings."""
import pytest

from frcsync.core.config import DEFAULT_REQUESTS_PER_MINUTE, Settings


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestCredentials:

    def test_username_and_key(self):
        assert make_settings(FRC_API_USERNAME="u", FRC_API_AUTH_KEY="k").is_configured is True

    def test_token_only(self):
        assert make_settings(FRC_API_AUTH_TOKEN="dTpr").is_configured is True

    @pytest.mark.parametrize("username,key", [("", ""), ("u", ""), ("", "k")])
    def test_incomplete(self, username, key):
        settings = make_settings(FRC_API_USERNAME=username, FRC_API_AUTH_KEY=key, FRC_API_AUTH_TOKEN="")
        assert settings.is_configured is False

    def test_missing_secrets_reported_when_sync_enabled(self):
        settings = make_settings(FRC_API_USERNAME="u", FRC_API_AUTH_KEY="", FRC_API_AUTH_TOKEN="")
        assert settings.validate_required_secrets() == ["FRC_API_AUTH_KEY"]

    def test_no_secrets_required_when_sync_disabled(self):
        settings = make_settings(FRC_SYNC_ENABLED=False, FRC_API_USERNAME="", FRC_API_AUTH_KEY="")
        assert settings.validate_required_secrets() == []


class TestDerivedValues:

    @pytest.mark.parametrize("configured,expected", [
        (60, 60),
        (0, DEFAULT_REQUESTS_PER_MINUTE),
        (-1, DEFAULT_REQUESTS_PER_MINUTE),
    ])
    def test_requests_per_minute(self, configured, expected):
        assert make_settings(FRC_API_REQUESTS_PER_MINUTE=configured).requests_per_minute == expected

    def test_cache_ttl_defaults_to_half_interval(self):
        assert make_settings(FRC_AUTO_SYNC_INTERVAL=3600).cache_ttl == 1800.0

    def test_cache_ttl_explicit(self):
        assert make_settings(FRC_CACHE_TTL=120).cache_ttl == 120.0

    def test_environment_variables_read(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_TEAM_NUMBER", "1678")
        monkeypatch.setenv("FRC_SYNC_ENABLED", "false")

        settings = make_settings()

        assert settings.DEFAULT_TEAM_NUMBER == 1678
        assert settings.FRC_SYNC_ENABLED is False

"""Tests for application configuration."""

from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from backoffice.core.config import Settings, get_settings


def test_settings_has_defaults(monkeypatch):
    """Settings should have sensible defaults."""
    monkeypatch.delenv("APP_ENV", raising=False)
    settings = Settings(_env_file=None)

    assert settings.app_name == "BackOffice Analytics"
    assert settings.app_env == "development"
    assert settings.debug is False
    assert settings.log_level == "INFO"
    assert settings.log_format == "json"


def test_analytics_defaults():
    """Analytics tuning matches the documented behaviour."""
    settings = Settings(_env_file=None)

    assert settings.analytics_cache_ttl_ms == 60_000
    assert settings.analytics_history_days == 30
    assert settings.analytics_peak_share == 0.25
    assert settings.analytics_forecast_jitter == 0.1
    assert settings.analytics_forecast_seed is None
    assert settings.analytics_broadcast_interval_seconds == 30.0


def test_settings_is_development_property():
    """is_development should return True for development env."""
    settings = Settings(app_env="development")
    assert settings.is_development is True
    assert settings.is_production is False


def test_settings_is_production_property():
    """is_production should return True for production env."""
    settings = Settings(app_env="production")
    assert settings.is_development is False
    assert settings.is_production is True


def test_get_settings_returns_singleton():
    """get_settings should return cached singleton."""
    assert get_settings() is get_settings()


def test_settings_from_environment(monkeypatch):
    """Settings should load from environment variables."""
    monkeypatch.setenv("APP_NAME", "TestApp")
    monkeypatch.setenv("ANALYTICS_CACHE_TTL_MS", "5000")
    monkeypatch.setenv("ANALYTICS_TIMEZONE", "Europe/London")

    settings = Settings()

    assert settings.app_name == "TestApp"
    assert settings.analytics_cache_ttl_ms == 5000
    assert settings.tzinfo == ZoneInfo("Europe/London")


def test_unknown_timezone_rejected():
    """Timezone must be a valid IANA key."""
    with pytest.raises(ValidationError, match="Unknown timezone"):
        Settings(analytics_timezone="Mars/Olympus_Mons")


@pytest.mark.parametrize("field", ["analytics_peak_share", "analytics_forecast_jitter"])
def test_fractions_must_be_between_zero_and_one(field):
    with pytest.raises(ValidationError):
        Settings(**{field: 1.5})

"""Tests for configuration management."""

import os
from unittest.mock import patch

import pytest

from neowatch.config import Settings


def test_settings_defaults() -> None:
    """Test default settings values."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)

        assert settings.nasa_api_key == "DEMO_KEY"
        assert settings.lookahead_days == 7
        assert settings.alerts_topic == "asteroid-alerts"
        assert settings.consumer_group == "notification-service"
        assert settings.database_file == "neowatch.db"
        assert settings.database_url is None
        assert settings.dedupe_notifications is True
        assert settings.dispatch_interval_seconds == 10.0
        assert settings.smtp_host is None
        assert settings.log_level == "INFO"
        assert settings.dry_run is False


def test_settings_from_env() -> None:
    """Test settings loaded from environment variables."""
    env_vars = {
        "NASA_API_KEY": "real-key",
        "LOOKAHEAD_DAYS": "3",
        "REDIS_URL": "redis://broker:6379/1",
        "ALERTS_TOPIC": "neo-alerts",
        "DATABASE_URL": "postgresql://u:p@db/neowatch",
        "DEDUPE_NOTIFICATIONS": "false",
        "SMTP_PORT": "2525",
        "DISPATCH_INTERVAL_SECONDS": "30",
        "DRY_RUN": "true",
    }

    with patch.dict(os.environ, env_vars, clear=True):
        settings = Settings(_env_file=None)

        assert settings.nasa_api_key == "real-key"
        assert settings.lookahead_days == 3
        assert settings.redis_url == "redis://broker:6379/1"
        assert settings.dead_letter_topic == "neo-alerts.dlq"
        assert settings.database_url == "postgresql://u:p@db/neowatch"
        assert settings.dedupe_notifications is False
        assert settings.smtp_port == 2525
        assert settings.dispatch_interval_seconds == 30.0
        assert settings.dry_run is True


def test_http_timeout_tuple() -> None:
    settings = Settings(_env_file=None, http_connect_timeout=1.5, http_timeout_seconds=9)

    assert settings.http_timeout == (1.5, 9.0)


def test_validate_email_config_lists_missing() -> None:
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None, smtp_host="smtp.example.com")

        with pytest.raises(ValueError, match="EMAIL_FROM_ADDRESS"):
            settings.validate_email_config()


def test_validate_email_config_ok(test_settings: Settings) -> None:
    test_settings.validate_email_config()

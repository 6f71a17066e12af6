"""Tests for runtime settings."""
from __future__ import annotations

from rendezvous.core.config import Settings
from rendezvous.services.hub import SignalingHub


def test_defaults_match_designed_retention():
    config = Settings(_env_file=None)

    assert config.port == 8080
    assert config.room_max_age_seconds == 24 * 60 * 60
    assert config.reaper_interval_seconds == 60 * 60
    assert config.cors_allow_origins == ["*"]


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("ROOM_MAX_AGE_SECONDS", "120")

    config = Settings(_env_file=None)

    assert config.port == 9000
    assert config.cors_allow_origins == ["https://a.example", "https://b.example"]

    hub = SignalingHub.from_settings(config)
    assert hub.reaper.max_age_seconds == 120
    assert hub.reaper.interval_seconds == 60 * 60

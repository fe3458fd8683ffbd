from __future__ import annotations

from datetime import timedelta

from relay.core.config import Settings
from relay.services.signaling import SignalingManager


def test_defaults_match_relay_timing():
    config = Settings(_env_file=None)

    assert config.port == 5000
    assert config.cors_allow_origins == ["*"]
    assert config.sweep_interval_seconds == 300
    assert config.stale_after_seconds == 600


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("HEARTBEATLESS_GRACE_SECONDS", "0")

    config = Settings(_env_file=None)

    assert config.port == 8080
    assert config.cors_allow_origins == ["https://a.example", "https://b.example"]
    assert config.heartbeatless_grace_seconds == 0


def test_json_list_origins(monkeypatch):
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", '["https://a.example"]')

    assert Settings(_env_file=None).cors_allow_origins == ["https://a.example"]


def test_manager_from_settings():
    manager = SignalingManager.from_settings(
        Settings(_env_file=None, stale_after_seconds=30, heartbeatless_grace_seconds=0)
    )

    assert manager.liveness.stale_after == timedelta(seconds=30)
    assert manager.liveness.heartbeatless_grace is None

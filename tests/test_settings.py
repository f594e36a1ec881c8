from __future__ import annotations

import pytest
from pydantic import ValidationError

from config.settings import Settings

REQUIRED = ("OPENAI_API_KEY", "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN")


@pytest.mark.parametrize("missing", REQUIRED)
def test_missing_credentials_prevent_startup(monkeypatch, missing):
    monkeypatch.delenv(missing, raising=False)

    with pytest.raises(ValidationError) as excinfo:
        Settings(_env_file=None)

    assert missing.lower() in str(excinfo.value)


def test_empty_credentials_are_rejected(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_defaults_match_realtime_relay(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)

    settings = Settings(_env_file=None)

    assert settings.port == 3000
    assert settings.openai_voice == "alloy"
    assert settings.audio_format == "g711_ulaw"
    assert settings.turn_detection == "server_vad"
    assert settings.default_greeting
    assert settings.automation_webhook_url is None
    assert settings.realtime_ws_url == (
        "wss://api.openai.com/v1/realtime?model=gpt-4o-realtime-preview-2024-10-01"
    )


def test_port_is_read_from_environment(monkeypatch):
    monkeypatch.setenv("PORT", "8080")

    assert Settings(_env_file=None).port == 8080


def test_settings_carry_no_unused_environment_field():
    assert "environment" not in Settings.model_fields

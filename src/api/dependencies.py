"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

from fastapi import Depends
from starlette.requests import HTTPConnection

from config.settings import Settings, get_settings
from integrations.automation_webhook import AutomationWebhook
from prompts.loader import load_prompt
from relay.messages import RealtimeSessionConfig
from relay.session_store import SessionStore
from relay.transports import RealtimeConnector, build_realtime_connector


def get_session_store(connection: HTTPConnection) -> SessionStore:
    return connection.app.state.sessions


def get_realtime_connector(settings: Settings = Depends(get_settings)) -> RealtimeConnector:
    return build_realtime_connector(settings.realtime_ws_url, settings.openai_api_key)


def get_session_config(settings: Settings = Depends(get_settings)) -> RealtimeSessionConfig:
    return RealtimeSessionConfig(
        instructions=load_prompt(settings.system_prompt_file),
        voice=settings.openai_voice,
        audio_format=settings.audio_format,
        turn_detection=settings.turn_detection,
    )


def get_automation_webhook(settings: Settings = Depends(get_settings)) -> AutomationWebhook | None:
    return AutomationWebhook.from_settings(settings)

"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration.

    The OpenAI key and the Twilio credentials are required: constructing the
    settings without them raises a ``ValidationError`` and the service refuses
    to start.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    log_level: str = Field(default="INFO")

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)

    # Credentials
    openai_api_key: str = Field(min_length=1)
    twilio_account_sid: str = Field(min_length=1)
    twilio_auth_token: str = Field(min_length=1)

    # Twilio (Voice)
    public_base_url: str | None = Field(
        default=None,
        description="Public base URL for Twilio webhooks (e.g. https://<ngrok>.ngrok-free.app).",
    )
    twilio_validate_signatures: bool = Field(
        default=False,
        description="If true, rejects webhooks without a valid X-Twilio-Signature.",
    )
    default_greeting: str = Field(
        default="Hello, welcome to Bart's Automotive. How can I assist you today?",
        min_length=1,
    )

    # OpenAI Realtime
    openai_realtime_url: str = Field(default="wss://api.openai.com/v1/realtime")
    openai_realtime_model: str = Field(default="gpt-4o-realtime-preview-2024-10-01")
    openai_voice: str = Field(default="alloy")
    audio_format: str = Field(
        default="g711_ulaw",
        description="Audio encoding used in both directions; must match the Twilio stream codec.",
    )
    turn_detection: str = Field(default="server_vad")
    system_prompt_file: str = Field(default="system_message.txt")
    ai_speaks_first: bool = Field(
        default=False,
        description="If true, the AI greets the caller with the session greeting once connected.",
    )

    # Automation webhook (e.g. Make.com scenario) notified when a call ends
    automation_webhook_url: str | None = Field(default=None)
    automation_webhook_api_key: str | None = Field(default=None)
    automation_webhook_timeout: float = Field(default=10.0, gt=0)

    @property
    def realtime_ws_url(self) -> str:
        return f"{self.openai_realtime_url.rstrip('/')}?model={self.openai_realtime_model}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()

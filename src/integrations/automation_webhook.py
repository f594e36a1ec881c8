"""Bridge for posting finished calls to an automation webhook (e.g. Make.com)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from config.settings import Settings
from relay.session_store import CallSession

LOGGER = logging.getLogger(__name__)


def call_summary(session: CallSession) -> dict[str, Any]:
    return {
        "call_sid": session.call_sid,
        "stream_sid": session.stream_sid,
        "caller_number": session.caller_number,
        "transcript": session.transcript,
        "call_details": dict(session.call_details),
        "started_at": session.created_at.isoformat(),
    }


class AutomationWebhook:
    """Simple HTTP bridge to an automation scenario webhook."""

    def __init__(
        self,
        endpoint: str,
        *,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not endpoint:
            raise ValueError("Automation webhook endpoint is not configured.")
        self._endpoint = endpoint
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> AutomationWebhook | None:
        if not settings.automation_webhook_url:
            return None
        return cls(
            settings.automation_webhook_url,
            api_key=settings.automation_webhook_api_key,
            timeout=settings.automation_webhook_timeout,
        )

    async def dispatch(self, session: CallSession) -> None:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(
                self._endpoint,
                json=call_summary(session),
                headers=headers,
            )
        try:
            response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.error("Automation webhook dispatch failed: %s", exc)
            raise

    async def notify_call_ended(self, session: CallSession) -> None:
        """Post the call summary; failures are logged and never reach the relay."""

        try:
            await self.dispatch(session)
        except (httpx.HTTPError, httpx.InvalidURL):
            LOGGER.warning("Call summary for %s was not delivered", session.call_sid)
        else:
            LOGGER.info("Posted call summary for %s", session.call_sid)

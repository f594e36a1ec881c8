from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable

from relay.errors import FrameParseError, TransportClosedError, TransportError
from relay.messages import (
    AudioDeltaEvent,
    ErrorEvent,
    RealtimeSessionConfig,
    TextDoneEvent,
    greeting_item,
    input_audio_append,
    parse_realtime_event,
    response_create,
    session_update,
)
from relay.transports import RealtimeConnector, Transport

LOGGER = logging.getLogger(__name__)

AudioSink = Callable[[str], Awaitable[None]]
TextSink = Callable[[str], Awaitable[None]]


class AIBridge:
    """Companion connection to the realtime speech AI service for one call stream.

    The bridge connects in a background task, sends the session configuration
    exactly once and only then reports itself open. Audio deltas go to
    ``on_audio``; completed text responses go to ``on_text``.

    A failing AI connection is logged and left closed. It never reconnects and
    never closes the caller's leg.
    """

    def __init__(
        self,
        connect: RealtimeConnector,
        config: RealtimeSessionConfig,
        *,
        on_audio: AudioSink,
        on_text: TextSink,
        greeting: str | None = None,
    ) -> None:
        self._connect = connect
        self._config = config
        self._on_audio = on_audio
        self._on_text = on_text
        self._greeting = greeting
        self._transport: Transport | None = None
        self._task: asyncio.Task | None = None
        self._ready = False

    @property
    def is_open(self) -> bool:
        return self._ready and self._transport is not None and self._transport.is_open

    def start(self) -> asyncio.Task:
        if self._task is not None:
            raise RuntimeError("AI bridge already started")
        self._task = asyncio.create_task(self._run())
        return self._task

    async def forward_audio(self, payload: str) -> None:
        if not self.is_open:
            return
        try:
            await self._transport.send_text(input_audio_append(payload))
        except TransportError as exc:
            LOGGER.warning("Could not forward audio to AI service: %s", exc)

    async def close(self) -> None:
        self._ready = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        if self._transport is not None and self._transport.is_open:
            await self._transport.close()
            LOGGER.info("Closed AI service connection")

    async def _run(self) -> None:
        try:
            self._transport = await self._connect()
            await self._transport.send_text(session_update(self._config))
            if self._greeting:
                await self._transport.send_text(greeting_item(self._greeting))
                await self._transport.send_text(response_create())
            self._ready = True
            LOGGER.info("Connected to AI service")

            while True:
                try:
                    message = await self._transport.receive_text()
                except TransportClosedError:
                    LOGGER.info("AI service connection closed")
                    return
                await self.handle_message(message)
        except TransportError as exc:
            LOGGER.error("AI service connection error: %s", exc)
        finally:
            self._ready = False

    async def handle_message(self, message: str) -> None:
        try:
            event = parse_realtime_event(message)
        except FrameParseError as exc:
            LOGGER.warning("Error processing AI service message: %s", exc)
            return

        if isinstance(event, AudioDeltaEvent):
            if event.delta:
                await self._on_audio(event.delta)
        elif isinstance(event, TextDoneEvent):
            LOGGER.info("AI response: %s", event.text)
            await self._on_text(event.text)
        elif isinstance(event, ErrorEvent):
            LOGGER.error("AI service reported an error: %s", event.error)

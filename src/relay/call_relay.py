"""Per-call actor relaying a Twilio media stream to the realtime AI service.

States: ``IDLE`` until the ``start`` frame, ``STREAMING`` while the AI bridge
exists, ``CLOSED`` once the Twilio socket is gone. Closing the caller leg always
closes the AI leg; the AI leg going away leaves the caller leg untouched.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable

from relay.ai_bridge import AIBridge
from relay.errors import FrameParseError, StreamAlreadyStartedError, TransportClosedError, TransportError
from relay.messages import (
    MediaFrame,
    RealtimeSessionConfig,
    StartFrame,
    StopFrame,
    parse_twilio_frame,
    twilio_media_frame,
)
from relay.session_store import CallSession, SessionStore
from relay.transports import RealtimeConnector, Transport

LOGGER = logging.getLogger(__name__)

CallEndHook = Callable[[CallSession], Awaitable[None]]


class RelayState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    CLOSED = "closed"


class CallRelay:
    def __init__(
        self,
        telephony: Transport,
        *,
        sessions: SessionStore,
        connect_ai: RealtimeConnector,
        session_config: RealtimeSessionConfig,
        ai_speaks_first: bool = False,
        on_call_end: CallEndHook | None = None,
    ) -> None:
        self._telephony = telephony
        self._sessions = sessions
        self._connect_ai = connect_ai
        self._session_config = session_config
        self._ai_speaks_first = ai_speaks_first
        self._on_call_end = on_call_end

        self.state = RelayState.IDLE
        self.stream_sid: str | None = None
        self.call_sid: str | None = None
        self.bridge: AIBridge | None = None
        self.dropped_media_frames = 0

    async def run(self) -> None:
        """Consume Twilio frames until the socket closes, then tear the call down."""

        LOGGER.info("New media stream connection established")
        try:
            while True:
                try:
                    message = await self._telephony.receive_text()
                except TransportClosedError:
                    break
                await self.handle_frame(message)
        finally:
            await self.shutdown()

    async def handle_frame(self, message: str) -> None:
        try:
            frame = parse_twilio_frame(message)
        except FrameParseError as exc:
            LOGGER.warning("Error processing media stream message: %s", exc)
            return

        if isinstance(frame, StartFrame):
            await self._on_start(frame)
        elif isinstance(frame, MediaFrame):
            await self._on_media(frame)
        elif isinstance(frame, StopFrame):
            LOGGER.info("Media stream stopped: %s", self.stream_sid)

    async def shutdown(self) -> None:
        if self.state is RelayState.CLOSED:
            return
        self.state = RelayState.CLOSED

        if self.bridge is not None:
            await self.bridge.close()
        if self.dropped_media_frames:
            LOGGER.info(
                "Dropped %d media frames received before the AI connection was ready",
                self.dropped_media_frames,
            )
        LOGGER.info("Media stream connection closed: %s", self.stream_sid)

        if self.call_sid is None:
            return
        session = await self._sessions.get(self.call_sid)
        await self._sessions.remove(self.call_sid)
        if session is not None and self._on_call_end is not None:
            await self._on_call_end(session)

    async def _on_start(self, frame: StartFrame) -> None:
        if self.state is not RelayState.IDLE:
            LOGGER.warning("Ignoring repeated start frame on stream %s", self.stream_sid)
            return

        self.stream_sid = frame.start.stream_sid
        self.call_sid = frame.start.call_sid
        LOGGER.info("Media stream started: stream_sid=%s call_sid=%s", self.stream_sid, self.call_sid)

        greeting = None
        try:
            session = await self._sessions.assign_stream(self.call_sid, self.stream_sid)
        except StreamAlreadyStartedError as exc:
            LOGGER.warning("%s", exc)
            session = None
        if session is None:
            LOGGER.warning("No session registered for call %s", self.call_sid)
        elif self._ai_speaks_first:
            greeting = session.first_message

        self.bridge = AIBridge(
            self._connect_ai,
            self._session_config,
            on_audio=self._send_audio_to_caller,
            on_text=self._record_text,
            greeting=greeting,
        )
        self.bridge.start()
        self.state = RelayState.STREAMING

    async def _on_media(self, frame: MediaFrame) -> None:
        if self.bridge is None or not self.bridge.is_open:
            self.dropped_media_frames += 1
            LOGGER.debug("Dropping media frame; AI connection not ready")
            return
        await self.bridge.forward_audio(frame.media.payload)

    async def _send_audio_to_caller(self, payload: str) -> None:
        if self.stream_sid is None or not self._telephony.is_open:
            return
        try:
            await self._telephony.send_text(twilio_media_frame(self.stream_sid, payload))
        except TransportError as exc:
            LOGGER.warning("Could not send audio to caller: %s", exc)

    async def _record_text(self, text: str) -> None:
        if self.call_sid is not None:
            await self._sessions.append_transcript(self.call_sid, text)

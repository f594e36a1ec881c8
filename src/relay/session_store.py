from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

from relay.errors import DuplicateSessionError, StreamAlreadyStartedError

LOGGER = logging.getLogger(__name__)


@dataclass
class CallSession:
    call_sid: str
    caller_number: str
    first_message: str
    call_details: Mapping[str, Any] = field(default_factory=dict)
    stream_sid: str | None = None
    transcript: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SessionStore:
    """In-memory registry of active calls, keyed by Twilio CallSid.

    Note: This is a single-process store. Entries are removed when the media
    stream closes or Twilio reports the call as finished.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._sessions: dict[str, CallSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def create(
        self,
        call_sid: str,
        *,
        caller_number: str,
        first_message: str,
        call_details: Mapping[str, Any] | None = None,
    ) -> CallSession:
        async with self._lock:
            if call_sid in self._sessions:
                raise DuplicateSessionError(f"Session already exists for call {call_sid}")
            session = CallSession(
                call_sid=call_sid,
                caller_number=caller_number,
                first_message=first_message,
                call_details=MappingProxyType(dict(call_details or {})),
            )
            self._sessions[call_sid] = session
            return session

    async def get(self, call_sid: str) -> CallSession | None:
        async with self._lock:
            return self._sessions.get(call_sid)

    async def remove(self, call_sid: str) -> None:
        async with self._lock:
            self._sessions.pop(call_sid, None)

    async def assign_stream(self, call_sid: str, stream_sid: str) -> CallSession | None:
        """Attach the media stream SID to a call; it cannot change afterwards."""

        async with self._lock:
            session = self._sessions.get(call_sid)
            if session is None:
                return None
            if session.stream_sid is not None and session.stream_sid != stream_sid:
                raise StreamAlreadyStartedError(
                    f"Call {call_sid} is already bound to stream {session.stream_sid}"
                )
            session.stream_sid = stream_sid
            return session

    async def append_transcript(self, call_sid: str, text: str) -> None:
        async with self._lock:
            session = self._sessions.get(call_sid)
            if session is None:
                LOGGER.debug("Dropping transcript text for unknown call %s", call_sid)
                return
            session.transcript = f"{session.transcript}\n{text}" if session.transcript else text

"""Wire models for the two sockets of a relayed call.

Inbound frames are validated into tagged pydantic variants before dispatch.
Unknown ``event``/``type`` values parse to ``None`` so newer provider messages are
ignored instead of rejected; known kinds with a broken shape raise
``FrameParseError``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from relay.errors import FrameParseError


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


# Twilio Media Streams


class StreamStart(_WireModel):
    stream_sid: str = Field(alias="streamSid", min_length=1)
    call_sid: str = Field(alias="callSid", min_length=1)
    custom_parameters: dict[str, str] = Field(default_factory=dict, alias="customParameters")


class StartFrame(_WireModel):
    event: Literal["start"]
    start: StreamStart


class MediaChunk(_WireModel):
    payload: str
    track: str | None = None


class MediaFrame(_WireModel):
    event: Literal["media"]
    stream_sid: str | None = Field(default=None, alias="streamSid")
    media: MediaChunk


class StopFrame(_WireModel):
    event: Literal["stop"]
    stream_sid: str | None = Field(default=None, alias="streamSid")


TwilioFrame = Annotated[Union[StartFrame, MediaFrame, StopFrame], Field(discriminator="event")]

_TWILIO_FRAME_ADAPTER: TypeAdapter[TwilioFrame] = TypeAdapter(TwilioFrame)
_TWILIO_EVENTS = frozenset({"start", "media", "stop"})


# OpenAI Realtime


class AudioDeltaEvent(_WireModel):
    type: Literal["response.audio.delta"]
    delta: str = ""


class TextDoneEvent(_WireModel):
    type: Literal["response.text.done"]
    text: str


class ErrorEvent(_WireModel):
    type: Literal["error"]
    error: dict[str, Any] = Field(default_factory=dict)


RealtimeEvent = Annotated[Union[AudioDeltaEvent, TextDoneEvent, ErrorEvent], Field(discriminator="type")]

_REALTIME_EVENT_ADAPTER: TypeAdapter[RealtimeEvent] = TypeAdapter(RealtimeEvent)
_REALTIME_TYPES = frozenset({"response.audio.delta", "response.text.done", "error"})


def _load_object(raw: str | bytes) -> dict[str, Any]:
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        raise FrameParseError(f"Invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise FrameParseError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_twilio_frame(raw: str | bytes) -> TwilioFrame | None:
    data = _load_object(raw)
    if data.get("event") not in _TWILIO_EVENTS:
        return None
    try:
        return _TWILIO_FRAME_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise FrameParseError(f"Malformed {data['event']!r} frame: {exc}") from exc


def parse_realtime_event(raw: str | bytes) -> RealtimeEvent | None:
    data = _load_object(raw)
    if data.get("type") not in _REALTIME_TYPES:
        return None
    try:
        return _REALTIME_EVENT_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise FrameParseError(f"Malformed {data['type']!r} event: {exc}") from exc


@dataclass(frozen=True, slots=True)
class RealtimeSessionConfig:
    instructions: str
    voice: str = "alloy"
    audio_format: str = "g711_ulaw"
    turn_detection: str = "server_vad"


def session_update(config: RealtimeSessionConfig) -> str:
    return json.dumps(
        {
            "type": "session.update",
            "session": {
                "turn_detection": {"type": config.turn_detection},
                "input_audio_format": config.audio_format,
                "output_audio_format": config.audio_format,
                "voice": config.voice,
                "instructions": config.instructions,
                "modalities": ["text", "audio"],
            },
        }
    )


def input_audio_append(audio: str) -> str:
    return json.dumps({"type": "input_audio_buffer.append", "audio": audio})


def greeting_item(text: str) -> str:
    """Ask the model to open the call with ``text``."""

    return json.dumps(
        {
            "type": "conversation.item.create",
            "item": {
                "type": "message",
                "role": "user",
                "content": [
                    {
                        "type": "input_text",
                        "text": f'Greet the caller with exactly: "{text}"',
                    }
                ],
            },
        }
    )


def response_create() -> str:
    return json.dumps({"type": "response.create"})


def twilio_media_frame(stream_sid: str, payload: str) -> str:
    return json.dumps({"event": "media", "streamSid": stream_sid, "media": {"payload": payload}})

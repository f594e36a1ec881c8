from __future__ import annotations

import json

import pytest

from relay.errors import FrameParseError
from relay.messages import (
    AudioDeltaEvent,
    ErrorEvent,
    MediaFrame,
    RealtimeSessionConfig,
    StartFrame,
    StopFrame,
    TextDoneEvent,
    input_audio_append,
    parse_realtime_event,
    parse_twilio_frame,
    session_update,
    twilio_media_frame,
)


def test_parse_start_frame() -> None:
    frame = parse_twilio_frame(
        json.dumps(
            {
                "event": "start",
                "sequenceNumber": "1",
                "start": {
                    "streamSid": "MZ1",
                    "callSid": "CA1",
                    "customParameters": {"callerNumber": "+15551234567"},
                },
            }
        )
    )

    assert isinstance(frame, StartFrame)
    assert frame.start.stream_sid == "MZ1"
    assert frame.start.call_sid == "CA1"
    assert frame.start.custom_parameters == {"callerNumber": "+15551234567"}


def test_parse_media_and_stop_frames() -> None:
    media = parse_twilio_frame('{"event": "media", "streamSid": "MZ1", "media": {"track": "inbound", "payload": "AAAA"}}')
    stop = parse_twilio_frame('{"event": "stop", "streamSid": "MZ1"}')

    assert isinstance(media, MediaFrame)
    assert media.media.payload == "AAAA"
    assert isinstance(stop, StopFrame)


@pytest.mark.parametrize(
    "raw",
    [
        '{"event": "connected", "protocol": "Call", "version": "1.0.0"}',
        '{"event": "mark", "mark": {"name": "x"}}',
        '{"event": "something-new"}',
        '{"no_event": true}',
    ],
)
def test_unknown_twilio_events_are_ignored(raw: str) -> None:
    assert parse_twilio_frame(raw) is None


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2, 3]",
        '{"event": "start", "start": {"streamSid": "MZ1"}}',
        '{"event": "media", "media": {}}',
    ],
)
def test_malformed_twilio_frames_raise(raw: str) -> None:
    with pytest.raises(FrameParseError):
        parse_twilio_frame(raw)


def test_parse_realtime_events() -> None:
    delta = parse_realtime_event('{"type": "response.audio.delta", "response_id": "r1", "delta": "BBBB"}')
    done = parse_realtime_event('{"type": "response.text.done", "text": "Sure thing."}')
    error = parse_realtime_event('{"type": "error", "error": {"message": "bad"}}')

    assert isinstance(delta, AudioDeltaEvent) and delta.delta == "BBBB"
    assert isinstance(done, TextDoneEvent) and done.text == "Sure thing."
    assert isinstance(error, ErrorEvent) and error.error["message"] == "bad"
    assert parse_realtime_event('{"type": "session.created"}') is None


def test_malformed_realtime_event_raises() -> None:
    with pytest.raises(FrameParseError):
        parse_realtime_event("{oops")
    with pytest.raises(FrameParseError):
        parse_realtime_event('{"type": "response.text.done"}')


def test_outbound_messages_keep_payload_untouched() -> None:
    payload = "f/8A+w=="

    assert json.loads(input_audio_append(payload)) == {"type": "input_audio_buffer.append", "audio": payload}
    assert json.loads(twilio_media_frame("MZ1", payload)) == {
        "event": "media",
        "streamSid": "MZ1",
        "media": {"payload": payload},
    }


def test_session_update_carries_configuration() -> None:
    message = json.loads(session_update(RealtimeSessionConfig(instructions="Be nice.", voice="shimmer")))

    assert message["type"] == "session.update"
    session = message["session"]
    assert session["turn_detection"] == {"type": "server_vad"}
    assert session["input_audio_format"] == "g711_ulaw"
    assert session["output_audio_format"] == "g711_ulaw"
    assert session["voice"] == "shimmer"
    assert session["instructions"] == "Be nice."
    assert session["modalities"] == ["text", "audio"]


def test_deeply_nested_json_is_a_parse_error() -> None:
    nested = "[" * 100000

    with pytest.raises(FrameParseError):
        parse_twilio_frame(nested)
    with pytest.raises(FrameParseError):
        parse_realtime_event(nested)

"""Twilio Voice integration.

This module provides:
- Incoming-call webhook returning TwiML that connects the call to a media stream.
- Media stream WebSocket relaying the call audio to the realtime AI service.
- Call status callback used to forget finished calls.
"""

from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request, Response, WebSocket
from twilio.request_validator import RequestValidator
from twilio.twiml.voice_response import Connect, VoiceResponse

from api.dependencies import (
    get_automation_webhook,
    get_realtime_connector,
    get_session_config,
    get_session_store,
)
from api.schemas import CallStatusResponse
from config.settings import Settings, get_settings
from integrations.automation_webhook import AutomationWebhook
from relay.call_relay import CallRelay
from relay.errors import DuplicateSessionError
from relay.messages import RealtimeSessionConfig
from relay.session_store import SessionStore
from relay.transports import RealtimeConnector, TwilioTransport

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["twilio"])

MEDIA_STREAM_PATH = "/media-stream"

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")
_TERMINAL_CALL_STATUSES = frozenset({"completed", "busy", "failed", "no-answer", "canceled"})


def _twiml_response(xml: str) -> Response:
    return Response(content=xml, media_type="text/xml")


def _to_ws_url(http_url: str) -> str:
    if http_url.startswith("https://"):
        return "wss://" + http_url.removeprefix("https://")
    if http_url.startswith("http://"):
        return "ws://" + http_url.removeprefix("http://")
    return http_url


def _stream_url(request: Request, settings: Settings) -> str:
    if settings.public_base_url:
        return _to_ws_url(settings.public_base_url.rstrip("/") + MEDIA_STREAM_PATH)
    # Twilio only connects to secure sockets, so the Host header is assumed to sit behind TLS.
    host = request.headers.get("host") or request.url.netloc
    return f"wss://{host}{MEDIA_STREAM_PATH}"


def _twiml_connect_stream(*, stream_url: str, caller_number: str) -> str:
    response = VoiceResponse()
    connect = Connect()
    stream = connect.stream(url=stream_url)
    stream.parameter(name="callerNumber", value=caller_number)
    response.append(connect)
    return str(response)


async def _twilio_params(request: Request) -> dict[str, str]:
    """Read Twilio's parameters from the form body, falling back to the query string."""

    params = {key: str(value) for key, value in request.query_params.items()}
    if request.method != "POST":
        return params

    content_type = request.headers.get("content-type", "")
    if not content_type:
        return params
    if not content_type.startswith(_FORM_CONTENT_TYPES):
        raise HTTPException(status_code=400, detail="Unsupported webhook payload.")

    form = await request.form()
    body = {key: str(value) for key, value in form.items()}
    return body or params


def _verify_signature(request: Request, params: dict[str, str], settings: Settings) -> None:
    if not settings.twilio_validate_signatures:
        return

    if settings.public_base_url:
        url = settings.public_base_url.rstrip("/") + request.url.path
        if request.url.query:
            url = f"{url}?{request.url.query}"
    else:
        url = str(request.url)

    signed_params = params if request.method == "POST" else {}
    signature = request.headers.get("X-Twilio-Signature", "")
    validator = RequestValidator(settings.twilio_auth_token)
    if not validator.validate(url, signed_params, signature):
        LOGGER.warning("Rejected Twilio webhook with invalid signature: %s", request.url.path)
        raise HTTPException(status_code=403, detail="Invalid Twilio signature.")


@router.api_route("/incoming-call", methods=["GET", "POST"])
async def incoming_call(
    request: Request,
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
) -> Response:
    params = await _twilio_params(request)
    _verify_signature(request, params, settings)

    caller_number = params.get("From", "").strip() or "Unknown"
    call_sid = params.get("CallSid", "").strip()
    if not call_sid:
        call_sid = f"unknown-{secrets.token_hex(8)}"
        LOGGER.warning("Incoming call without CallSid; using generated id %s", call_sid)

    LOGGER.info("Incoming call from %s (call_sid=%s)", caller_number, call_sid)

    try:
        await sessions.create(
            call_sid,
            caller_number=caller_number,
            first_message=settings.default_greeting,
            call_details=params,
        )
    except DuplicateSessionError:
        # Twilio retries the webhook on timeouts; the first session stays authoritative.
        LOGGER.warning("Session for call %s already exists; keeping it", call_sid)

    return _twiml_response(
        _twiml_connect_stream(stream_url=_stream_url(request, settings), caller_number=caller_number)
    )


@router.websocket(MEDIA_STREAM_PATH)
async def media_stream(
    websocket: WebSocket,
    sessions: SessionStore = Depends(get_session_store),
    connect_ai: RealtimeConnector = Depends(get_realtime_connector),
    session_config: RealtimeSessionConfig = Depends(get_session_config),
    webhook: AutomationWebhook | None = Depends(get_automation_webhook),
    settings: Settings = Depends(get_settings),
) -> None:
    await websocket.accept()
    relay = CallRelay(
        TwilioTransport(websocket),
        sessions=sessions,
        connect_ai=connect_ai,
        session_config=session_config,
        ai_speaks_first=settings.ai_speaks_first,
        on_call_end=webhook.notify_call_ended if webhook is not None else None,
    )
    await relay.run()


@router.post("/call-status", response_model=CallStatusResponse)
async def call_status(
    request: Request,
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
) -> CallStatusResponse:
    params = await _twilio_params(request)
    _verify_signature(request, params, settings)

    call_sid = params.get("CallSid", "").strip() or None
    status = params.get("CallStatus", "").strip().lower()
    LOGGER.info("Call status update: call_sid=%s status=%s", call_sid, status or "unknown")

    removed = False
    if call_sid and status in _TERMINAL_CALL_STATUSES:
        removed = await sessions.get(call_sid) is not None
        await sessions.remove(call_sid)

    return CallStatusResponse(call_sid=call_sid, session_removed=removed)

"""Thin text-frame transports over the two WebSocket flavours a call uses.

``CallRelay`` and ``AIBridge`` only talk to the ``Transport`` protocol, so tests
can drive them with in-memory fakes instead of real sockets.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol

import websockets
from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState
from websockets.protocol import State

from relay.errors import TransportClosedError, TransportError

LOGGER = logging.getLogger(__name__)


class Transport(Protocol):
    @property
    def is_open(self) -> bool: ...

    async def send_text(self, data: str) -> None: ...

    async def receive_text(self) -> str:
        """Return the next text frame or raise ``TransportClosedError``."""
        ...

    async def close(self) -> None: ...


RealtimeConnector = Callable[[], Awaitable[Transport]]


class TwilioTransport:
    """Server side of the Twilio Media Streams socket (already accepted)."""

    def __init__(self, websocket: WebSocket) -> None:
        self._ws = websocket

    @property
    def is_open(self) -> bool:
        return (
            self._ws.client_state == WebSocketState.CONNECTED
            and self._ws.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, data: str) -> None:
        try:
            await self._ws.send_text(data)
        except (WebSocketDisconnect, RuntimeError) as exc:
            raise TransportClosedError(str(exc)) from exc

    async def receive_text(self) -> str:
        try:
            message = await self._ws.receive()
        except RuntimeError as exc:
            raise TransportClosedError(str(exc)) from exc
        if message["type"] == "websocket.disconnect":
            raise TransportClosedError(f"Twilio socket closed (code={message.get('code')})")
        if message.get("text") is not None:
            return message["text"]
        # Binary frames are not part of the Media Streams protocol; let the parser reject them.
        return (message.get("bytes") or b"").decode("utf-8", errors="replace")

    async def close(self) -> None:
        if self.is_open:
            await self._ws.close()


class RealtimeTransport:
    """Client connection to the realtime speech AI service."""

    def __init__(self, connection: websockets.ClientConnection) -> None:
        self._conn = connection

    @property
    def is_open(self) -> bool:
        return self._conn.state is State.OPEN

    async def send_text(self, data: str) -> None:
        try:
            await self._conn.send(data)
        except websockets.ConnectionClosed as exc:
            raise TransportClosedError(str(exc)) from exc

    async def receive_text(self) -> str:
        try:
            message = await self._conn.recv()
        except websockets.ConnectionClosed as exc:
            raise TransportClosedError(str(exc)) from exc
        if isinstance(message, bytes):
            return message.decode("utf-8", errors="replace")
        return message

    async def close(self) -> None:
        await self._conn.close()


def build_realtime_connector(url: str, api_key: str) -> RealtimeConnector:
    """Return a coroutine factory opening one realtime connection per call."""

    headers = {
        "Authorization": f"Bearer {api_key}",
        "OpenAI-Beta": "realtime=v1",
    }

    async def connect() -> Transport:
        LOGGER.info("Connecting to realtime AI service: %s", url)
        try:
            connection = await websockets.connect(url, additional_headers=headers)
        except (OSError, asyncio.TimeoutError, websockets.WebSocketException) as exc:
            raise TransportError(f"Realtime connection failed: {exc}") from exc
        return RealtimeTransport(connection)

    return connect

"""In-memory stand-ins for the relay's sockets."""

from __future__ import annotations

import asyncio

from relay.errors import TransportClosedError, TransportError


class FakeTransport:
    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._inbox: asyncio.Queue[str | None] = asyncio.Queue()

    @property
    def is_open(self) -> bool:
        return not self.closed

    async def send_text(self, data: str) -> None:
        if self.closed:
            raise TransportClosedError("fake transport closed")
        self.sent.append(data)

    async def receive_text(self) -> str:
        message = await self._inbox.get()
        if message is None:
            self.closed = True
            raise TransportClosedError("fake transport closed")
        return message

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(None)

    def push(self, message: str) -> None:
        self._inbox.put_nowait(message)

    def hang_up(self) -> None:
        """Simulate the remote peer closing the socket."""

        self._inbox.put_nowait(None)


class FakeConnector:
    """Realtime connector handing out pre-built fake transports."""

    def __init__(self, *transports: FakeTransport, gate: asyncio.Event | None = None) -> None:
        self._transports = list(transports)
        self._gate = gate
        self.calls = 0

    async def __call__(self) -> FakeTransport:
        self.calls += 1
        if self._gate is not None:
            await self._gate.wait()
        return self._transports.pop(0)


class FailingConnector:
    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self) -> FakeTransport:
        self.calls += 1
        raise TransportError("connection refused")


async def wait_until(predicate, *, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")

"""Domain-specific exceptions for the call relay.

These exceptions are safe to import from API layers without pulling in any socket code.
"""

from __future__ import annotations


class RelayError(Exception):
    status_code: int = 500
    default_detail: str = "Relay error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class DuplicateSessionError(RelayError):
    status_code = 409
    default_detail = "A session already exists for this call."


class StreamAlreadyStartedError(RelayError):
    status_code = 409
    default_detail = "The call already has a different media stream."


class FrameParseError(RelayError):
    status_code = 400
    default_detail = "Frame could not be parsed."


class TransportError(RelayError):
    status_code = 502
    default_detail = "Socket transport failed."


class TransportClosedError(TransportError):
    default_detail = "Socket transport is closed."

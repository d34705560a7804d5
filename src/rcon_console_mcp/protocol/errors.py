"""Error types raised by the RCON client."""

from __future__ import annotations


class RconError(Exception):
    """Base class for every error raised by this package."""


class RconConnectionError(RconError, ConnectionError):
    """Socket-level failure: connect, read, write, timeout or peer close."""


class AuthenticationError(RconConnectionError):
    """The server rejected the password (reply id ``-1``)."""


class NotAuthenticatedError(RconConnectionError):
    """A command was issued on a connection that never authenticated."""


class FramingError(RconError):
    """A received frame's declared size disagrees with its actual bytes."""


class CorrelationMismatch(RconError):
    """A reply carried a different id than the request it answers."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(
            f"Reply id {received} does not match request id {expected}"
        )
        self.expected = expected
        self.received = received


class PermissionDenied(RconError):
    """The caller is not allowed to run the requested command."""

    def __init__(self, identity: str, action: str) -> None:
        super().__init__(f"'{identity}' is not allowed to run '{action}'")
        self.identity = identity
        self.action = action

"""Async RCON client with an MCP server front end."""

from .protocol import (
    AuthenticationError,
    CorrelationMismatch,
    FramingError,
    NotAuthenticatedError,
    PacketIdCounter,
    PermissionDenied,
    RconConnectionError,
    RconError,
)
from .session import Session, connect

__version__ = "0.1.0"

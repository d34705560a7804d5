"""Reply interpretation for server packets."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import AuthenticationError, CorrelationMismatch
from .framing import Packet

AUTH_FAILED_ID = -1


@dataclass
class CommandResponse:
    """Text returned by the server for one command."""

    request_id: int
    text: str

    def __repr__(self) -> str:
        return f"CommandResponse(request_id={self.request_id}, text_len={len(self.text)})"


def parse_auth_response(request_id: int, packet: Packet) -> None:
    """Check the reply to an Auth packet.

    Raises:
        AuthenticationError: If the server answered with id ``-1``.
        CorrelationMismatch: If the reply belongs to another request.
    """
    if packet.packet_id == AUTH_FAILED_ID:
        raise AuthenticationError("RCON authentication failed: bad password")
    if packet.packet_id != request_id:
        raise CorrelationMismatch(request_id, packet.packet_id)


def parse_command_response(request_id: int, packet: Packet) -> CommandResponse:
    """Turn the reply to an ExecCommand packet into text.

    Raises:
        CorrelationMismatch: If the reply id is not ``request_id``.
    """
    if packet.packet_id != request_id:
        raise CorrelationMismatch(request_id, packet.packet_id)
    return CommandResponse(request_id=request_id, text=packet.text)

"""Protocol layer: packet framing, id generation, request builders, and reply parsing."""

from .framing import Packet, PacketKind, encode_packet, decode_packet
from .commands import PacketIdCounter, format_command
from .errors import (
    RconError,
    RconConnectionError,
    AuthenticationError,
    NotAuthenticatedError,
    FramingError,
    CorrelationMismatch,
    PermissionDenied,
)

"""Authenticated RCON session handle.

A ``Session`` is what the rest of the application gets to hold. It wraps
an authenticated ``RconConnection`` and adds nothing but a narrower
surface, so any number of tasks may share one instance.
"""

from __future__ import annotations

from .protocol.commands import PacketIdCounter
from .protocol.framing import DEFAULT_MAX_PACKET_SIZE
from .transport.tcp_connection import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    ConnectionState,
    RconConnection,
)


def parse_address(address: str | tuple[str, int]) -> tuple[str, int]:
    """Split ``"host:port"`` (or pass through a ``(host, port)`` tuple).

    A bare host gets the default RCON port. IPv6 literals go in brackets:
    ``"[::1]:25575"``.
    """
    if isinstance(address, tuple):
        host, port = address
        return host, int(port)

    address = address.strip()
    if address.startswith("["):
        host, _, rest = address[1:].partition("]")
        port_text = rest.lstrip(":")
    elif address.count(":") == 1:
        host, _, port_text = address.partition(":")
    else:
        host, port_text = address, ""

    if not host:
        raise ValueError(f"Missing host in address {address!r}")
    if not port_text:
        return host, DEFAULT_PORT
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"Invalid port in address {address!r}") from None
    if not 0 < port < 65536:
        raise ValueError(f"Port must be 1-65535, got {port}")
    return host, port


class Session:
    """Handle on a live, authenticated connection."""

    def __init__(self, connection: RconConnection) -> None:
        self._connection = connection

    @property
    def address(self) -> str:
        return self._connection.address

    @property
    def state(self) -> ConnectionState:
        return self._connection.state

    @property
    def closed(self) -> bool:
        return self._connection.closed

    async def execute(self, command: str) -> str:
        """Run one console command and return the reply text.

        Permission checks are the caller's job; this sends whatever it is
        given.
        """
        return await self._connection.execute_command(command)

    async def close(self) -> None:
        await self._connection.close()

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"Session(address={self.address!r}, state={self.state.value})"


async def connect(
    address: str | tuple[str, int],
    password: str,
    *,
    counter: PacketIdCounter | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    max_packet_size: int = DEFAULT_MAX_PACKET_SIZE,
) -> Session:
    """Connect to ``address`` and authenticate with ``password``.

    Raises:
        RconConnectionError: On socket failure or failed handshake
            (``AuthenticationError`` when the password is rejected).
    """
    host, port = parse_address(address)
    connection = await RconConnection.connect(
        host,
        port,
        password,
        counter=counter,
        timeout=timeout,
        max_packet_size=max_packet_size,
    )
    return Session(connection)

"""TCP connection to an RCON server.

One ``RconConnection`` owns one asyncio stream pair. The protocol has no
pipelining, so every request/reply exchange runs under a single lock that
is held across both the write and the read. A connection that hits any
I/O, framing or correlation failure is closed for good; reconnecting
means building a new one.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from ..protocol.commands import (
    PacketIdCounter,
    build_auth_request,
    build_exec_request,
)
from ..protocol.errors import (
    CorrelationMismatch,
    FramingError,
    NotAuthenticatedError,
    RconConnectionError,
    RconError,
)
from ..protocol.framing import (
    DEFAULT_MAX_PACKET_SIZE,
    Packet,
    decode_packet,
    read_packet,
)
from ..protocol.parser import parse_auth_response, parse_command_response

logger = logging.getLogger(__name__)

DEFAULT_PORT = 25575
DEFAULT_TIMEOUT = 5.0


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


class RconConnection:
    """Manages the TCP stream to one RCON server.

    Usage::

        conn = RconConnection("127.0.0.1", 25575)
        await conn.open()
        await conn.authenticate("secret")
        text = await conn.execute_command("/list")
        await conn.close()
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        *,
        counter: PacketIdCounter | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_packet_size: int = DEFAULT_MAX_PACKET_SIZE,
    ) -> None:
        self._host = host
        self._port = port
        self._counter = counter
        self._timeout = timeout
        self._max_packet_size = max_packet_size
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._state = ConnectionState.DISCONNECTED
        self._lock = asyncio.Lock()

    @classmethod
    async def connect(
        cls,
        host: str,
        port: int,
        password: str,
        **kwargs,
    ) -> RconConnection:
        """Open a connection and authenticate it.

        Raises:
            RconConnectionError: If the socket cannot be opened or the
                handshake fails. The connection is closed in that case.
        """
        conn = cls(host, port, **kwargs)
        await conn.open()
        try:
            await conn.authenticate(password)
        except BaseException:
            await conn.close()
            raise
        return conn

    @property
    def address(self) -> str:
        return f"{self._host}:{self._port}"

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def authenticated(self) -> bool:
        return self._state is ConnectionState.AUTHENTICATED

    @property
    def closed(self) -> bool:
        return self._state is ConnectionState.CLOSED

    async def open(self) -> None:
        """Open the TCP stream.

        Raises:
            RconConnectionError: If the connection cannot be established.
        """
        if self._state is not ConnectionState.DISCONNECTED:
            raise RconConnectionError(
                f"Cannot open a connection in state {self._state.value}"
            )

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                self._timeout,
            )
        except asyncio.TimeoutError as e:
            self._state = ConnectionState.CLOSED
            raise RconConnectionError(
                f"Timed out connecting to {self.address}"
            ) from e
        except OSError as e:
            self._state = ConnectionState.CLOSED
            raise RconConnectionError(
                f"Could not connect to {self.address}: {e}"
            ) from e

        self._state = ConnectionState.CONNECTED
        logger.info("Connected to %s", self.address)

    async def authenticate(self, password: str) -> None:
        """Run the Auth handshake.

        Raises:
            AuthenticationError: If the server rejects the password.
            RconConnectionError: On any transport failure.
        """
        async with self._lock:
            if self._state is not ConnectionState.CONNECTED:
                raise RconConnectionError(
                    f"Cannot authenticate in state {self._state.value}"
                )
            request_id, data = build_auth_request(password, self._counter)
            packet = await self._exchange(request_id, data, redact=True)
            try:
                parse_auth_response(request_id, packet)
            except RconError as e:
                self._poison(str(e))
                raise
            self._state = ConnectionState.AUTHENTICATED
            logger.info("Authenticated with %s", self.address)

    async def execute_command(self, command: str) -> str:
        """Send one console command and return the server's reply text.

        Raises:
            NotAuthenticatedError: If the handshake has not completed.
            RconConnectionError: On I/O failure, or if already closed.
            FramingError: If the reply frame is malformed.
            CorrelationMismatch: If the reply id differs from the request id.
        """
        self._check_usable()
        async with self._lock:
            self._check_usable()
            if self._state is not ConnectionState.AUTHENTICATED:
                raise NotAuthenticatedError(
                    "Connection is not authenticated"
                )
            request_id, data = build_exec_request(command, self._counter)
            packet = await self._exchange(request_id, data)
            try:
                response = parse_command_response(request_id, packet)
            except CorrelationMismatch as e:
                self._poison(str(e))
                raise
            return response.text

    async def close(self) -> None:
        """Close the stream. Safe to call more than once."""
        self._state = ConnectionState.CLOSED
        writer, self._writer, self._reader = self._writer, None, None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.warning("Error closing connection to %s: %s", self.address, e)
        logger.info("Disconnected from %s", self.address)

    async def __aenter__(self) -> RconConnection:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _check_usable(self) -> None:
        if self._state is ConnectionState.CLOSED:
            raise RconConnectionError(f"Connection to {self.address} is closed")

    async def _exchange(
        self, request_id: int, data: bytes, redact: bool = False
    ) -> Packet:
        """Write one request and read one reply. Caller holds the lock.

        Any failure, timeout or cancellation in here closes the connection:
        bytes may already be on the wire, so the stream can no longer be
        trusted to start at a frame boundary.
        """
        if redact:
            logger.debug("Sending packet id=%d (%d bytes)", request_id, len(data))
        else:
            logger.debug("Sending %s", data.hex(" "))

        try:
            return await asyncio.wait_for(self._send_and_receive(data), self._timeout)
        except asyncio.TimeoutError as e:
            self._poison("timed out waiting for reply")
            raise RconConnectionError(
                f"Timed out waiting for reply to packet {request_id}"
            ) from e
        except asyncio.CancelledError:
            self._poison("exchange cancelled")
            raise
        except FramingError as e:
            self._poison(str(e))
            raise
        except asyncio.IncompleteReadError as e:
            self._poison("closed by peer")
            raise RconConnectionError(
                f"Connection closed by {self.address} mid-read"
            ) from e
        except OSError as e:
            self._poison(str(e))
            raise RconConnectionError(
                f"I/O error talking to {self.address}: {e}"
            ) from e

    async def _send_and_receive(self, data: bytes) -> Packet:
        self._writer.write(data)
        await self._writer.drain()
        raw = await read_packet(self._reader, self._max_packet_size)
        logger.debug("Received %s", raw.hex(" "))
        return decode_packet(raw)

    def _poison(self, reason: str) -> None:
        logger.warning("Closing connection to %s: %s", self.address, reason)
        self._state = ConnectionState.CLOSED
        if self._writer is not None:
            self._writer.close()

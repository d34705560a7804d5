"""Shared pytest fixtures.

``FakeRconServer`` is a small in-process RCON server built on
``asyncio.start_server``. It reads frames as soon as they arrive and
answers them one by one, logging ``("recv", id)`` and ``("send", id)``
events so tests can see whether requests overlapped on the wire.
"""

from __future__ import annotations

import asyncio
import socket
from typing import Callable

import pytest

from rcon_console_mcp.protocol.framing import (
    PacketKind,
    decode_packet,
    encode_packet,
    read_packet,
)
from rcon_console_mcp.protocol.parser import AUTH_FAILED_ID


class FakeRconServer:
    def __init__(
        self,
        password: str = "secret",
        respond: Callable[[str], str] | None = None,
        delay: float = 0.0,
        reply_id_offset: int = 0,
        close_on_command: bool = False,
        raw_reply: bytes | None = None,
    ) -> None:
        self.password = password
        self.respond = respond or (lambda text: f"echo: {text}")
        self.delay = delay
        self.reply_id_offset = reply_id_offset
        self.close_on_command = close_on_command
        self.raw_reply = raw_reply
        self.events: list[tuple[str, int]] = []
        self.received = []
        self.host = "127.0.0.1"
        self.port = 0
        self._server: asyncio.AbstractServer | None = None

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    async def __aenter__(self) -> FakeRconServer:
        self._server = await asyncio.start_server(self._handle, self.host, 0)
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def __aexit__(self, *exc_info) -> None:
        self._server.close()
        await self._server.wait_closed()

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        queue: asyncio.Queue = asyncio.Queue()

        async def pump() -> None:
            try:
                while True:
                    packet = decode_packet(await read_packet(reader))
                    self.events.append(("recv", packet.packet_id))
                    self.received.append(packet)
                    await queue.put(packet)
            except (asyncio.IncompleteReadError, ConnectionError):
                await queue.put(None)

        pump_task = asyncio.create_task(pump())
        try:
            while True:
                packet = await queue.get()
                if packet is None:
                    break
                if packet.kind == PacketKind.AUTH:
                    ok = packet.text == self.password
                    reply_id = packet.packet_id if ok else AUTH_FAILED_ID
                    self.events.append(("send", packet.packet_id))
                    writer.write(encode_packet(reply_id, PacketKind.AUTH_RESPONSE))
                else:
                    if self.close_on_command:
                        break
                    if self.delay:
                        await asyncio.sleep(self.delay)
                    self.events.append(("send", packet.packet_id))
                    if self.raw_reply is not None:
                        writer.write(self.raw_reply)
                    else:
                        reply_id = packet.packet_id + self.reply_id_offset
                        body = self.respond(packet.text)
                        writer.write(encode_packet(reply_id, PacketKind.RESPONSE_VALUE, body))
                await writer.drain()
        except ConnectionError:
            pass
        finally:
            pump_task.cancel()
            writer.close()


@pytest.fixture
def fake_server() -> type[FakeRconServer]:
    """Factory for in-process RCON servers: ``async with fake_server() as s``."""
    return FakeRconServer


@pytest.fixture
def unused_port() -> int:
    """A local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]

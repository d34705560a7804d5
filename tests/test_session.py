"""Tests for the Session handle and connect()."""

import asyncio

import pytest

from rcon_console_mcp import AuthenticationError, RconConnectionError, Session, connect
from rcon_console_mcp.protocol.commands import PacketIdCounter
from rcon_console_mcp.session import parse_address
from rcon_console_mcp.transport.tcp_connection import DEFAULT_PORT, ConnectionState


@pytest.mark.parametrize(
    "address, expected",
    [
        ("127.0.0.1:25575", ("127.0.0.1", 25575)),
        ("mc.example.com:27015", ("mc.example.com", 27015)),
        ("localhost", ("localhost", DEFAULT_PORT)),
        ("[::1]:25580", ("::1", 25580)),
        ("::1", ("::1", DEFAULT_PORT)),
        (("10.0.0.2", "25575"), ("10.0.0.2", 25575)),
    ],
)
def test_parse_address(address, expected):
    """host:port strings and tuples resolve to (host, port)."""
    assert parse_address(address) == expected


@pytest.mark.parametrize("address", [":25575", "host:abc", "host:0", "host:70000"])
def test_parse_address_invalid(address):
    """Missing hosts and bad ports are rejected."""
    with pytest.raises(ValueError):
        parse_address(address)


@pytest.mark.asyncio
async def test_connect_returns_authenticated_session(fake_server):
    """connect() hands back a ready Session."""
    async with fake_server() as server:
        async with await connect(server.address, server.password) as session:
            assert isinstance(session, Session)
            assert session.state is ConnectionState.AUTHENTICATED
            assert await session.execute("/time query daytime") == "echo: /time query daytime"
        assert session.closed


@pytest.mark.asyncio
async def test_connect_bad_password(fake_server):
    """Rejected credentials are a distinct, still connection-level, error."""
    async with fake_server(password="right") as server:
        with pytest.raises(AuthenticationError) as exc:
            await connect(server.address, "wrong")
        assert isinstance(exc.value, RconConnectionError)


@pytest.mark.asyncio
async def test_connect_refused(unused_port):
    """Socket failures surface as RconConnectionError."""
    with pytest.raises(RconConnectionError):
        await connect(f"127.0.0.1:{unused_port}", "pw")


@pytest.mark.asyncio
async def test_shared_session(fake_server):
    """Many tasks sharing one Session each get their own reply."""
    async with fake_server(delay=0.01) as server:
        async with await connect(server.address, server.password) as session:
            replies = await asyncio.gather(
                *(session.execute(f"/say {n}") for n in range(10))
            )
    assert replies == [f"echo: /say {n}" for n in range(10)]


@pytest.mark.asyncio
async def test_ids_unique_across_sessions(fake_server):
    """Two sessions on one counter never reuse an id."""
    counter = PacketIdCounter(start=500)
    async with fake_server() as server:
        async with await connect(server.address, server.password, counter=counter) as a:
            async with await connect(server.address, server.password, counter=counter) as b:
                await a.execute("/a")
                await b.execute("/b")
    ids = [p.packet_id for p in server.received]
    assert sorted(ids) == list(range(500, 504))


@pytest.mark.asyncio
async def test_session_repr(fake_server):
    """repr names the address and state."""
    async with fake_server() as server:
        async with await connect(server.address, server.password) as session:
            r = repr(session)
    assert server.address in r
    assert "authenticated" in r

"""Transport layer: the asyncio TCP connection to an RCON server."""

from .tcp_connection import ConnectionState, RconConnection

"""MCP server entry point for RCON game-server consoles.

Exposes tools and resources via the Model Context Protocol using the
official Python MCP SDK with stdio transport. Connection defaults and
per-identity command grants come from the environment (see ``config``).
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .config import RconSettings
from .permissions import ADMIN, StaticPermissions, check_permission
from .protocol.commands import command_name, format_command
from .protocol.errors import PermissionDenied, RconError
from .session import Session, connect as rcon_connect

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY = "admin"

mcp = FastMCP(
    "rcon-console",
    instructions="Send console commands to game servers over RCON",
)

# Global connection state
_session: Session | None = None
_settings: RconSettings | None = None
_policy: StaticPermissions | None = None
_connect_lock = asyncio.Lock()


def _get_settings() -> RconSettings:
    global _settings
    if _settings is None:
        _settings = RconSettings.from_env()
    return _settings


def _get_policy() -> StaticPermissions:
    global _policy
    if _policy is None:
        # Without RCON_PERMISSIONS the default identity is the super user.
        grants = _get_settings().permissions or {DEFAULT_IDENTITY: {ADMIN}}
        _policy = StaticPermissions(grants)
    return _policy


def _get_session() -> Session:
    """Get the active RCON session, raising if not connected."""
    if _session is None or _session.closed:
        raise RuntimeError(
            "Not connected to a server. Use the 'connect' tool first."
        )
    return _session


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
async def connect(
    host: str | None = None,
    port: int | None = None,
    password: str | None = None,
) -> dict[str, Any]:
    """Connect and authenticate to an RCON server.

    Missing arguments fall back to RCON_HOST, RCON_PORT and RCON_PASSWORD.

    Args:
        host: Server host name or address.
        port: RCON port (default 25575).
        password: RCON password.
    """
    global _session
    async with _connect_lock:
        if _session is not None and not _session.closed:
            return {
                "connected": True,
                "message": "Already connected",
                "address": _session.address,
            }

        settings = _get_settings()
        password = password if password is not None else settings.password
        if not password:
            return {"error": "No password given and RCON_PASSWORD is not set"}

        address = (host or settings.host, port or settings.port)
        try:
            _session = await rcon_connect(
                address,
                password,
                timeout=settings.timeout,
                max_packet_size=settings.max_packet_size,
            )
        except RconError as e:
            logger.warning("Connect to %s:%s failed: %s", *address, e)
            return {"connected": False, "error": str(e)}

        return {"connected": True, "address": _session.address}


@mcp.tool()
async def disconnect() -> dict[str, bool]:
    """Close the RCON connection."""
    global _session
    async with _connect_lock:
        if _session is not None:
            await _session.close()
            _session = None
    return {"disconnected": True}


@mcp.tool()
def status() -> dict[str, Any]:
    """Report the connection state and active settings."""
    result: dict[str, Any] = {"settings": _get_settings().to_dict()}
    if _session is None:
        result["state"] = "disconnected"
    else:
        result["state"] = _session.state.value
        result["address"] = _session.address
    return result


# ─── COMMAND TOOLS ────────────────────────────────────────────────────

@mcp.tool()
async def execute(
    command: str,
    args: list[str] | None = None,
    identity: str = DEFAULT_IDENTITY,
) -> dict[str, Any]:
    """Run a console command on the connected server.

    The identity is taken as given: the MCP client is trusted to name its
    user. Grants come from RCON_PERMISSIONS; when that is unset the
    default identity "admin" may run every command.

    Args:
        command: Command name, e.g. 'say' or 'list'.
        args: Command arguments, joined with spaces.
        identity: Who is asking; checked against the grants.
    """
    try:
        line = format_command(command, args or [])
    except ValueError as e:
        return {"error": str(e)}

    try:
        check_permission(_get_policy(), identity, command_name(line))
    except PermissionDenied as e:
        return {"error": str(e), "denied": True}

    session = _get_session()
    try:
        response = await session.execute(line)
    except RconError as e:
        return {"error": str(e), "state": session.state.value}

    return {"command": line, "response": response}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("rcon://connection/status")
def resource_connection_status() -> str:
    """Current connection state (no secrets)."""
    return json.dumps(status())


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

"""Environment-driven settings.

=====================  ===========  ==========================================
Variable               Default      Meaning
=====================  ===========  ==========================================
RCON_HOST              127.0.0.1    Server host
RCON_PORT              25575        Server RCON port
RCON_PASSWORD          (unset)      Password; needed to connect without args
RCON_TIMEOUT           5.0          Seconds per connect / exchange
RCON_MAX_PACKET_SIZE   4106         Largest accepted reply frame
RCON_PERMISSIONS       (unset)      ``alice=say,list;root=admin``
=====================  ===========  ==========================================
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

from .protocol.framing import DEFAULT_MAX_PACKET_SIZE, MIN_DECLARED_SIZE
from .transport.tcp_connection import DEFAULT_PORT, DEFAULT_TIMEOUT

DEFAULT_HOST = "127.0.0.1"


@dataclass
class RconSettings:
    """Connection and authorization settings."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    password: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    max_packet_size: int = DEFAULT_MAX_PACKET_SIZE
    permissions: dict[str, set[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError(f"RCON port must be 1-65535, got {self.port}")
        if self.timeout <= 0:
            raise ValueError(f"RCON timeout must be positive, got {self.timeout}")
        if self.max_packet_size < MIN_DECLARED_SIZE:
            raise ValueError(
                f"Max packet size must be at least {MIN_DECLARED_SIZE}, "
                f"got {self.max_packet_size}"
            )

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def to_dict(self) -> dict:
        """Settings without the password, for display."""
        return {
            "host": self.host,
            "port": self.port,
            "password_set": bool(self.password),
            "timeout": self.timeout,
            "max_packet_size": self.max_packet_size,
            "identities": sorted(self.permissions),
        }

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RconSettings:
        env = os.environ if environ is None else environ
        try:
            port = int(env.get("RCON_PORT", DEFAULT_PORT))
            timeout = float(env.get("RCON_TIMEOUT", DEFAULT_TIMEOUT))
            max_packet_size = int(
                env.get("RCON_MAX_PACKET_SIZE", DEFAULT_MAX_PACKET_SIZE)
            )
        except ValueError as e:
            raise ValueError(f"Invalid RCON setting: {e}") from e
        return cls(
            host=env.get("RCON_HOST", DEFAULT_HOST),
            port=port,
            password=env.get("RCON_PASSWORD") or None,
            timeout=timeout,
            max_packet_size=max_packet_size,
            permissions=parse_permissions(env.get("RCON_PERMISSIONS", "")),
        )


def parse_permissions(text: str) -> dict[str, set[str]]:
    """Parse ``"alice=say,list;root=admin"`` into identity -> command set.

    >>> parse_permissions("alice=say")
    {'alice': {'say'}}
    """
    grants: dict[str, set[str]] = {}
    for entry in text.split(";"):
        entry = entry.strip()
        if not entry:
            continue
        identity, sep, commands = entry.partition("=")
        identity = identity.strip()
        if not sep or not identity:
            raise ValueError(f"Invalid permission entry: {entry!r}")
        names = {c.strip().lstrip("/").lower() for c in commands.split(",")}
        grants.setdefault(identity, set()).update(n for n in names if n)
    return grants

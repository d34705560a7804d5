"""Packet id generation and request builders.

Every outbound packet takes its id from a ``PacketIdCounter``. One
counter is shared by the whole process unless a caller injects its own,
so ids never repeat across connections.
"""

from __future__ import annotations

import threading

from .framing import PacketKind, encode_packet

INT32_MAX = 2**31 - 1


class PacketIdCounter:
    """Strictly increasing int32 id source, safe to share across threads."""

    def __init__(self, start: int = 0) -> None:
        if not 0 <= start <= INT32_MAX:
            raise ValueError(f"Start id must be 0-{INT32_MAX}, got {start}")
        self._next = start
        self._lock = threading.Lock()

    def next_id(self) -> int:
        """Return a fresh id.

        Raises:
            OverflowError: Once the int32 range is used up. Ids are never
                reused, so the counter does not wrap.
        """
        with self._lock:
            value = self._next
            if value > INT32_MAX:
                raise OverflowError("Packet id space exhausted")
            self._next = value + 1
            return value

    def peek(self) -> int:
        """The id the next call to ``next_id`` will hand out."""
        with self._lock:
            return self._next


default_counter = PacketIdCounter()


def build_auth_request(
    password: str, counter: PacketIdCounter | None = None
) -> tuple[int, bytes]:
    """Build an Auth packet carrying the password.

    Returns:
        ``(packet_id, wire_bytes)``.
    """
    packet_id = (counter or default_counter).next_id()
    return packet_id, encode_packet(packet_id, PacketKind.AUTH, password)


def build_exec_request(
    command: str, counter: PacketIdCounter | None = None
) -> tuple[int, bytes]:
    """Build an ExecCommand packet for one console line."""
    packet_id = (counter or default_counter).next_id()
    return packet_id, encode_packet(packet_id, PacketKind.EXEC_COMMAND, command)


def format_command(name: str, args: list[str] | tuple[str, ...] = ()) -> str:
    """Join a command name and its arguments into a console line.

    >>> format_command("say", ["hello", "world"])
    '/say hello world'

    Args:
        name: Command name, with or without a leading slash.
        args: Positional arguments, appended space-separated.
    """
    name = name.strip().lstrip("/")
    if not name or any(c.isspace() for c in name):
        raise ValueError(f"Invalid command name: {name!r}")
    parts = [f"/{name}", *(str(a) for a in args)]
    line = " ".join(p for p in parts if p)
    if any(c in line for c in ("\n", "\r", "\x00")):
        raise ValueError("Command line must not contain newlines or NUL bytes")
    return line


def command_name(line: str) -> str:
    """Extract the bare command name from a console line.

    >>> command_name("/say hello")
    'say'
    """
    head = line.strip().split(maxsplit=1)
    return head[0].lstrip("/").lower() if head else ""

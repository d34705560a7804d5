"""Command permission checks.

The RCON client itself never authorizes anything. Callers that expose it
to several users check a ``PermissionPolicy`` first and only then hand the
command to ``Session.execute``.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Protocol

from .protocol.errors import PermissionDenied

logger = logging.getLogger(__name__)

ADMIN = "admin"


class PermissionPolicy(Protocol):
    def has_permission(self, identity: str, action: str) -> bool: ...


class StaticPermissions:
    """In-memory grants: identity -> set of allowed command names.

    Holding the ``admin`` grant allows every command.
    """

    def __init__(self, grants: Mapping[str, Iterable[str]] | None = None) -> None:
        self._grants: dict[str, set[str]] = {}
        for identity, actions in (grants or {}).items():
            self.grant(identity, *actions)

    def grant(self, identity: str, *actions: str) -> None:
        names = {a.strip().lstrip("/").lower() for a in actions}
        self._grants.setdefault(identity, set()).update(n for n in names if n)

    def revoke(self, identity: str, *actions: str) -> None:
        current = self._grants.get(identity)
        if current is None:
            return
        current.difference_update(a.lstrip("/").lower() for a in actions)

    def has_permission(self, identity: str, action: str) -> bool:
        granted = self._grants.get(identity, set())
        return ADMIN in granted or action.lstrip("/").lower() in granted


def check_permission(policy: PermissionPolicy, identity: str, action: str) -> None:
    """Raise ``PermissionDenied`` unless ``identity`` may run ``action``."""
    if not policy.has_permission(identity, action):
        logger.info("Denied '%s' for '%s'", action, identity)
        raise PermissionDenied(identity, action)

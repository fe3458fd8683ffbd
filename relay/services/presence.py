"""Presence fan-out to every live connection."""
from __future__ import annotations

import logging

from ..schemas.signaling import UserEntry
from .registry import ConnectionRegistry, Identity

logger = logging.getLogger(__name__)


def users_payload(identities: list[Identity]) -> list[dict]:
    return [
        UserEntry(username=identity.display_name, connection_id=identity.connection_id).model_dump()
        for identity in identities
    ]


class PresenceBroadcaster:
    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    def broadcast(self) -> None:
        """Send the current presence snapshot to all live connections."""

        self._emit_all({"type": "users_updated", "users": users_payload(self._registry.snapshot())})

    def announce_departure(self, connection_id: str) -> None:
        self._emit_all({"type": "user-disconnected", "connection_id": connection_id})

    def _emit_all(self, message: dict) -> None:
        for connection in self._registry.connections():
            try:
                connection.send(dict(message))
            except Exception:  # noqa: BLE001 - one bad link must not stop the fan-out
                logger.exception("Failed to emit %s to %s", message["type"], connection.connection_id)

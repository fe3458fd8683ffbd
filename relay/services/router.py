"""Best-effort forwarding of addressed signaling messages."""
from __future__ import annotations

import logging
from typing import Any

from ..schemas.signaling import SIGNAL_KINDS
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class SignalingRouter:
    """Deliver opaque payloads to a target connection, dropping them if it is gone.

    Nothing is queued for absent peers and the sender is never told about a
    drop.
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    def forward(self, sender_id: str, kind: str, target: str, payload: Any) -> bool:
        field_name = SIGNAL_KINDS.get(kind)
        if field_name is None:
            raise ValueError(f"unsupported signal kind: {kind!r}")

        message = {"type": kind, field_name: payload, "from": sender_id}
        return self._deliver(sender_id, target, message)

    def forward_status(self, sender_id: str, target: str, status: str) -> bool:
        message = {"type": "peer-connection-status", "from": sender_id, "status": status}
        return self._deliver(sender_id, target, message)

    def _deliver(self, sender_id: str, target: str, message: dict) -> bool:
        connection = self._registry.connection(target)
        if connection is None:
            logger.debug("Dropping %s from %s: target %s is not connected", message["type"], sender_id, target)
            return False

        identity = self._registry.lookup(sender_id)
        if identity is not None:
            message["username"] = identity.display_name

        try:
            connection.send(message)
        except Exception:  # noqa: BLE001 - delivery is fire-and-forget
            logger.exception("Failed to emit %s to %s", message["type"], target)
            return False
        return True

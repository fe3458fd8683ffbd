"""In-memory registry of live signaling connections and their identities."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

SendCallable = Callable[[dict], None]
CloseCallable = Callable[[], None]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class SignalingConnection:
    """Connection wrapper for signaling participants.

    ``send`` hands one outbound event to the transport without waiting for
    delivery. ``close`` asks the transport to drop the link.
    """

    connection_id: str
    send: SendCallable
    close: Optional[CloseCallable] = None
    remote_address: Optional[str] = None
    connected_at: datetime = field(default_factory=utcnow)
    last_heartbeat: Optional[datetime] = None
    offers: deque = field(default_factory=lambda: deque(maxlen=50))
    answers: deque = field(default_factory=lambda: deque(maxlen=50))


@dataclass(slots=True)
class Identity:
    connection_id: str
    display_name: str


class ConnectionRegistry:
    """Track live connections and the identity each one registered."""

    def __init__(self) -> None:
        self._connections: Dict[str, SignalingConnection] = {}
        self._identities: Dict[str, Identity] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def add(self, connection: SignalingConnection) -> None:
        if connection.connection_id in self._connections:
            raise ValueError(f"connection {connection.connection_id!r} is already live")
        self._connections[connection.connection_id] = connection

    def register(self, connection_id: str, display_name: str) -> Optional[Identity]:
        """Attach or overwrite the identity of a live connection.

        Returns ``None`` when the connection is not live.
        """

        if connection_id not in self._connections:
            return None
        identity = self._identities.get(connection_id)
        if identity is None:
            identity = Identity(connection_id=connection_id, display_name=display_name)
            self._identities[connection_id] = identity
        else:
            identity.display_name = display_name
        return identity

    def lookup(self, connection_id: str) -> Optional[Identity]:
        return self._identities.get(connection_id)

    def connection(self, connection_id: str) -> Optional[SignalingConnection]:
        return self._connections.get(connection_id)

    def connections(self) -> list[SignalingConnection]:
        return list(self._connections.values())

    def remove(self, connection_id: str) -> Optional[SignalingConnection]:
        """Drop the connection and its identity. Removing an absent id is a no-op."""

        self._identities.pop(connection_id, None)
        return self._connections.pop(connection_id, None)

    def snapshot(self) -> list[Identity]:
        """Registered identities in registration order."""

        return [Identity(i.connection_id, i.display_name) for i in self._identities.values()]

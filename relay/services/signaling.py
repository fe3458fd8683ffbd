"""Session lifecycle for the signaling relay.

Every transport event lands on :class:`SignalingManager`, which mutates the
registry and emits outbound events in one synchronous step. Outbound
``send`` calls never block, so a handler always runs to completion before the
event loop picks up the next frame or sweep tick, and no lock is needed.
"""
from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timedelta
from typing import Callable, Optional

from pydantic import ValidationError

from ..core.config import Settings
from ..schemas import signaling as schemas
from .liveness import LivenessTracker
from .presence import PresenceBroadcaster
from .registry import ConnectionRegistry, SignalingConnection, utcnow
from .router import SignalingRouter

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class SignalingManager:
    """Own the relay state and dispatch connection events into it."""

    def __init__(
        self,
        *,
        stale_after: timedelta = timedelta(minutes=10),
        heartbeatless_grace: Optional[timedelta] = timedelta(minutes=10),
        history_limit: int = 50,
        clock: Clock = utcnow,
    ) -> None:
        self.registry = ConnectionRegistry()
        self.liveness = LivenessTracker(
            self.registry, stale_after=stale_after, heartbeatless_grace=heartbeatless_grace
        )
        self.router = SignalingRouter(self.registry)
        self.presence = PresenceBroadcaster(self.registry)
        self._history_limit = history_limit
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "SignalingManager":
        return cls(
            stale_after=timedelta(seconds=settings.stale_after_seconds),
            heartbeatless_grace=timedelta(seconds=settings.heartbeatless_grace_seconds),
            history_limit=settings.signal_history_limit,
        )

    def connect(self, connection: SignalingConnection) -> None:
        """Track a freshly accepted connection and tell it its id."""

        connection.connected_at = self._clock()
        connection.offers = deque(maxlen=self._history_limit)
        connection.answers = deque(maxlen=self._history_limit)
        self.registry.add(connection)
        logger.info("New connection %s from %s", connection.connection_id, connection.remote_address)
        connection.send({"type": "connected", "connection_id": connection.connection_id})

    def handle_message(self, connection_id: str, message: object) -> None:
        """Validate and dispatch one inbound frame.

        Malformed frames and handler failures are logged and dropped; they
        never propagate to the transport loop.
        """

        if connection_id not in self.registry:
            logger.debug("Ignoring frame from unknown connection %s", connection_id)
            return

        try:
            parsed = schemas.parse_inbound(message)
        except ValidationError as exc:
            logger.warning(
                "Dropping malformed message from %s: %s",
                connection_id,
                exc.errors(include_url=False, include_input=False),
            )
            return

        now = self._clock()
        self.liveness.on_heartbeat(connection_id, now)

        try:
            self._dispatch(connection_id, parsed, now)
        except Exception:  # noqa: BLE001 - one bad frame must not take down the relay
            logger.exception("Failed handling %s from %s", parsed.type, connection_id)

    def register(self, connection_id: str, display_name: str) -> bool:
        identity = self.registry.register(connection_id, display_name)
        if identity is None:
            return False
        logger.info("User %s registered with connection id %s", display_name, connection_id)
        self.presence.broadcast()
        return True

    def heartbeat(self, connection_id: str) -> bool:
        return self.liveness.on_heartbeat(connection_id, self._clock())

    def disconnect(self, connection_id: str) -> bool:
        """Tear down a connection the transport reported as gone."""

        if connection_id not in self.registry:
            return False
        identity = self.registry.lookup(connection_id)
        logger.info("User disconnected: %s", identity.display_name if identity else connection_id)

        self.registry.remove(connection_id)
        self.presence.announce_departure(connection_id)
        self.presence.broadcast()
        return True

    def sweep(self, now: Optional[datetime] = None) -> list[str]:
        """Evict stale connections and return their ids."""

        now = now or self._clock()
        evicted: list[str] = []
        for connection_id in self.liveness.stale_connections(now):
            connection = self.registry.remove(connection_id)
            if connection is None:
                continue
            logger.info("Removing stale connection: %s", connection_id)
            evicted.append(connection_id)
            if connection.close is not None:
                try:
                    connection.close()
                except Exception:  # noqa: BLE001
                    logger.exception("Failed closing stale connection %s", connection_id)
        if evicted:
            self.presence.broadcast()
        return evicted

    def describe(self) -> list[dict]:
        """Debug view of every live connection."""

        view = []
        for connection in self.registry.connections():
            identity = self.registry.lookup(connection.connection_id)
            view.append(
                {
                    "connection_id": connection.connection_id,
                    "username": identity.display_name if identity else None,
                    "remote_address": connection.remote_address,
                    "connected_at": connection.connected_at.isoformat(),
                    "last_heartbeat": connection.last_heartbeat.isoformat() if connection.last_heartbeat else None,
                    "offers": list(connection.offers),
                    "answers": list(connection.answers),
                }
            )
        return view

    def _dispatch(self, connection_id: str, message: schemas.InboundMessage, now: datetime) -> None:
        if isinstance(message, schemas.RegisterMessage):
            self.register(connection_id, message.username)
        elif isinstance(message, (schemas.OfferMessage, schemas.AnswerMessage, schemas.IceCandidateMessage)):
            self._forward_signal(connection_id, message, now)
        elif isinstance(message, schemas.ConnectionStatusMessage):
            self._connection_status(connection_id, message)
        elif isinstance(message, schemas.HeartbeatMessage):
            # Activity already refreshed the heartbeat above.
            pass

    def _forward_signal(self, connection_id: str, message: schemas.SignalMessage, now: datetime) -> None:
        field_name = schemas.SIGNAL_KINDS[message.type]
        logger.info(
            "%s from %s to %s", message.type, self._label(connection_id), self._label(message.target)
        )
        if message.type == "offer":
            self._record(connection_id, "offers", message.target, now)
        elif message.type == "answer":
            self._record(connection_id, "answers", message.target, now)
        self.router.forward(connection_id, message.type, message.target, getattr(message, field_name))

    def _connection_status(self, connection_id: str, message: schemas.ConnectionStatusMessage) -> None:
        logger.info("Connection status from %s: %s", self._label(connection_id), message.status)
        if not message.target:
            return
        if message.status == "connected":
            logger.info(
                "Successful connection between %s and %s",
                self._label(connection_id),
                self._label(message.target),
            )
        self.router.forward_status(connection_id, message.target, message.status)

    def _record(self, connection_id: str, kind: str, target: str, now: datetime) -> None:
        connection = self.registry.connection(connection_id)
        if connection is not None:
            getattr(connection, kind).append({"to": target, "timestamp": now.isoformat()})

    def _label(self, connection_id: str) -> str:
        identity = self.registry.lookup(connection_id)
        return identity.display_name if identity else connection_id

"""Heartbeat bookkeeping and the periodic stale-connection sweep."""
from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from datetime import datetime, timedelta
from typing import Callable, Optional

from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class LivenessTracker:
    """Classify registry connections as active or stale.

    A connection is stale once its last heartbeat is older than
    ``stale_after``. Connections that never sent anything are only
    considered stale when ``heartbeatless_grace`` is set, measured from
    ``connected_at``.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        *,
        stale_after: timedelta = timedelta(minutes=10),
        heartbeatless_grace: Optional[timedelta] = timedelta(minutes=10),
    ) -> None:
        self._registry = registry
        self.stale_after = stale_after
        self.heartbeatless_grace = heartbeatless_grace or None

    def on_heartbeat(self, connection_id: str, now: datetime) -> bool:
        connection = self._registry.connection(connection_id)
        if connection is None:
            return False
        connection.last_heartbeat = now
        return True

    def stale_connections(self, now: datetime) -> list[str]:
        stale: list[str] = []
        for connection in self._registry.connections():
            if connection.last_heartbeat is not None:
                if now - connection.last_heartbeat > self.stale_after:
                    stale.append(connection.connection_id)
            elif self.heartbeatless_grace is not None:
                if now - connection.connected_at > self.heartbeatless_grace:
                    stale.append(connection.connection_id)
        return stale


class PeriodicSweeper:
    """Run ``sweep`` every ``interval`` seconds on the running event loop.

    ``sweep`` is synchronous, so a cycle always finishes before the next
    sleep starts and cycles never overlap.
    """

    def __init__(self, sweep: Callable[[], object], interval: float) -> None:
        self._sweep = sweep
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="liveness-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self._sweep()
            except Exception:  # noqa: BLE001 - keep the schedule alive
                logger.exception("Liveness sweep failed")

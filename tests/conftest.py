from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from relay.services.registry import SignalingConnection
from relay.services.signaling import SignalingManager


class DummyConnection:
    def __init__(self, connection_id: str) -> None:
        self.connection_id = connection_id
        self.messages: list[dict] = []
        self.closed = False

    def send(self, message: dict) -> None:
        self.messages.append(message)

    def close(self) -> None:
        self.closed = True

    def of_type(self, message_type: str) -> list[dict]:
        return [message for message in self.messages if message["type"] == message_type]

    def handle(self) -> SignalingConnection:
        return SignalingConnection(self.connection_id, self.send, close=self.close, remote_address="127.0.0.1")


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2025, 10, 10, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(clock: FakeClock) -> SignalingManager:
    return SignalingManager(clock=clock)


@pytest.fixture
def connect(manager: SignalingManager):
    def _connect(connection_id: str) -> DummyConnection:
        conn = DummyConnection(connection_id)
        manager.connect(conn.handle())
        conn.messages.clear()
        return conn

    return _connect

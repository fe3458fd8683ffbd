"""Signaling websocket endpoint."""
from __future__ import annotations

import asyncio
import json
import logging
from contextlib import suppress
from uuid import uuid4

from fastapi import APIRouter, WebSocket

from ..services.registry import SignalingConnection
from ..services.signaling import SignalingManager

logger = logging.getLogger(__name__)

router = APIRouter()

_CLOSE = object()


@router.websocket("/ws")
async def signaling_endpoint(websocket: WebSocket) -> None:
    """Relay presence and addressed SDP/ICE payloads between peers."""

    manager: SignalingManager = websocket.app.state.signaling
    await websocket.accept()

    connection_id = str(uuid4())
    outbox: asyncio.Queue[object] = asyncio.Queue()
    client = websocket.client
    connection = SignalingConnection(
        connection_id=connection_id,
        send=outbox.put_nowait,
        close=lambda: outbox.put_nowait(_CLOSE),
        remote_address=f"{client.host}:{client.port}" if client else None,
    )
    writer = asyncio.create_task(_drain(websocket, outbox, connection_id))
    manager.connect(connection)

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            text = frame.get("text")
            if text is None:
                logger.warning("Ignoring binary frame from %s", connection_id)
                continue
            try:
                message = json.loads(text)
            except json.JSONDecodeError:
                logger.warning("Ignoring non-JSON frame from %s", connection_id)
                continue
            manager.handle_message(connection_id, message)
    finally:
        manager.disconnect(connection_id)
        writer.cancel()
        with suppress(asyncio.CancelledError):
            await writer


async def _drain(websocket: WebSocket, outbox: asyncio.Queue[object], connection_id: str) -> None:
    """Write queued events to the socket in order until closed."""

    try:
        while True:
            message = await outbox.get()
            if message is _CLOSE:
                await websocket.close()
                return
            await websocket.send_json(message)
    except asyncio.CancelledError:
        raise
    except Exception as exc:  # noqa: BLE001 - the reader notices the dead socket
        logger.debug("Stopped writing to %s: %s", connection_id, exc)

"""WebSocket fan-out of playback state to UI observers."""

import asyncio
import logging
import time
from typing import Any

from fastapi import WebSocket

from jukebox.domain.ports import IRealtimePublisher

logger = logging.getLogger(__name__)

UPDATES_CHANNEL = "updates"
SEND_TIMEOUT = 2.0


class StateBroadcaster(IRealtimePublisher):
    """Tracks connected WebSockets and pushes events to the subscribed ones.

    Hey future me - delivery is best effort. No replay, no acks: a socket whose
    send fails or stalls past SEND_TIMEOUT is dropped on the spot, and a (re)connecting
    client is expected to fetch GET /api/current once and then live off `state` events.

    Wire format (server -> client):
        {"type": "state", "data": {...snapshot...}, "ts": 1700000000.0}
        {"type": "metadata_updated", "data": {"player": 1, "position": 25}, "ts": ...}

    Client -> server:
        {"type": "subscribe"} / {"type": "unsubscribe"}
    """

    def __init__(self) -> None:
        self.connections: list[WebSocket] = []
        self.subscribers: set[WebSocket] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self.subscribers)

    async def connect(self, ws: WebSocket) -> None:
        """Accept and store a new WebSocket connection."""
        await ws.accept()
        self.connections.append(ws)
        logger.debug("Realtime client connected (%d total)", len(self.connections))

    def disconnect(self, ws: WebSocket) -> None:
        """Forget a WebSocket connection."""
        if ws in self.connections:
            self.connections.remove(ws)
        self.subscribers.discard(ws)
        logger.debug("Realtime client disconnected (%d left)", len(self.connections))

    def subscribe(self, ws: WebSocket) -> None:
        """Add a connection to the updates channel."""
        if ws in self.connections:
            self.subscribers.add(ws)

    def unsubscribe(self, ws: WebSocket) -> None:
        """Remove a connection from the updates channel."""
        self.subscribers.discard(ws)

    async def handle_message(self, ws: WebSocket, message: dict[str, Any]) -> None:
        """Apply a client control message; unknown types are ignored."""
        message_type = message.get("type")
        if message_type == "subscribe":
            self.subscribe(ws)
            await ws.send_json(
                {"type": "subscribed", "data": {"channel": UPDATES_CHANNEL}, "ts": time.time()}
            )
        elif message_type == "unsubscribe":
            self.unsubscribe(ws)
        else:
            logger.debug("Ignoring realtime message type %r", message_type)

    async def broadcast(self, event_type: str, data: dict[str, Any]) -> None:
        """Send one event to every subscribed client, dropping dead sockets."""
        message = {
            "type": event_type,
            "data": data,
            "ts": time.time(),
        }
        targets = list(self.subscribers)
        results = await asyncio.gather(
            *(asyncio.wait_for(conn.send_json(message), SEND_TIMEOUT) for conn in targets),
            return_exceptions=True,
        )

        for conn, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.debug("Dropping realtime client after send failure: %r", result)
                self.disconnect(conn)

    async def broadcast_state(self, snapshot: dict[str, Any]) -> None:
        await self.broadcast("state", snapshot)

    async def broadcast_metadata_updated(self, player: int, position: int) -> None:
        await self.broadcast("metadata_updated", {"player": player, "position": position})

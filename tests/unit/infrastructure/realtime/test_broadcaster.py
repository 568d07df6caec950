"""Tests for the WebSocket state broadcaster."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from jukebox.infrastructure.realtime import StateBroadcaster


def _socket() -> MagicMock:
    ws = MagicMock()
    ws.accept = AsyncMock()
    ws.send_json = AsyncMock()
    return ws


@pytest.fixture
def broadcaster() -> StateBroadcaster:
    return StateBroadcaster()


class TestConnections:
    async def test_connect_accepts(self, broadcaster: StateBroadcaster) -> None:
        ws = _socket()

        await broadcaster.connect(ws)

        ws.accept.assert_awaited_once()
        assert ws in broadcaster.connections
        assert broadcaster.subscriber_count == 0

    async def test_subscribe_reply(self, broadcaster: StateBroadcaster) -> None:
        ws = _socket()
        await broadcaster.connect(ws)

        await broadcaster.handle_message(ws, {"type": "subscribe"})

        assert broadcaster.subscriber_count == 1
        reply = ws.send_json.call_args[0][0]
        assert reply["type"] == "subscribed"
        assert reply["data"] == {"channel": "updates"}
        assert "ts" in reply

    async def test_unsubscribe_and_unknown_messages(
        self, broadcaster: StateBroadcaster
    ) -> None:
        ws = _socket()
        await broadcaster.connect(ws)
        await broadcaster.handle_message(ws, {"type": "subscribe"})

        await broadcaster.handle_message(ws, {"type": "ping"})
        assert broadcaster.subscriber_count == 1

        await broadcaster.handle_message(ws, {"type": "unsubscribe"})
        assert broadcaster.subscriber_count == 0

    def test_subscribe_requires_connection(self, broadcaster: StateBroadcaster) -> None:
        broadcaster.subscribe(_socket())

        assert broadcaster.subscriber_count == 0

    async def test_disconnect_forgets_socket(
        self, broadcaster: StateBroadcaster
    ) -> None:
        ws = _socket()
        await broadcaster.connect(ws)
        broadcaster.subscribe(ws)

        broadcaster.disconnect(ws)
        broadcaster.disconnect(ws)

        assert broadcaster.connections == []
        assert broadcaster.subscriber_count == 0


class TestBroadcast:
    async def test_only_subscribers_receive(
        self, broadcaster: StateBroadcaster
    ) -> None:
        subscribed, idle = _socket(), _socket()
        await broadcaster.connect(subscribed)
        await broadcaster.connect(idle)
        broadcaster.subscribe(subscribed)

        await broadcaster.broadcast_state({"state": "play", "current_track": 3})

        message = subscribed.send_json.call_args[0][0]
        assert message["type"] == "state"
        assert message["data"] == {"state": "play", "current_track": 3}
        assert isinstance(message["ts"], float)
        idle.send_json.assert_not_awaited()

    async def test_metadata_updated_event(self, broadcaster: StateBroadcaster) -> None:
        ws = _socket()
        await broadcaster.connect(ws)
        broadcaster.subscribe(ws)

        await broadcaster.broadcast_metadata_updated(1, 25)

        message = ws.send_json.call_args[0][0]
        assert message["type"] == "metadata_updated"
        assert message["data"] == {"player": 1, "position": 25}

    async def test_dead_socket_dropped(self, broadcaster: StateBroadcaster) -> None:
        alive, dead = _socket(), _socket()
        dead.send_json.side_effect = RuntimeError("socket closed")
        for ws in (alive, dead):
            await broadcaster.connect(ws)
            broadcaster.subscribe(ws)

        await broadcaster.broadcast("state", {})

        alive.send_json.assert_awaited_once()
        assert dead not in broadcaster.connections
        assert broadcaster.subscriber_count == 1

    async def test_stalled_socket_dropped_after_timeout(
        self, broadcaster: StateBroadcaster, mocker: MagicMock
    ) -> None:
        mocker.patch("jukebox.infrastructure.realtime.broadcaster.SEND_TIMEOUT", 0.01)
        never_set = asyncio.Event()

        async def hang(message: dict) -> None:
            await never_set.wait()

        alive, stalled = _socket(), _socket()
        stalled.send_json = AsyncMock(side_effect=hang)
        for ws in (alive, stalled):
            await broadcaster.connect(ws)
            broadcaster.subscribe(ws)

        await broadcaster.broadcast("state", {"state": "play"})

        alive.send_json.assert_awaited_once()
        assert stalled not in broadcaster.connections
        assert broadcaster.subscriber_count == 1

    async def test_no_subscribers_is_noop(self, broadcaster: StateBroadcaster) -> None:
        await broadcaster.broadcast("state", {})

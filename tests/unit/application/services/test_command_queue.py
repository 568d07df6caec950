"""Tests for the device command queue (FIFO, peek, idempotent ack, GC)."""

from datetime import timedelta

import pytest

from jukebox.application.services import CommandQueue
from jukebox.domain.entities import CommandVerb, utc_now
from jukebox.infrastructure.persistence import Database
from jukebox.infrastructure.persistence.repositories import CommandRepository


@pytest.fixture
def queue(db: Database) -> CommandQueue:
    return CommandQueue(db.session_scope, retention_seconds=3600)


class TestEnqueueAndPeek:
    async def test_empty_queue_returns_none(self, queue: CommandQueue) -> None:
        assert await queue.peek_oldest_unacknowledged() is None

    async def test_peek_does_not_consume(self, queue: CommandQueue) -> None:
        command = await queue.enqueue(CommandVerb.PAUSE)

        first = await queue.peek_oldest_unacknowledged()
        second = await queue.peek_oldest_unacknowledged()

        assert first is not None and second is not None
        assert first.id == second.id == command.id

    async def test_fifo_order(self, queue: CommandQueue) -> None:
        play = await queue.enqueue(CommandVerb.PLAY, player=1, disc=5, track=1)
        pause = await queue.enqueue(CommandVerb.PAUSE)
        stop = await queue.enqueue(CommandVerb.STOP)

        delivered = []
        for _ in range(3):
            command = await queue.peek_oldest_unacknowledged()
            assert command is not None
            delivered.append(command.id)
            await queue.acknowledge(command.id)

        assert delivered == [play.id, pause.id, stop.id]
        assert await queue.peek_oldest_unacknowledged() is None

    async def test_enqueue_accepts_plain_string_verb(self, queue: CommandQueue) -> None:
        command = await queue.enqueue("next")
        assert command.verb is CommandVerb.NEXT


class TestAcknowledge:
    async def test_poll_ack_scenario(self, queue: CommandQueue) -> None:
        await queue.enqueue(CommandVerb.PLAY, player=1, disc=5, track=2)

        command = await queue.peek_oldest_unacknowledged()
        assert command is not None
        payload = command.to_device_payload()
        assert payload["action"] == "play"
        assert (payload["player"], payload["disc"], payload["track"]) == (1, 5, 2)

        assert await queue.acknowledge(command.id) is True
        assert await queue.peek_oldest_unacknowledged() is None

    async def test_ack_is_idempotent(self, queue: CommandQueue, db: Database) -> None:
        command = await queue.enqueue(CommandVerb.STOP)

        assert await queue.acknowledge(command.id) is True
        assert await queue.acknowledge(command.id) is True

        async with db.session_scope() as session:
            stored = await CommandRepository(session).get(command.id)
        assert stored is not None and stored.acknowledged

    async def test_ack_unknown_id_is_noop(self, queue: CommandQueue) -> None:
        pending = await queue.enqueue(CommandVerb.PAUSE)

        assert await queue.acknowledge("cmd-does-not-exist") is False

        oldest = await queue.peek_oldest_unacknowledged()
        assert oldest is not None and oldest.id == pending.id


class TestGarbageCollect:
    async def test_old_acknowledged_commands_are_deleted(
        self, queue: CommandQueue
    ) -> None:
        command = await queue.enqueue(CommandVerb.PAUSE)
        await queue.acknowledge(command.id)

        deleted = await queue.garbage_collect(now=utc_now() + timedelta(hours=2))

        assert deleted == 1

    async def test_recent_acknowledged_commands_are_kept(
        self, queue: CommandQueue
    ) -> None:
        command = await queue.enqueue(CommandVerb.PAUSE)
        await queue.acknowledge(command.id)

        assert await queue.garbage_collect() == 0

    async def test_unacknowledged_commands_are_never_deleted(
        self, queue: CommandQueue
    ) -> None:
        command = await queue.enqueue(CommandVerb.PLAY, player=2, disc=10)

        deleted = await queue.garbage_collect(now=utc_now() + timedelta(days=30))

        assert deleted == 0
        oldest = await queue.peek_oldest_unacknowledged()
        assert oldest is not None and oldest.id == command.id

"""Command queue - durable outbox of transport commands for the polling device.

Hey future me - the device is on flaky WiFi and polls us, we never push to it. So
delivery is at-least-once:

    UI enqueues ──► row (acknowledged=false)
    device polls ──► gets the OLDEST unacknowledged row, row stays as is (peek, not pop!)
    device executes + acks ──► acknowledged=true
    an hour later ──► garbage collector deletes the row

If the ack gets lost the device simply sees the same command again on the next poll.
The firmware tolerates that (re-executing "play disc 5 track 1" is harmless), losing a
command would not be.
"""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from jukebox.domain.entities import Command, CommandVerb, utc_now
from jukebox.infrastructure.persistence.repositories import CommandRepository

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]

DEFAULT_RETENTION_SECONDS = 3600


class CommandQueue:
    """FIFO queue of device commands with explicit acknowledgement."""

    def __init__(
        self,
        session_scope: SessionScope,
        retention_seconds: int = DEFAULT_RETENTION_SECONDS,
    ) -> None:
        """Initialize the queue.

        Args:
            session_scope: Factory for transactional DB sessions (Database.session_scope)
            retention_seconds: How long acknowledged commands are kept
        """
        self._session_scope = session_scope
        self._retention = timedelta(seconds=retention_seconds)

    async def enqueue(
        self,
        verb: CommandVerb | str,
        player: int | None = None,
        disc: int | None = None,
        track: int | None = None,
    ) -> Command:
        """Queue a new command for the device.

        Returns:
            The persisted command (acknowledged=False)
        """
        command = Command.create(CommandVerb(verb), player=player, disc=disc, track=track)
        async with self._session_scope() as session:
            await CommandRepository(session).add(command)

        logger.info(
            "Queued command %s: %s player=%s disc=%s track=%s",
            command.id,
            command.verb.value,
            player,
            disc,
            track,
        )
        return command

    async def peek_oldest_unacknowledged(self) -> Command | None:
        """Get the command the device should execute next.

        Does NOT remove or mark anything - repeated polls return the same command
        until it is acknowledged.
        """
        async with self._session_scope() as session:
            return await CommandRepository(session).get_oldest_unacknowledged()

    async def acknowledge(self, command_id: str) -> bool:
        """Mark a command as executed by the device.

        Idempotent: acknowledging twice is fine, acknowledging an unknown id (already
        garbage collected, or never existed) is a silent no-op.

        Returns:
            True if the command exists, False if the id is unknown
        """
        async with self._session_scope() as session:
            found = await CommandRepository(session).acknowledge(command_id, utc_now())

        if found:
            logger.info("Command %s acknowledged", command_id)
        else:
            logger.debug("Ack for unknown command %s ignored", command_id)
        return found

    async def garbage_collect(self, now: datetime | None = None) -> int:
        """Delete acknowledged commands older than the retention window.

        Unacknowledged commands are never deleted, no matter how old.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            Number of deleted commands
        """
        cutoff = (now or utc_now()) - self._retention
        async with self._session_scope() as session:
            deleted = await CommandRepository(session).delete_acknowledged_before(cutoff)

        if deleted:
            logger.info("Cleaned up %d acknowledged commands", deleted)
        return deleted

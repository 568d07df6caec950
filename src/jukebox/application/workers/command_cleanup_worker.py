"""Command Cleanup Worker - garbage collects acknowledged device commands.

Hey future me - without this the command_queue table grows by one row per button press,
forever. Every `interval` seconds the worker deletes acknowledged commands older than
the retention window (1 hour by default). Unacknowledged commands are never touched,
the device may still be about to poll them.

A failing cycle (DB locked, disk full) is logged and simply retried on the next tick.
"""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

from jukebox.application.services.command_queue import CommandQueue

logger = logging.getLogger(__name__)


class CommandCleanupWorker:
    """Worker that periodically removes old acknowledged commands.

    Lifecycle:
    - Created in lifecycle.py during app startup
    - Runs as asyncio task via start()
    - Stopped via stop() during shutdown
    """

    def __init__(self, command_queue: CommandQueue, interval: int = 60) -> None:
        """Initialize the cleanup worker.

        Args:
            command_queue: Queue whose garbage_collect() is called
            interval: Seconds between cleanups (default: 60)
        """
        self._command_queue = command_queue
        self._interval = interval
        self._running = False
        self._stats: dict[str, Any] = {
            "cycles": 0,
            "failed_cycles": 0,
            "total_deleted": 0,
            "last_run_at": None,
        }

    async def start(self) -> None:
        """Start the cleanup loop.

        Runs continuously until stop() is called.
        """
        self._running = True
        logger.info(f"CommandCleanupWorker started (interval={self._interval}s)")

        while self._running:
            await self.run_once()
            await asyncio.sleep(self._interval)

    def stop(self) -> None:
        """Signal the worker to stop."""
        self._running = False
        logger.info("CommandCleanupWorker stopping...")

    async def run_once(self) -> int:
        """Run one cleanup cycle, never raises.

        Returns:
            Number of deleted commands (0 on failure)
        """
        self._stats["cycles"] += 1
        self._stats["last_run_at"] = datetime.now(UTC)
        try:
            deleted = await self._command_queue.garbage_collect()
        except Exception as e:
            # Log but don't crash - we'll try again next cycle
            self._stats["failed_cycles"] += 1
            logger.exception(f"CommandCleanupWorker error: {e}")
            return 0

        self._stats["total_deleted"] += deleted
        return deleted

    def get_stats(self) -> dict[str, Any]:
        """Get worker statistics."""
        return {
            **self._stats,
            "running": self._running,
            "interval_seconds": self._interval,
        }


def create_command_cleanup_worker(
    command_queue: CommandQueue, interval: int = 60
) -> CommandCleanupWorker:
    """Factory function to create the cleanup worker."""
    return CommandCleanupWorker(command_queue=command_queue, interval=interval)

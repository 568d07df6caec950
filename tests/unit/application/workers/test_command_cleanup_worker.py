"""Tests for CommandCleanupWorker."""

from unittest.mock import AsyncMock, MagicMock

from jukebox.application.workers import (
    CommandCleanupWorker,
    create_command_cleanup_worker,
)


class TestCommandCleanupWorker:
    async def test_run_once_collects_and_counts(self) -> None:
        queue = MagicMock()
        queue.garbage_collect = AsyncMock(return_value=3)
        worker = CommandCleanupWorker(queue, interval=10)

        assert await worker.run_once() == 3

        stats = worker.get_stats()
        assert stats["cycles"] == 1
        assert stats["total_deleted"] == 3
        assert stats["failed_cycles"] == 0
        assert stats["interval_seconds"] == 10
        assert stats["last_run_at"] is not None

    async def test_run_once_never_raises(self) -> None:
        queue = MagicMock()
        queue.garbage_collect = AsyncMock(
            side_effect=RuntimeError("database is locked")
        )
        worker = CommandCleanupWorker(queue)

        assert await worker.run_once() == 0
        assert worker.get_stats()["failed_cycles"] == 1

        # Next tick works again
        queue.garbage_collect = AsyncMock(return_value=1)
        assert await worker.run_once() == 1

    def test_stop_clears_running_flag(self) -> None:
        worker = create_command_cleanup_worker(MagicMock(), interval=5)
        worker._running = True

        worker.stop()

        assert worker.get_stats()["running"] is False

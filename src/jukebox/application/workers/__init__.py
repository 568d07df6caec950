"""Background workers."""

from jukebox.application.workers.command_cleanup_worker import (
    CommandCleanupWorker,
    create_command_cleanup_worker,
)

__all__ = ["CommandCleanupWorker", "create_command_cleanup_worker"]

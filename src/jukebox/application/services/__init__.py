"""Application services."""

from jukebox.application.services.catalog import CatalogService
from jukebox.application.services.command_queue import CommandQueue
from jukebox.application.services.enrichment import EnrichedRelease, EnrichmentService
from jukebox.application.services.lastfm_account import LastfmAccountService
from jukebox.application.services.playback import PlaybackStateMachine
from jukebox.application.services.scrobble_scheduler import ScrobbleScheduler

__all__ = [
    "CatalogService",
    "CommandQueue",
    "EnrichedRelease",
    "EnrichmentService",
    "LastfmAccountService",
    "PlaybackStateMachine",
    "ScrobbleScheduler",
]

"""Request and response schemas for the HTTP API."""

from jukebox.api.schemas.discs import (
    DiscListResponse,
    DiscResponse,
    DiscUpsertRequest,
    DiscWithTracksResponse,
    TrackInput,
    TrackResponse,
)
from jukebox.api.schemas.enrichment import EnrichRequest, ReleaseSuggestion
from jukebox.api.schemas.lastfm import LastfmAuthUrlResponse, LastfmStatusResponse
from jukebox.api.schemas.playback import (
    AckRequest,
    ControlResponse,
    PlayRequest,
    StateReport,
    SuccessResponse,
)

__all__ = [
    "AckRequest",
    "ControlResponse",
    "DiscListResponse",
    "DiscResponse",
    "DiscUpsertRequest",
    "DiscWithTracksResponse",
    "EnrichRequest",
    "LastfmAuthUrlResponse",
    "LastfmStatusResponse",
    "PlayRequest",
    "ReleaseSuggestion",
    "StateReport",
    "SuccessResponse",
    "TrackInput",
    "TrackResponse",
]

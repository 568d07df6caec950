"""Persistence layer: SQLAlchemy models, repositories and session management."""

from .database import Database
from .models import (
    Base,
    CommandModel,
    DiscModel,
    LastfmSessionModel,
    PlaybackStateModel,
    TrackModel,
    TrackPlayModel,
)
from .repositories import (
    CommandRepository,
    DiscRepository,
    LastfmSessionRepository,
    PlaybackStateRepository,
    TrackPlayRepository,
)

__all__ = [
    "Base",
    "CommandModel",
    "CommandRepository",
    "Database",
    "DiscModel",
    "DiscRepository",
    "LastfmSessionModel",
    "LastfmSessionRepository",
    "PlaybackStateModel",
    "PlaybackStateRepository",
    "TrackModel",
    "TrackPlayModel",
    "TrackPlayRepository",
]

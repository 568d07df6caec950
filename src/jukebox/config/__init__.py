"""Configuration module for the jukebox backend."""

from .settings import (
    DatabaseSettings,
    LastfmSettings,
    MusicBrainzSettings,
    ObservabilitySettings,
    PlaybackSettings,
    Settings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "LastfmSettings",
    "MusicBrainzSettings",
    "ObservabilitySettings",
    "PlaybackSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
]

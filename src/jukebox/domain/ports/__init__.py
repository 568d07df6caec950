"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod
from typing import Any

from jukebox.domain.entities import ScrobbleTrack
from jukebox.domain.ports.upstream import UpstreamResult, call_upstream


# Hey future me, these are PORTS! Services depend on the interface, the httpx-backed
# clients in infrastructure implement it, and tests hand in AsyncMocks.
class IMusicBrainzClient(ABC):
    """MusicBrainz release lookups."""

    @abstractmethod
    async def search_release(
        self, artist: str, album: str, limit: int = 5
    ) -> list[dict[str, Any]]:
        """Search releases by artist and title, returns raw release dicts."""
        pass

    @abstractmethod
    async def lookup_release(self, release_id: str) -> dict[str, Any] | None:
        """Get one release with recordings, artist credits and labels."""
        pass


class ICoverArtClient(ABC):
    """Cover Art Archive image download."""

    @abstractmethod
    async def download_front_cover(self, release_id: str) -> bytes | None:
        """Download the front cover, None when the release has none."""
        pass


class ILastfmClient(ABC):
    """Scrobble service client."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """API key and secret present."""
        pass

    @property
    @abstractmethod
    def is_authenticated(self) -> bool:
        """A session key is set."""
        pass

    @abstractmethod
    def set_session_key(self, session_key: str | None) -> None:
        """Set or clear the user session key."""
        pass

    @abstractmethod
    def get_auth_url(self, callback_url: str) -> str:
        """URL the user opens to grant access."""
        pass

    @abstractmethod
    async def get_session(self, token: str) -> dict[str, Any]:
        """Exchange an auth token for {name, key}."""
        pass

    @abstractmethod
    async def update_now_playing(self, track: ScrobbleTrack) -> dict[str, Any]:
        """Announce the track currently playing."""
        pass

    @abstractmethod
    async def scrobble(self, track: ScrobbleTrack, timestamp: int) -> dict[str, Any]:
        """Commit a listen that started at timestamp (unix seconds)."""
        pass


class IRealtimePublisher(ABC):
    """Pushes events to connected UI observers."""

    @abstractmethod
    async def broadcast_state(self, snapshot: dict[str, Any]) -> None:
        """Send a full playback snapshot."""
        pass

    @abstractmethod
    async def broadcast_metadata_updated(self, player: int, position: int) -> None:
        """Tell observers to re-fetch one disc."""
        pass


__all__ = [
    "ICoverArtClient",
    "ILastfmClient",
    "IMusicBrainzClient",
    "IRealtimePublisher",
    "UpstreamResult",
    "call_upstream",
]

"""Domain entities for the jukebox catalog, command queue and playback state.

Key concepts:
- A Disc lives in one slot of one physical changer: (player, position).
- A Command is an immutable transport instruction waiting for the device to poll it.
- PlaybackState is what the DEVICE says is happening, never what we asked for.
- TrackPlayEvent is the append-only play history; play counts are derived from it.
"""

import secrets
import string
import time
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from jukebox.domain.exceptions import ValidationException

PLAYER_NUMBERS = (1, 2)
MIN_POSITION = 1
MAX_POSITION = 300

# Last.fm scrobble rules: half the track or four minutes, whichever comes first
SCROBBLE_FRACTION = 0.5
SCROBBLE_MAX_DELAY = 240.0
DEFAULT_TRACK_DURATION = 180.0


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


class PlaybackStatus(str, Enum):
    """Playback state of the physical player.

    LOADING is never persisted. It is only broadcast to observers between issuing
    a command and the device reporting back.
    """

    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"
    LOADING = "loading"

    @property
    def is_reportable(self) -> bool:
        """Check if the device may report this state."""
        return self is not PlaybackStatus.LOADING


class CommandVerb(str, Enum):
    """Transport commands understood by the device firmware."""

    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"
    NEXT = "next"
    PREVIOUS = "previous"


def validate_slot(player: int | None, position: int | None) -> None:
    """Validate a (player, position) disc address.

    Raises:
        ValidationException: If either value is missing or out of range
    """
    if player is None or position is None:
        raise ValidationException("Player and disc position are required")
    if player not in PLAYER_NUMBERS:
        raise ValidationException(f"Invalid player {player}: must be 1 or 2")
    if not MIN_POSITION <= position <= MAX_POSITION:
        raise ValidationException(
            f"Invalid disc position {position}: must be {MIN_POSITION}-{MAX_POSITION}"
        )


@dataclass
class Track:
    """One track of a disc.

    artist is only set when it differs from the disc artist (compilations).
    """

    track_number: int
    title: str
    duration_seconds: int | None = None
    artist: str | None = None
    play_count: int = 0


@dataclass
class Disc:
    """A physical CD at a known (player, position) slot."""

    player: int
    position: int
    artist: str
    album: str
    id: int | None = None
    musicbrainz_id: str | None = None
    year: int | None = None
    genre: str | None = None
    cover_art_path: str | None = None
    track_count: int | None = None
    duration_seconds: int | None = None
    medium_position: int = 1
    last_played: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    tracks: list[Track] = field(default_factory=list)
    play_count: int = 0
    total_track_plays: int = 0

    @property
    def slot_id(self) -> str:
        """Human readable slot identifier, e.g. '1:25'."""
        return f"{self.player}:{self.position}"

    @property
    def needs_enrichment(self) -> bool:
        """Check if MusicBrainz metadata is missing."""
        return not self.musicbrainz_id or not self.track_count


def _command_id() -> str:
    alphabet = string.digits + string.ascii_lowercase
    suffix = "".join(secrets.choice(alphabet) for _ in range(9))
    return f"cmd-{int(time.time() * 1000)}-{suffix}"


@dataclass(frozen=True)
class Command:
    """A queued transport instruction for the device.

    Hey future me - commands are immutable! The only state change a command ever
    sees is acknowledged False -> True, and that happens in the repository, not here.
    """

    id: str
    verb: CommandVerb
    player: int | None = None
    disc: int | None = None
    track: int | None = None
    created_at: datetime = field(default_factory=utc_now)
    acknowledged: bool = False

    @classmethod
    def create(
        cls,
        verb: CommandVerb,
        player: int | None = None,
        disc: int | None = None,
        track: int | None = None,
    ) -> "Command":
        """Create a new unacknowledged command with a fresh id."""
        return cls(
            id=_command_id(),
            verb=CommandVerb(verb),
            player=player,
            disc=disc,
            track=track,
        )

    def to_device_payload(self) -> dict[str, Any]:
        """Render the command in the device's poll format (verb is called 'action')."""
        payload: dict[str, Any] = {"id": self.id, "action": self.verb.value}
        for key in ("player", "disc", "track"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


@dataclass(frozen=True)
class PlaybackState:
    """The singleton playback record as reported by the device."""

    current_player: int | None = None
    current_disc: int | None = None
    current_track: int | None = None
    state: PlaybackStatus = PlaybackStatus.STOP
    updated_at: datetime | None = None

    @property
    def track_key(self) -> tuple[int | None, int | None, int | None]:
        """The (player, disc, track) tuple used for track-change detection."""
        return (self.current_player, self.current_disc, self.current_track)


@dataclass(frozen=True)
class TrackPlayEvent:
    """One recorded play of one track."""

    disc_id: int
    track_number: int
    played_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class PlaybackSnapshot:
    """Playback state joined with disc/track metadata for display.

    This is a read-only projection - never stored.
    """

    current_player: int | None
    current_disc: int | None
    current_track: int | None
    state: PlaybackStatus
    updated_at: datetime | None = None
    artist: str | None = None
    album: str | None = None
    year: int | None = None
    cover_art_path: str | None = None
    track_title: str | None = None
    track_duration: int | None = None
    track_artist: str | None = None
    pending_command_id: str | None = None

    def as_loading(self, command_id: str) -> "PlaybackSnapshot":
        """Copy of this snapshot marked as waiting for the device."""
        return replace(
            self, state=PlaybackStatus.LOADING, pending_command_id=command_id
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses and socket events."""
        data: dict[str, Any] = {
            "current_player": self.current_player,
            "current_disc": self.current_disc,
            "current_track": self.current_track,
            "state": self.state.value,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "artist": self.artist,
            "album": self.album,
            "year": self.year,
            "cover_art_path": self.cover_art_path,
            "track_title": self.track_title,
            "track_duration": self.track_duration,
            "track_artist": self.track_artist,
        }
        if self.pending_command_id:
            data["pending_command_id"] = self.pending_command_id
        return data


@dataclass(frozen=True)
class ScrobbleTrack:
    """Metadata needed to talk to the scrobble service about one track."""

    artist: str
    title: str
    album: str | None = None
    duration: int | None = None
    track_number: int | None = None


@dataclass(frozen=True)
class PendingScrobble:
    """The one scrobble waiting for its deferred commit."""

    player: int
    disc: int
    track: int
    artist: str
    title: str
    album: str | None
    duration: int | None
    started_at: int  # unix seconds, listen start


def album_play_count(track_count: int | None, track_plays: Mapping[int, int]) -> int:
    """Derive how often a whole album has been played.

    An album only counts as played once EVERY track has been played, so the
    album count is the minimum per-track count over tracks 1..track_count.

    Examples:
        album_play_count(3, {1: 3, 2: 1, 3: 2}) -> 1
        album_play_count(3, {1: 3, 3: 2}) -> 0

    Args:
        track_count: Number of tracks on the disc (None/0 means unknown)
        track_plays: Mapping of track_number -> play count

    Returns:
        Album play count (0 if any track was never played)
    """
    if not track_count:
        return 0
    return min(track_plays.get(number, 0) for number in range(1, track_count + 1))


def scrobble_delay(
    duration: float | None,
    max_delay: float = SCROBBLE_MAX_DELAY,
    default_duration: float = DEFAULT_TRACK_DURATION,
) -> float:
    """Seconds to wait after track start before committing a scrobble.

    Unknown durations fall back to default_duration so such tracks still scrobble.
    """
    effective = duration if duration and duration > 0 else default_duration
    return min(effective * SCROBBLE_FRACTION, max_delay)


__all__ = [
    "Command",
    "CommandVerb",
    "DEFAULT_TRACK_DURATION",
    "Disc",
    "MAX_POSITION",
    "MIN_POSITION",
    "PLAYER_NUMBERS",
    "PendingScrobble",
    "PlaybackSnapshot",
    "PlaybackState",
    "PlaybackStatus",
    "SCROBBLE_MAX_DELAY",
    "ScrobbleTrack",
    "Track",
    "TrackPlayEvent",
    "album_play_count",
    "scrobble_delay",
    "utc_now",
    "validate_slot",
]

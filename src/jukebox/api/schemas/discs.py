"""API schemas for the disc catalog."""

from datetime import datetime

from pydantic import BaseModel, Field

from jukebox.domain.entities import Disc, Track


class TrackResponse(BaseModel):
    track_number: int
    title: str
    duration_seconds: int | None = None
    artist: str | None = None
    play_count: int = 0

    @classmethod
    def from_entity(cls, track: Track) -> "TrackResponse":
        return cls(
            track_number=track.track_number,
            title=track.title,
            duration_seconds=track.duration_seconds,
            artist=track.artist,
            play_count=track.play_count,
        )


class DiscResponse(BaseModel):
    """One disc as shown in the grid.

    play_count is the album play count (min over per-track plays), total_track_plays
    the raw number of track plays.
    """

    id: int | None
    player: int
    position: int
    artist: str
    album: str
    musicbrainz_id: str | None = None
    year: int | None = None
    genre: str | None = None
    cover_art_path: str | None = None
    track_count: int | None = None
    duration_seconds: int | None = None
    medium_position: int = 1
    play_count: int = 0
    total_track_plays: int = 0
    last_played: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def _fields_from_entity(cls, disc: Disc) -> dict:
        return {
            "id": disc.id,
            "player": disc.player,
            "position": disc.position,
            "artist": disc.artist,
            "album": disc.album,
            "musicbrainz_id": disc.musicbrainz_id,
            "year": disc.year,
            "genre": disc.genre,
            "cover_art_path": disc.cover_art_path,
            "track_count": disc.track_count,
            "duration_seconds": disc.duration_seconds,
            "medium_position": disc.medium_position,
            "play_count": disc.play_count,
            "total_track_plays": disc.total_track_plays,
            "last_played": disc.last_played,
            "created_at": disc.created_at,
            "updated_at": disc.updated_at,
        }

    @classmethod
    def from_entity(cls, disc: Disc) -> "DiscResponse":
        return cls(**cls._fields_from_entity(disc))


class DiscWithTracksResponse(DiscResponse):
    tracks: list[TrackResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, disc: Disc) -> "DiscWithTracksResponse":
        return cls(
            **cls._fields_from_entity(disc),
            tracks=[TrackResponse.from_entity(t) for t in disc.tracks],
        )


class DiscListResponse(BaseModel):
    discs: list[DiscResponse]
    total: int = Field(description="Number of discs matching the filter")


class TrackInput(BaseModel):
    """Track supplied with a disc upsert."""

    track_number: int = Field(..., ge=1)
    title: str = Field(..., min_length=1)
    duration_seconds: int | None = Field(default=None, ge=0)
    artist: str | None = None

    def to_entity(self) -> Track:
        return Track(
            track_number=self.track_number,
            title=self.title,
            duration_seconds=self.duration_seconds,
            artist=self.artist,
        )


class DiscUpsertRequest(BaseModel):
    """Create or edit a disc. Only fields present in the body are changed."""

    artist: str | None = Field(default=None, min_length=1)
    album: str | None = Field(default=None, min_length=1)
    musicbrainz_id: str | None = None
    year: int | None = None
    genre: str | None = None
    cover_art_path: str | None = None
    track_count: int | None = Field(default=None, ge=0)
    duration_seconds: int | None = Field(default=None, ge=0)
    medium_position: int | None = Field(default=None, ge=1)
    tracks: list[TrackInput] | None = Field(
        default=None, description="Replaces the whole track list when given"
    )

    def disc_fields(self) -> dict:
        """Explicitly set disc fields (without tracks)."""
        data = self.model_dump(exclude_unset=True, exclude={"tracks"})
        if data.get("medium_position") is None:
            data.pop("medium_position", None)
        return data

    def track_entities(self) -> list[Track] | None:
        if self.tracks is None:
            return None
        return [t.to_entity() for t in self.tracks]

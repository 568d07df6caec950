"""SQLAlchemy ORM models for the jukebox."""

from datetime import UTC, datetime

import sqlalchemy as sa
from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! Stored UTC datetimes come back
# "naive". ALWAYS run DB datetimes through this before comparing with datetime.now(UTC),
# otherwise you get "can't compare offset-naive and offset-aware" TypeErrors.
def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Listen up, a disc is addressed by (player, position) everywhere outside the DB, but
# tracks and plays point at the synthetic integer id. That way moving a disc to another
# slot later is one UPDATE instead of rewriting the whole play history.
# No play_count column: counts come from track_plays only.
class DiscModel(Base):
    """A physical CD sitting in one slot of one changer."""

    __tablename__ = "discs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    player: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    artist: Mapped[str] = mapped_column(String(255), nullable=False)
    album: Mapped[str] = mapped_column(String(255), nullable=False)
    musicbrainz_id: Mapped[str | None] = mapped_column(
        String(36), nullable=True, index=True
    )
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    genre: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cover_art_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    track_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Which medium of a multi-disc release this physical CD is (1-based)
    medium_position: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default="1"
    )
    last_played: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, nullable=False
    )

    tracks: Mapped[list["TrackModel"]] = relationship(
        "TrackModel",
        back_populates="disc",
        cascade="all, delete-orphan",
        order_by="TrackModel.track_number",
    )

    __table_args__ = (
        sa.UniqueConstraint("player", "position", name="uq_discs_player_position"),
        Index("ix_discs_artist", "artist"),
        Index("ix_discs_album", "album"),
    )


class TrackModel(Base):
    """One track of a disc."""

    __tablename__ = "tracks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    disc_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("discs.id", ondelete="CASCADE"), nullable=False
    )
    track_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Only set when the track artist differs from the disc artist (compilations)
    artist: Mapped[str | None] = mapped_column(String(255), nullable=True)

    disc: Mapped["DiscModel"] = relationship("DiscModel", back_populates="tracks")

    __table_args__ = (
        sa.UniqueConstraint("disc_id", "track_number", name="uq_tracks_disc_number"),
    )


# Hey future me - exactly ONE row with id=1, ever. The repository creates it lazily with
# state='stop'. current_disc/current_track survive pause/stop so the UI can show what
# was last loaded. 'loading' is never written here - it's a broadcast-only state.
class PlaybackStateModel(Base):
    """Singleton playback state as reported by the device."""

    __tablename__ = "playback_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    current_player: Mapped[int | None] = mapped_column(Integer, nullable=True)
    current_disc: Mapped[int | None] = mapped_column(Integer, nullable=True)
    current_track: Mapped[int | None] = mapped_column(Integer, nullable=True)
    state: Mapped[str] = mapped_column(
        String(10), nullable=False, default="stop", server_default="stop"
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        sa.CheckConstraint("id = 1", name="ck_playback_state_singleton"),
        sa.CheckConstraint(
            "state IN ('play', 'pause', 'stop')", name="ck_playback_state_state"
        ),
    )


# Yo, the string id is what the device sees and acks. `sequence` is a plain autoincrement
# that only exists to break created_at ties - two commands queued in the same millisecond
# must still come out in insertion order.
class CommandModel(Base):
    """A transport command waiting for (or delivered to) the device."""

    __tablename__ = "command_queue"

    sequence: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    command: Mapped[str] = mapped_column(String(20), nullable=False)
    player: Mapped[int | None] = mapped_column(Integer, nullable=True)
    disc: Mapped[int | None] = mapped_column(Integer, nullable=True)
    track: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)
    acknowledged: Mapped[bool] = mapped_column(
        sa.Boolean(), nullable=False, default=False, server_default="0"
    )
    acknowledged_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        Index("ix_command_queue_pending", "acknowledged", "created_at"),
    )


class TrackPlayModel(Base):
    """Append-only play history, one row per track start."""

    __tablename__ = "track_plays"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    disc_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("discs.id", ondelete="CASCADE"), nullable=False
    )
    track_number: Mapped[int] = mapped_column(Integer, nullable=False)
    played_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_track_plays_disc_track", "disc_id", "track_number"),
        Index("ix_track_plays_played_at", "played_at"),
    )


class LastfmSessionModel(Base):
    """Persisted Last.fm session (singleton row id=1)."""

    __tablename__ = "lastfm_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    session_key: Mapped[str] = mapped_column(Text, nullable=False)
    connected_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)

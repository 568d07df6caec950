"""Repository implementations for jukebox entities."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jukebox.domain.entities import (
    Command,
    CommandVerb,
    Disc,
    PlaybackState,
    PlaybackStatus,
    Track,
    TrackPlayEvent,
)

from .models import (
    CommandModel,
    DiscModel,
    LastfmSessionModel,
    PlaybackStateModel,
    TrackModel,
    TrackPlayModel,
    ensure_utc_aware,
    utc_now,
)

PLAYBACK_STATE_ID = 1
LASTFM_SESSION_ID = 1


class DiscRepository:
    """SQLAlchemy repository for discs and their track lists."""

    # Hey future me, the session is injected and NOT committed here - session_scope() in the
    # caller commits (or rolls back) the whole unit of work. That is what makes "replace the
    # track list" atomic: delete + inserts + disc update all live in the caller's transaction.
    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    def _model_to_entity(self, model: DiscModel, include_tracks: bool = False) -> Disc:
        disc = Disc(
            id=model.id,
            player=model.player,
            position=model.position,
            artist=model.artist,
            album=model.album,
            musicbrainz_id=model.musicbrainz_id,
            year=model.year,
            genre=model.genre,
            cover_art_path=model.cover_art_path,
            track_count=model.track_count,
            duration_seconds=model.duration_seconds,
            medium_position=model.medium_position,
            last_played=ensure_utc_aware(model.last_played),
            created_at=ensure_utc_aware(model.created_at),
            updated_at=ensure_utc_aware(model.updated_at),
        )
        if include_tracks:
            disc.tracks = [
                Track(
                    track_number=t.track_number,
                    title=t.title,
                    duration_seconds=t.duration_seconds,
                    artist=t.artist,
                )
                for t in model.tracks
            ]
        return disc

    async def _get_model(
        self, player: int, position: int, include_tracks: bool = False
    ) -> DiscModel | None:
        stmt = select(DiscModel).where(
            DiscModel.player == player, DiscModel.position == position
        )
        if include_tracks:
            # populate_existing so a track list replaced earlier in this session is re-read
            stmt = stmt.options(selectinload(DiscModel.tracks)).execution_options(
                populate_existing=True
            )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_slot(
        self, player: int, position: int, include_tracks: bool = True
    ) -> Disc | None:
        """Get a disc by (player, position), None if the slot is empty."""
        model = await self._get_model(player, position, include_tracks)
        if not model:
            return None
        return self._model_to_entity(model, include_tracks)

    async def get_track(
        self, player: int, position: int, track_number: int
    ) -> Track | None:
        """Get one track of the disc in a slot."""
        stmt = (
            select(TrackModel)
            .join(DiscModel, TrackModel.disc_id == DiscModel.id)
            .where(
                DiscModel.player == player,
                DiscModel.position == position,
                TrackModel.track_number == track_number,
            )
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        if not model:
            return None
        return Track(
            track_number=model.track_number,
            title=model.title,
            duration_seconds=model.duration_seconds,
            artist=model.artist,
        )

    # Yo, upsert mirrors INSERT ... ON CONFLICT(player, position) DO UPDATE. When `tracks` is
    # None the existing track list is left alone; when it's a list (even empty) the old
    # tracks are DELETEd first and the new ones inserted, and track_count follows the list.
    # The explicit DELETE + flush matters: relying on delete-orphan would INSERT the new
    # rows before deleting the old ones and trip uq_tracks_disc_number.
    async def upsert(self, disc: Disc, tracks: list[Track] | None = None) -> Disc:
        """Insert or update a disc, optionally replacing its track list."""
        model = await self._get_model(disc.player, disc.position)
        if model is None:
            model = DiscModel(player=disc.player, position=disc.position)
            self.session.add(model)

        model.artist = disc.artist
        model.album = disc.album
        model.musicbrainz_id = disc.musicbrainz_id
        model.year = disc.year
        model.genre = disc.genre
        model.cover_art_path = disc.cover_art_path
        model.track_count = disc.track_count
        model.duration_seconds = disc.duration_seconds
        model.medium_position = disc.medium_position or 1
        model.updated_at = utc_now()
        await self.session.flush()

        if tracks is not None:
            await self.session.execute(
                delete(TrackModel).where(TrackModel.disc_id == model.id)
            )
            self.session.add_all(
                [
                    TrackModel(
                        disc_id=model.id,
                        track_number=t.track_number,
                        title=t.title,
                        duration_seconds=t.duration_seconds,
                        artist=t.artist,
                    )
                    for t in tracks
                ]
            )
            model.track_count = len(tracks)
            await self.session.flush()

        saved = await self.get_by_slot(disc.player, disc.position, include_tracks=True)
        assert saved is not None
        return saved

    async def touch_last_played(self, disc_id: int, played_at: datetime) -> None:
        """Set last_played on a disc."""
        model = await self.session.get(DiscModel, disc_id)
        if model:
            model.last_played = played_at

    async def find(
        self,
        player: int | None = None,
        search: str | None = None,
        sort: str = "position",
        limit: int = 600,
        offset: int = 0,
    ) -> tuple[list[Disc], int]:
        """List discs with filtering, sorting and pagination.

        Args:
            player: Only discs of this player
            search: Case-insensitive substring match on artist or album
            sort: position | artist | album | lastPlayed | playCount
            limit: Page size
            offset: Page start

        Returns:
            Tuple of (discs on this page, total matching count)
        """
        filters = []
        if player:
            filters.append(DiscModel.player == player)
        if search:
            pattern = f"%{search}%"
            filters.append(
                or_(DiscModel.artist.ilike(pattern), DiscModel.album.ilike(pattern))
            )

        plays = (
            select(
                TrackPlayModel.disc_id.label("disc_id"),
                func.count(TrackPlayModel.id).label("total_plays"),
            )
            .group_by(TrackPlayModel.disc_id)
            .subquery()
        )
        total_plays = func.coalesce(plays.c.total_plays, 0)

        order_by: list[Any] = {
            "artist": [DiscModel.artist, DiscModel.album],
            "album": [DiscModel.album],
            "lastPlayed": [DiscModel.last_played.desc().nulls_last()],
            "playCount": [total_plays.desc()],
        }.get(sort, [])
        order_by.extend([DiscModel.player, DiscModel.position])

        stmt = (
            select(DiscModel, total_plays)
            .outerjoin(plays, plays.c.disc_id == DiscModel.id)
            .where(*filters)
            .order_by(*order_by)
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        discs = []
        for model, count in result.all():
            disc = self._model_to_entity(model)
            disc.total_track_plays = count
            discs.append(disc)

        count_stmt = select(func.count(DiscModel.id)).where(*filters)
        total = (await self.session.execute(count_stmt)).scalar_one()
        return discs, total

    async def count(self, player: int | None = None) -> int:
        """Count discs, optionally for one player."""
        stmt = select(func.count(DiscModel.id))
        if player:
            stmt = stmt.where(DiscModel.player == player)
        return (await self.session.execute(stmt)).scalar_one()

    async def recently_played(self, limit: int = 10) -> list[Disc]:
        """Discs ordered by last_played, newest first."""
        stmt = (
            select(DiscModel)
            .where(DiscModel.last_played.is_not(None))
            .order_by(DiscModel.last_played.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [self._model_to_entity(m) for m in result.scalars().all()]


class TrackPlayRepository:
    """Append-only play history and the counts derived from it."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def add(self, event: TrackPlayEvent) -> None:
        """Append one play."""
        self.session.add(
            TrackPlayModel(
                disc_id=event.disc_id,
                track_number=event.track_number,
                played_at=event.played_at,
            )
        )

    async def counts_by_track(self, disc_id: int) -> dict[int, int]:
        """Play count per track number for one disc."""
        counts = await self.counts_for_discs([disc_id])
        return counts.get(disc_id, {})

    async def counts_for_discs(self, disc_ids: list[int]) -> dict[int, dict[int, int]]:
        """Play counts per track number, grouped by disc id."""
        if not disc_ids:
            return {}
        stmt = (
            select(
                TrackPlayModel.disc_id,
                TrackPlayModel.track_number,
                func.count(TrackPlayModel.id),
            )
            .where(TrackPlayModel.disc_id.in_(disc_ids))
            .group_by(TrackPlayModel.disc_id, TrackPlayModel.track_number)
        )
        result = await self.session.execute(stmt)
        counts: dict[int, dict[int, int]] = defaultdict(dict)
        for disc_id, track_number, count in result.all():
            counts[disc_id][track_number] = count
        return dict(counts)

    async def total(self) -> int:
        """Total number of recorded track plays."""
        stmt = select(func.count(TrackPlayModel.id))
        return (await self.session.execute(stmt)).scalar_one()

    async def most_played_discs(self, limit: int = 10) -> list[tuple[Disc, int]]:
        """Discs with the most track plays, as (disc, total_track_plays)."""
        total_plays = func.count(TrackPlayModel.id).label("total_track_plays")
        stmt = (
            select(DiscModel, total_plays)
            .join(TrackPlayModel, TrackPlayModel.disc_id == DiscModel.id)
            .group_by(DiscModel.id)
            .order_by(total_plays.desc(), DiscModel.player, DiscModel.position)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        repo = DiscRepository(self.session)
        return [(repo._model_to_entity(model), count) for model, count in result.all()]

    async def most_played_tracks(self, limit: int = 10) -> list[dict[str, Any]]:
        """Individual tracks with the most plays."""
        play_count = func.count(TrackPlayModel.id).label("play_count")
        stmt = (
            select(
                DiscModel.player,
                DiscModel.position,
                DiscModel.artist,
                DiscModel.album,
                TrackPlayModel.track_number,
                TrackModel.title.label("track_title"),
                play_count,
            )
            .select_from(TrackPlayModel)
            .join(DiscModel, TrackPlayModel.disc_id == DiscModel.id)
            .outerjoin(
                TrackModel,
                (TrackModel.disc_id == DiscModel.id)
                & (TrackModel.track_number == TrackPlayModel.track_number),
            )
            .group_by(
                TrackPlayModel.disc_id,
                TrackPlayModel.track_number,
                DiscModel.player,
                DiscModel.position,
                DiscModel.artist,
                DiscModel.album,
                TrackModel.title,
            )
            .order_by(play_count.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [dict(row._mapping) for row in result.all()]


class CommandRepository:
    """Durable outbox of device commands."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    def _model_to_entity(self, model: CommandModel) -> Command:
        return Command(
            id=model.id,
            verb=CommandVerb(model.command),
            player=model.player,
            disc=model.disc,
            track=model.track,
            created_at=ensure_utc_aware(model.created_at) or utc_now(),
            acknowledged=model.acknowledged,
        )

    async def add(self, command: Command) -> None:
        """Stage a new command."""
        self.session.add(
            CommandModel(
                id=command.id,
                command=command.verb.value,
                player=command.player,
                disc=command.disc,
                track=command.track,
                created_at=command.created_at,
                acknowledged=command.acknowledged,
            )
        )

    async def get(self, command_id: str) -> Command | None:
        """Get a command by id."""
        stmt = select(CommandModel).where(CommandModel.id == command_id)
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._model_to_entity(model) if model else None

    async def get_oldest_unacknowledged(self) -> Command | None:
        """Oldest command the device hasn't acknowledged yet."""
        stmt = (
            select(CommandModel)
            .where(CommandModel.acknowledged.is_(False))
            .order_by(CommandModel.created_at, CommandModel.sequence)
            .limit(1)
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._model_to_entity(model) if model else None

    async def acknowledge(self, command_id: str, acknowledged_at: datetime) -> bool:
        """Mark a command acknowledged.

        Returns:
            True if the command exists (acknowledged now or before), False otherwise
        """
        stmt = select(CommandModel).where(CommandModel.id == command_id)
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        if not model:
            return False
        if not model.acknowledged:
            model.acknowledged = True
            model.acknowledged_at = acknowledged_at
        return True

    async def delete_acknowledged_before(self, cutoff: datetime) -> int:
        """Delete acknowledged commands created before cutoff."""
        stmt = delete(CommandModel).where(
            CommandModel.acknowledged.is_(True),
            CommandModel.created_at < cutoff,
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0  # type: ignore[attr-defined]


class PlaybackStateRepository:
    """Access to the singleton playback_state row."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def _ensure_model(self) -> PlaybackStateModel:
        model = await self.session.get(PlaybackStateModel, PLAYBACK_STATE_ID)
        if model is None:
            model = PlaybackStateModel(
                id=PLAYBACK_STATE_ID, state=PlaybackStatus.STOP.value
            )
            self.session.add(model)
            await self.session.flush()
        return model

    async def seed(self) -> None:
        """Create the initial 'stop' row if it isn't there yet.

        Runs once at startup so concurrent first requests never race to insert it.
        """
        await self._ensure_model()

    async def get(self) -> PlaybackState:
        """Current state, creating the initial 'stop' row if missing."""
        model = await self._ensure_model()
        return PlaybackState(
            current_player=model.current_player,
            current_disc=model.current_disc,
            current_track=model.current_track,
            state=PlaybackStatus(model.state),
            updated_at=ensure_utc_aware(model.updated_at),
        )

    async def save(self, state: PlaybackState) -> None:
        """Overwrite the singleton with a reported state."""
        model = await self._ensure_model()
        model.current_player = state.current_player
        model.current_disc = state.current_disc
        model.current_track = state.current_track
        model.state = state.state.value
        model.updated_at = state.updated_at or utc_now()


class LastfmSessionRepository:
    """Persisted Last.fm session (at most one)."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def get(self) -> LastfmSessionModel | None:
        """Get the stored session, if any."""
        return await self.session.get(LastfmSessionModel, LASTFM_SESSION_ID)

    async def save(self, username: str, session_key: str) -> None:
        """Store (or replace) the session."""
        model = await self.get()
        if model is None:
            model = LastfmSessionModel(id=LASTFM_SESSION_ID)
            self.session.add(model)
        model.username = username
        model.session_key = session_key
        model.connected_at = utc_now()

    async def delete(self) -> None:
        """Forget the stored session."""
        await self.session.execute(
            delete(LastfmSessionModel).where(LastfmSessionModel.id == LASTFM_SESSION_ID)
        )

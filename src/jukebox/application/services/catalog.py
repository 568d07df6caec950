"""Catalog service - discs, their tracks, play counts and listening stats."""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import replace
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from jukebox.application.services.enrichment import EnrichedRelease, EnrichmentService
from jukebox.domain.entities import Disc, Track, album_play_count, validate_slot
from jukebox.domain.exceptions import (
    EntityNotFoundException,
    ExternalServiceError,
    ValidationException,
)
from jukebox.domain.ports import IRealtimePublisher
from jukebox.infrastructure.persistence.repositories import (
    DiscRepository,
    TrackPlayRepository,
)

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]

SORT_KEYS = ("position", "artist", "album", "lastPlayed", "playCount")
DEFAULT_LIMIT = 600
STATS_TOP_N = 10

# Fields a client may set through upsert_disc (tracks are handled separately)
EDITABLE_FIELDS = (
    "artist",
    "album",
    "musicbrainz_id",
    "year",
    "genre",
    "cover_art_path",
    "track_count",
    "duration_seconds",
    "medium_position",
)


class CatalogService:
    """Reads and writes the disc catalog, enriching discs on demand."""

    def __init__(
        self,
        session_scope: SessionScope,
        enrichment: EnrichmentService,
        publisher: IRealtimePublisher,
        auto_enrich: bool = True,
    ) -> None:
        """Initialize the service.

        Args:
            session_scope: Factory for transactional DB sessions
            enrichment: MusicBrainz/Cover Art enrichment
            publisher: Realtime fan-out for `metadata_updated` events
            auto_enrich: Enrich discs missing metadata when they are opened
        """
        self._session_scope = session_scope
        self._enrichment = enrichment
        self._publisher = publisher
        self._auto_enrich = auto_enrich

    async def list_discs(
        self,
        player: int | None = None,
        search: str | None = None,
        sort: str = "position",
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> tuple[list[Disc], int]:
        """List discs with derived play counts.

        Unknown sort keys fall back to "position".

        Returns:
            Tuple of (discs, total matching count)
        """
        if sort not in SORT_KEYS:
            sort = "position"

        async with self._session_scope() as session:
            discs, total = await DiscRepository(session).find(
                player=player, search=search, sort=sort, limit=limit, offset=offset
            )
            counts = await TrackPlayRepository(session).counts_for_discs(
                [d.id for d in discs if d.id is not None]
            )

        for disc in discs:
            disc.play_count = album_play_count(disc.track_count, counts.get(disc.id, {}))
        return discs, total

    async def _load_disc(self, player: int, position: int) -> Disc:
        async with self._session_scope() as session:
            disc = await DiscRepository(session).get_by_slot(player, position)
            if disc is None:
                raise EntityNotFoundException("Disc", f"{player}:{position}")
            assert disc.id is not None
            per_track = await TrackPlayRepository(session).counts_by_track(disc.id)

        for track in disc.tracks:
            track.play_count = per_track.get(track.track_number, 0)
        disc.play_count = album_play_count(disc.track_count, per_track)
        disc.total_track_plays = sum(per_track.values())
        return disc

    # Hey future me - opening a disc page is what triggers enrichment for hand-entered
    # discs. It must NEVER fail the page: no match / MusicBrainz down just means the disc
    # is shown with what we have, and the next open tries again.
    async def get_disc(
        self, player: int, position: int, auto_enrich: bool | None = None
    ) -> Disc:
        """Get one disc with tracks and per-track play counts.

        Raises:
            ValidationException: If player/position are out of range
            EntityNotFoundException: If the slot is empty
        """
        validate_slot(player, position)
        disc = await self._load_disc(player, position)

        enrich = self._auto_enrich if auto_enrich is None else auto_enrich
        if not enrich or not disc.needs_enrichment:
            return disc

        logger.info(
            "Auto-enriching %d:%d: %s - %s", player, position, disc.artist, disc.album
        )
        try:
            metadata = await self._enrichment.enrich(
                player, position, disc.artist, disc.album
            )
        except (ExternalServiceError, EntityNotFoundException) as e:
            logger.warning("Auto-enrich failed for %d:%d: %s", player, position, e.message)
            return disc

        await self._apply_enrichment(disc, metadata)
        return await self._load_disc(player, position)

    async def upsert_disc(
        self,
        player: int,
        position: int,
        data: dict[str, Any],
        tracks: list[Track] | None = None,
    ) -> Disc:
        """Create or update the disc in a slot.

        Only keys present in `data` change; everything else keeps its stored value.
        When `tracks` is given the track list is replaced in the same transaction and
        track_count follows it.

        Raises:
            ValidationException: If the slot is invalid, or a new disc lacks artist/album,
                or two tracks share a number
        """
        validate_slot(player, position)
        unknown = set(data) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationException(f"Unknown disc fields: {', '.join(sorted(unknown))}")
        if tracks is not None:
            numbers = [t.track_number for t in tracks]
            duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
            if duplicates:
                raise ValidationException(
                    f"Duplicate track numbers: {', '.join(map(str, duplicates))}"
                )

        async with self._session_scope() as session:
            repo = DiscRepository(session)
            existing = await repo.get_by_slot(player, position, include_tracks=False)
            base = existing or Disc(player=player, position=position, artist="", album="")
            updated = replace(base, **data)
            if not updated.artist or not updated.album:
                raise ValidationException("Artist and album are required")
            await repo.upsert(updated, tracks)

        logger.info(
            "%s disc %d:%d (%s - %s)",
            "Updated" if existing else "Created",
            player,
            position,
            updated.artist,
            updated.album,
        )
        return await self._load_disc(player, position)

    async def enrich_disc(
        self,
        player: int,
        position: int,
        release_id: str | None = None,
        medium_position: int = 1,
    ) -> Disc:
        """Explicitly (re-)enrich a disc, e.g. from the match fixer.

        Raises:
            EntityNotFoundException: If the slot is empty or no release matches
            ExternalServiceError: If MusicBrainz fails
        """
        validate_slot(player, position)
        disc = await self._load_disc(player, position)
        metadata = await self._enrichment.enrich(
            player,
            position,
            disc.artist,
            disc.album,
            release_id=release_id,
            medium_position=medium_position,
        )
        await self._apply_enrichment(disc, metadata)
        return await self._load_disc(player, position)

    async def _apply_enrichment(self, disc: Disc, metadata: EnrichedRelease) -> None:
        """Store enrichment results and tell observers to re-fetch the disc."""
        enriched = replace(
            disc,
            artist=metadata.artist or disc.artist,
            album=metadata.album or disc.album,
            musicbrainz_id=metadata.musicbrainz_id,
            year=metadata.year if metadata.year is not None else disc.year,
            cover_art_path=metadata.cover_art_path or disc.cover_art_path,
            track_count=metadata.track_count,
            duration_seconds=metadata.duration_seconds,
            medium_position=metadata.medium_position,
        )
        async with self._session_scope() as session:
            await DiscRepository(session).upsert(enriched, metadata.tracks)

        logger.info(
            "Enriched %d:%d with release %s (%d tracks)",
            disc.player,
            disc.position,
            metadata.musicbrainz_id,
            metadata.track_count,
        )
        await self._publisher.broadcast_metadata_updated(disc.player, disc.position)

    async def get_stats(self) -> dict[str, Any]:
        """Listening statistics for the stats page."""
        async with self._session_scope() as session:
            discs = DiscRepository(session)
            plays = TrackPlayRepository(session)

            total_discs = await discs.count()
            player1 = await discs.count(player=1)
            player2 = await discs.count(player=2)
            total_plays = await plays.total()
            top_discs = await plays.most_played_discs(STATS_TOP_N)
            counts = await plays.counts_for_discs(
                [d.id for d, _ in top_discs if d.id is not None]
            )
            top_tracks = await plays.most_played_tracks(STATS_TOP_N)
            recent = await discs.recently_played(STATS_TOP_N)

        most_played_albums = [
            {
                "id": disc.id,
                "player": disc.player,
                "position": disc.position,
                "artist": disc.artist,
                "album": disc.album,
                "track_count": disc.track_count,
                "cover_art_path": disc.cover_art_path,
                "total_track_plays": total,
                "album_plays": album_play_count(disc.track_count, counts.get(disc.id, {})),
            }
            for disc, total in top_discs
        ]
        recently_played = [
            {
                "player": disc.player,
                "position": disc.position,
                "artist": disc.artist,
                "album": disc.album,
                "cover_art_path": disc.cover_art_path,
                "last_played": disc.last_played.isoformat() if disc.last_played else None,
            }
            for disc in recent
        ]
        return {
            "totalDiscs": total_discs,
            "player1Discs": player1,
            "player2Discs": player2,
            "totalTrackPlays": total_plays,
            "mostPlayedAlbums": most_played_albums,
            "mostPlayedTracks": top_tracks,
            "recentlyPlayed": recently_played,
        }

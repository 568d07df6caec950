"""Metadata enrichment - MusicBrainz release data and Cover Art Archive covers.

Hey future me - the catalog starts out as hand-typed "artist / album" per slot. This
service turns that into a proper release: track list with durations, year, per-track
artists for compilations, and a cover image on disk at covers/p{player}-{position}.jpg
(served as /covers/...).

Multi-disc releases: a physical CD is ONE medium of a release, so medium_position
(1-based) picks which track list we store.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx

from jukebox.domain.entities import Track
from jukebox.domain.exceptions import (
    EntityNotFoundException,
    ExternalServiceError,
    ValidationException,
)
from jukebox.domain.ports import ICoverArtClient, IMusicBrainzClient
from jukebox.infrastructure.integrations.coverartarchive_client import (
    CoverArtArchiveClient,
)

logger = logging.getLogger(__name__)

MBID_LENGTH = 36
UNKNOWN = "Unknown"


@dataclass
class EnrichedRelease:
    """Disc metadata derived from one MusicBrainz release medium."""

    musicbrainz_id: str
    artist: str | None
    album: str | None
    year: int | None
    track_count: int
    duration_seconds: int
    medium_position: int
    media_count: int
    tracks: list[Track] = field(default_factory=list)
    cover_art_path: str | None = None


def _credit_name(credits: list[dict[str, Any]] | None) -> str | None:
    """First credited artist name (the release artist convention)."""
    if credits:
        return credits[0].get("name")
    return None


def _joined_credit(credits: list[dict[str, Any]] | None) -> str | None:
    """Full artist credit, e.g. "Artist A feat. Artist B"."""
    if not credits:
        return None
    return "".join(c.get("name", "") + (c.get("joinphrase") or "") for c in credits)


def _parse_year(date: str | None) -> int | None:
    if not date:
        return None
    try:
        return int(date.split("-")[0])
    except ValueError:
        return None


def release_to_metadata(release: dict[str, Any], medium_position: int = 1) -> EnrichedRelease:
    """Map a MusicBrainz release (with recordings) to disc metadata.

    A track artist is only kept when it differs from the release artist, so regular
    albums end up with no per-track artists at all.
    """
    media = release.get("media") or []
    release_artist = _credit_name(release.get("artist-credit"))

    medium = media[medium_position - 1] if 0 < medium_position <= len(media) else None
    tracks: list[Track] = []
    for index, mb_track in enumerate((medium or {}).get("tracks") or [], start=1):
        recording = mb_track.get("recording") or {}
        track_artist = _joined_credit(recording.get("artist-credit"))
        length = mb_track.get("length")
        tracks.append(
            Track(
                track_number=index,
                title=mb_track.get("title", f"Track {index}"),
                duration_seconds=round(length / 1000) if length else None,
                artist=track_artist if track_artist and track_artist != release_artist else None,
            )
        )

    return EnrichedRelease(
        musicbrainz_id=release["id"],
        artist=release_artist,
        album=release.get("title"),
        year=_parse_year(release.get("date")),
        track_count=len(tracks),
        duration_seconds=sum(t.duration_seconds or 0 for t in tracks),
        medium_position=medium_position,
        media_count=len(media) or 1,
        tracks=tracks,
    )


def release_to_suggestion(release: dict[str, Any]) -> dict[str, Any]:
    """Map a MusicBrainz release to the match-fixer suggestion shape."""
    media = release.get("media") or []
    formats: list[str] = []
    for medium in media:
        fmt = medium.get("format")
        if fmt and fmt not in formats:
            formats.append(fmt)

    label_info = release.get("label-info") or []
    label = (label_info[0].get("label") or {}).get("name") if label_info else None

    return {
        "id": release["id"],
        "title": release.get("title") or UNKNOWN,
        "artist": _credit_name(release.get("artist-credit")) or UNKNOWN,
        "date": release.get("date") or UNKNOWN,
        "country": release.get("country") or UNKNOWN,
        "label": label or UNKNOWN,
        "format": " + ".join(formats) if formats else UNKNOWN,
        "mediaCount": len(media) or 1,
        "coverArtUrl": CoverArtArchiveClient.thumbnail_url(release["id"], 250),
    }


class EnrichmentService:
    """Looks up releases and produces disc metadata plus cover art."""

    def __init__(
        self,
        musicbrainz: IMusicBrainzClient,
        cover_art: ICoverArtClient,
        covers_path: Path,
        covers_url_prefix: str = "/covers",
    ) -> None:
        """Initialize the service.

        Args:
            musicbrainz: MusicBrainz client
            cover_art: Cover Art Archive client
            covers_path: Directory cover images are written to
            covers_url_prefix: URL path the directory is served under
        """
        self._musicbrainz = musicbrainz
        self._cover_art = cover_art
        self._covers_path = Path(covers_path)
        self._covers_url_prefix = covers_url_prefix.rstrip("/")

    async def search_suggestions(self, artist: str, album: str) -> list[dict[str, Any]]:
        """Candidate releases for the match fixer (up to 5).

        Raises:
            ExternalServiceError: If MusicBrainz is unreachable or errors
        """
        try:
            releases = await self._musicbrainz.search_release(artist, album, limit=5)
        except httpx.HTTPError as e:
            raise ExternalServiceError(
                f"MusicBrainz search failed: {e}", service="musicbrainz"
            ) from e
        return [release_to_suggestion(r) for r in releases]

    async def lookup_release(self, mbid: str) -> dict[str, Any]:
        """One release in suggestion shape.

        Raises:
            ValidationException: If mbid is not a 36 character MusicBrainz id
            EntityNotFoundException: If MusicBrainz doesn't know the release
            ExternalServiceError: If MusicBrainz is unreachable or errors
        """
        if not mbid or len(mbid) != MBID_LENGTH:
            raise ValidationException("Valid MusicBrainz ID required")
        release = await self._get_release(mbid)
        return release_to_suggestion(release)

    async def _get_release(self, release_id: str) -> dict[str, Any]:
        try:
            release = await self._musicbrainz.lookup_release(release_id)
        except httpx.HTTPError as e:
            raise ExternalServiceError(
                f"MusicBrainz release lookup failed: {e}", service="musicbrainz"
            ) from e
        if release is None:
            raise EntityNotFoundException("Release", release_id)
        return release

    async def fetch_release_metadata(
        self, release_id: str, medium_position: int = 1
    ) -> EnrichedRelease:
        """Release details mapped to disc metadata (no cover download)."""
        release = await self._get_release(release_id)
        return release_to_metadata(release, medium_position)

    async def download_cover(
        self, release_id: str, player: int, position: int, overwrite: bool = False
    ) -> str | None:
        """Store the release's front cover for a slot.

        An existing file for the slot is reused unless overwrite is set. Missing
        artwork and download failures both end up as None; a disc without a cover
        is still a fine disc.

        Returns:
            Public URL path of the cover (e.g. "/covers/p1-25.jpg") or None
        """
        filename = f"p{player}-{position}.jpg"
        target = self._covers_path / filename
        url = f"{self._covers_url_prefix}/{filename}"

        if target.exists() and not overwrite:
            logger.debug("Cover for %d:%d already on disk", player, position)
            return url

        try:
            image = await self._cover_art.download_front_cover(release_id)
        except httpx.HTTPError as e:
            logger.warning("Cover download for release %s failed: %s", release_id, e)
            return None
        if image is None:
            logger.info("No cover art available for release %s", release_id)
            return None

        self._covers_path.mkdir(parents=True, exist_ok=True)
        target.write_bytes(image)
        logger.info("Downloaded cover art for %d:%d", player, position)
        return url

    async def enrich(
        self,
        player: int,
        position: int,
        artist: str,
        album: str,
        release_id: str | None = None,
        medium_position: int = 1,
    ) -> EnrichedRelease:
        """Resolve a release for a slot and gather its metadata and cover.

        Without release_id the first MusicBrainz search hit for artist/album is used.

        Raises:
            EntityNotFoundException: If no release matches
            ExternalServiceError: On MusicBrainz network/HTTP errors
        """
        mbid = release_id
        if not mbid:
            try:
                results = await self._musicbrainz.search_release(artist, album, limit=5)
            except httpx.HTTPError as e:
                raise ExternalServiceError(
                    f"MusicBrainz search failed: {e}", service="musicbrainz"
                ) from e
            if not results:
                raise EntityNotFoundException("Release", f"{artist} - {album}")
            mbid = results[0]["id"]
            logger.info(
                "MusicBrainz match for %d:%d: %s (%s)",
                player,
                position,
                results[0].get("title"),
                mbid,
            )

        metadata = await self.fetch_release_metadata(mbid, medium_position)
        # An explicitly chosen release replaces whatever cover the slot had
        metadata.cover_art_path = await self.download_cover(
            mbid, player, position, overwrite=bool(release_id)
        )
        return metadata

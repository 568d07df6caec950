"""MusicBrainz release search and lookup."""

import logging
from typing import Any, cast

import httpx

from jukebox.config.settings import MusicBrainzSettings
from jukebox.domain.ports import IMusicBrainzClient
from jukebox.infrastructure.integrations.throttled_client import ThrottledHttpClient

logger = logging.getLogger(__name__)

# recordings: per-medium track lists; artist-credits: per-track artists on compilations;
# labels: shown in the match-fixer suggestions
RELEASE_INCLUDES = "recordings+artist-credits+labels"


def release_query(artist: str, album: str) -> str:
    """Lucene query for a release by artist and title.

    Hey future me - the quotes matter. Unquoted, "The Wall" turns into "the OR wall" and
    auto-enrichment (which trusts the first hit) picks garbage.
    """
    parts = []
    if artist:
        parts.append(f'artist:"{artist}"')
    if album:
        parts.append(f'release:"{album}"')
    return " AND ".join(parts)


class MusicBrainzClient(ThrottledHttpClient, IMusicBrainzClient):
    """MusicBrainz web service client.

    MusicBrainz allows 1 request/sec per client and bans IPs that ignore it, and it
    rejects requests without an "App/Version ( contact )" User-Agent.
    """

    API_BASE_URL = "https://musicbrainz.org/ws/2"
    RATE_LIMIT_DELAY = 1.1

    def __init__(self, settings: MusicBrainzSettings) -> None:
        super().__init__()
        self.settings = settings

    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": (
                f"{self.settings.app_name}/{self.settings.app_version} "
                f"( {self.settings.contact} )"
            ),
            "Accept": "application/json",
        }

    async def search_release(
        self, artist: str, album: str, limit: int = 5
    ) -> list[dict[str, Any]]:
        """Releases matching artist and title, best match first.

        Raises:
            httpx.HTTPError: On network errors and error responses
        """
        response = await self._rate_limited_request(
            "GET",
            "/release",
            params={"query": release_query(artist, album), "fmt": "json", "limit": limit},
        )
        response.raise_for_status()
        releases = cast(list[dict[str, Any]], response.json().get("releases", []))
        logger.debug("MusicBrainz: %d releases for %s / %s", len(releases), artist, album)
        return releases

    async def lookup_release(self, release_id: str) -> dict[str, Any] | None:
        """Full release with media and recordings; None for an unknown (or merged) id.

        Raises:
            httpx.HTTPError: On network errors and non-404 error responses
        """
        response = await self._rate_limited_request(
            "GET",
            f"/release/{release_id}",
            params={"fmt": "json", "inc": RELEASE_INCLUDES},
        )
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.info("MusicBrainz release %s not found", release_id)
                return None
            raise
        return cast(dict[str, Any], response.json())

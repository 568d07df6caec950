"""Cover Art Archive client.

Hey future me - CAA is the artwork side of MusicBrainz: keyed by release MBID, no API
key, pre-sized thumbnails. /release/{mbid}/front-500 answers with a 307 to the image on
archive.org, hence follow_redirects. Plenty of pressings have no artwork at all, so 404
just means "no cover".
"""

import logging
from typing import Any

from jukebox.domain.ports import ICoverArtClient
from jukebox.infrastructure.integrations.throttled_client import ThrottledHttpClient

logger = logging.getLogger(__name__)

COVER_SIZE = 500


class CoverArtArchiveClient(ThrottledHttpClient, ICoverArtClient):
    """Downloads front covers of MusicBrainz releases."""

    API_BASE_URL = "https://coverartarchive.org"
    RATE_LIMIT_DELAY = 0.2

    def __init__(self, user_agent: str = "CDJukebox/1.0") -> None:
        super().__init__()
        self.user_agent = user_agent

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent}

    def _client_options(self) -> dict[str, Any]:
        return {"follow_redirects": True}

    @staticmethod
    def thumbnail_url(release_mbid: str, size: int = 250) -> str:
        """Public thumbnail URL for the UI (no request made)."""
        return f"{CoverArtArchiveClient.API_BASE_URL}/release/{release_mbid}/front-{size}"

    async def download_front_cover(self, release_id: str) -> bytes | None:
        """JPEG bytes of the release's front cover, None if it has none.

        Raises:
            httpx.HTTPError: On network errors and non-404 error responses
        """
        response = await self._rate_limited_request(
            "GET", f"/release/{release_id}/front-{COVER_SIZE}"
        )
        if response.status_code == 404:
            logger.debug("No front cover for release %s", release_id)
            return None
        response.raise_for_status()
        return response.content

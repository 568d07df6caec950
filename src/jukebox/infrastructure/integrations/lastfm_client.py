"""Last.fm client: web auth and scrobbling."""

import hashlib
import logging
from typing import Any, cast
from urllib.parse import urlencode

from jukebox.config.settings import LastfmSettings
from jukebox.domain.entities import ScrobbleTrack
from jukebox.domain.exceptions import ConfigurationError, ExternalServiceError
from jukebox.domain.ports import ILastfmClient
from jukebox.infrastructure.integrations.throttled_client import ThrottledHttpClient

logger = logging.getLogger(__name__)


def sign(params: dict[str, str], secret: str) -> str:
    """Last.fm api_sig: md5 over the key/value pairs sorted by key, then the secret."""
    payload = "".join(f"{key}{params[key]}" for key in sorted(params)) + secret
    # md5 is what the Last.fm API specifies; not used for security
    return hashlib.md5(payload.encode("utf-8"), usedforsecurity=False).hexdigest()  # nosec B324


class LastfmClient(ThrottledHttpClient, ILastfmClient):
    """Signed calls against the Last.fm 2.0 API.

    Hey future me - one scrobble per track start plus a now-playing call means we are far
    below Last.fm's 5 req/sec, the spacing below just keeps retries polite.
    """

    API_BASE_URL = "https://ws.audioscrobbler.com/2.0/"
    AUTH_URL = "https://www.last.fm/api/auth/"
    RATE_LIMIT_DELAY = 0.2

    def __init__(self, settings: LastfmSettings) -> None:
        super().__init__()
        self.settings = settings
        self._session_key: str | None = settings.session_key or None

    @property
    def is_configured(self) -> bool:
        return self.settings.is_configured

    @property
    def is_authenticated(self) -> bool:
        return bool(self._session_key)

    @property
    def session_key(self) -> str | None:
        return self._session_key

    def set_session_key(self, session_key: str | None) -> None:
        """Use a user session for signed calls (None logs out)."""
        self._session_key = session_key or None

    def get_auth_url(self, callback_url: str) -> str:
        """Page where the user grants this app access; Last.fm returns to callback_url."""
        query = urlencode({"api_key": self.settings.api_key, "cb": callback_url})
        return f"{self.AUTH_URL}?{query}"

    # Yo, two Last.fm quirks live here. `format` is NOT signed (sign first, add it after,
    # or every call fails with error 13). And API errors come back as a 4xx WITH a JSON
    # body {"error": n, "message": ...}, so the body is read before the status.
    async def _call(
        self, method: str, params: dict[str, Any], with_session: bool = True
    ) -> dict[str, Any]:
        """POST one signed API method.

        None-valued params are left out.

        Raises:
            ConfigurationError: Missing API credentials, or no session where one is needed
            ExternalServiceError: Last.fm answered with an API error
            httpx.HTTPError: On network errors
        """
        if not self.is_configured:
            raise ConfigurationError("Last.fm API key/secret not configured")
        if with_session and not self._session_key:
            raise ConfigurationError("Not authenticated with Last.fm")

        form = {"method": method, "api_key": self.settings.api_key}
        form.update({k: str(v) for k, v in params.items() if v is not None})
        if with_session:
            form["sk"] = cast(str, self._session_key)
        form["api_sig"] = sign(form, self.settings.api_secret)
        form["format"] = "json"

        logger.debug("Last.fm %s", method)
        response = await self._rate_limited_request("POST", "", data=form)
        try:
            body = response.json()
        except ValueError:
            response.raise_for_status()
            raise ExternalServiceError(
                f"Last.fm sent a non-JSON answer to {method}", service="lastfm"
            ) from None

        if isinstance(body, dict) and "error" in body:
            raise ExternalServiceError(
                f"Last.fm error {body['error']}: {body.get('message', 'unknown error')}",
                service="lastfm",
            )
        response.raise_for_status()
        return cast(dict[str, Any], body)

    async def get_session(self, token: str) -> dict[str, Any]:
        """Trade the callback token for {"name": username, "key": session key}."""
        body = await self._call("auth.getSession", {"token": token}, with_session=False)
        return cast(dict[str, Any], body.get("session", {}))

    async def update_now_playing(self, track: ScrobbleTrack) -> dict[str, Any]:
        body = await self._call(
            "track.updateNowPlaying",
            {
                "artist": track.artist,
                "track": track.title,
                "album": track.album or None,
                "duration": track.duration or None,
            },
        )
        logger.info("Now playing on Last.fm: %s - %s", track.artist, track.title)
        return body

    # track.scrobble takes batches, hence the [0] suffixes; we always send exactly one.
    async def scrobble(self, track: ScrobbleTrack, timestamp: int) -> dict[str, Any]:
        """Scrobble one listen; timestamp is when the track STARTED (unix seconds)."""
        body = await self._call(
            "track.scrobble",
            {
                "artist[0]": track.artist,
                "track[0]": track.title,
                "timestamp[0]": timestamp,
                "album[0]": track.album or None,
                "duration[0]": track.duration or None,
                "trackNumber[0]": track.track_number or None,
            },
        )
        logger.info("Scrobbled to Last.fm: %s - %s", track.artist, track.title)
        return body

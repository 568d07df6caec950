"""Last.fm account link - web auth flow and session persistence.

Flow:
1. UI asks GET /api/lastfm/auth-url and sends the user there
2. Last.fm redirects back to our callback with ?token=...
3. complete(token) exchanges it for a session key via auth.getSession
4. The key is stored in lastfm_sessions and handed to the client

A LASTFM_SESSION_KEY in the environment wins over the stored session.
"""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from jukebox.domain.exceptions import ConfigurationError, ExternalServiceError
from jukebox.application.services.scrobble_scheduler import ScrobbleScheduler
from jukebox.domain.ports import ILastfmClient
from jukebox.infrastructure.persistence.repositories import LastfmSessionRepository

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class LastfmAccountService:
    """Links and unlinks the Last.fm account used for scrobbling."""

    def __init__(
        self,
        lastfm: ILastfmClient,
        session_scope: SessionScope,
        env_session_key: str | None = None,
        scheduler: ScrobbleScheduler | None = None,
    ) -> None:
        self._lastfm = lastfm
        self._scheduler = scheduler
        self._session_scope = session_scope
        self._env_session_key = env_session_key or None
        self._username: str | None = None

    async def status(self) -> dict[str, Any]:
        """Whether scrobbling is configured and linked, and to whom."""
        return {
            "configured": self._lastfm.is_configured,
            "authenticated": self._lastfm.is_authenticated,
            "username": self._username,
        }

    def auth_url(self, callback_url: str) -> str:
        """Last.fm page where the user grants access.

        Raises:
            ConfigurationError: If no API key/secret is configured
        """
        if not self._lastfm.is_configured:
            raise ConfigurationError("Last.fm API key/secret not configured")
        return self._lastfm.get_auth_url(callback_url)

    async def complete(self, token: str) -> str:
        """Exchange the callback token for a session and persist it.

        Returns:
            The Last.fm username

        Raises:
            ConfigurationError: If no API key/secret is configured
            ExternalServiceError: If Last.fm rejects the token
        """
        if not self._lastfm.is_configured:
            raise ConfigurationError("Last.fm API key/secret not configured")

        session = await self._lastfm.get_session(token)
        username, key = session.get("name"), session.get("key")
        if not key:
            raise ExternalServiceError("Last.fm returned no session key", service="lastfm")

        async with self._session_scope() as db:
            await LastfmSessionRepository(db).save(username or "", key)

        self._lastfm.set_session_key(key)
        self._username = username
        logger.info("Last.fm account linked: %s", username)
        return username or ""

    async def disconnect(self) -> None:
        """Forget the stored session and stop scrobbling."""
        # a scrobble waiting in the slot would fire with no session key
        if self._scheduler is not None:
            self._scheduler.cancel()
        async with self._session_scope() as db:
            await LastfmSessionRepository(db).delete()
        self._lastfm.set_session_key(None)
        self._username = None
        logger.info("Last.fm account disconnected")

    async def restore(self) -> bool:
        """Load the stored session into the client at startup.

        Returns:
            True if the client ends up authenticated
        """
        if self._env_session_key:
            self._lastfm.set_session_key(self._env_session_key)
            logger.info("Using Last.fm session key from environment")
            return True

        async with self._session_scope() as db:
            stored = await LastfmSessionRepository(db).get()
            key = stored.session_key if stored else None
            username = stored.username if stored else None

        if key:
            self._lastfm.set_session_key(key)
            self._username = username
            logger.info("Restored Last.fm session for %s", username)
            return True
        return False

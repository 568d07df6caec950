"""Scrobble scheduler - now-playing right away, scrobble once enough of the track played.

Hey future me - there is exactly ONE slot. Every track start cancels whatever is in it
and puts a fresh task there, synchronously, in the same call:

    on_track_start(1, 5, 3)
      ├─ cancel old task (if any)        <- old task never reaches the Last.fm call
      ├─ not configured/authenticated?   -> done
      └─ spawn task:
            resolve metadata from the catalog
            track.updateNowPlaying        (failure logged, we keep going)
            sleep min(duration/2, 240s)
            track.scrobble(timestamp = when the track STARTED)

Pause/stop cancels the slot, so a track only scrobbles if it kept playing for the
delay. Everything lives in memory; a restart drops the pending scrobble.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from jukebox.domain.entities import (
    DEFAULT_TRACK_DURATION,
    SCROBBLE_MAX_DELAY,
    PendingScrobble,
    ScrobbleTrack,
    scrobble_delay,
)
from jukebox.domain.ports import ILastfmClient, call_upstream
from jukebox.infrastructure.persistence.repositories import DiscRepository

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]
SleepFunc = Callable[[float], Awaitable[None]]


class ScrobbleScheduler:
    """Single-slot deferred scrobbler."""

    def __init__(
        self,
        lastfm: ILastfmClient,
        session_scope: SessionScope,
        max_delay: float = SCROBBLE_MAX_DELAY,
        default_duration: float = DEFAULT_TRACK_DURATION,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the scheduler.

        Args:
            lastfm: Scrobble API client
            session_scope: Factory for DB sessions, used to look up track metadata
            max_delay: Upper bound for the scrobble delay in seconds
            default_duration: Duration assumed for tracks without one
            sleep: Sleep coroutine (tests pass a fake to skip the wait)
        """
        self._lastfm = lastfm
        self._session_scope = session_scope
        self._max_delay = max_delay
        self._default_duration = default_duration
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None
        self._pending: PendingScrobble | None = None

    @property
    def pending(self) -> PendingScrobble | None:
        """The scrobble currently waiting for its commit, if any."""
        return self._pending

    @property
    def task(self) -> asyncio.Task[None] | None:
        """The slot task (exposed for tests and shutdown)."""
        return self._task

    def on_track_start(self, player: int, disc: int, track: int) -> None:
        """Start the now-playing/scrobble cycle for a newly started track.

        Must be called from inside the running event loop. Never blocks on the network.
        """
        self.cancel()

        if not self._lastfm.is_configured or not self._lastfm.is_authenticated:
            logger.debug("Last.fm not configured/authenticated, skipping scrobble")
            return

        started_at = int(time.time())
        self._task = asyncio.create_task(
            self._run(player, disc, track, started_at),
            name=f"scrobble-p{player}-d{disc}-t{track}",
        )

    def on_playback_stopped(self) -> None:
        """Drop the pending scrobble; the track didn't play long enough."""
        if self.cancel():
            logger.debug("Pending scrobble cancelled (playback paused/stopped)")

    def cancel(self) -> bool:
        """Cancel the slot task.

        Returns:
            True if a running task was cancelled
        """
        task, self._task = self._task, None
        self._pending = None
        if task is not None and not task.done():
            task.cancel()
            return True
        return False

    async def shutdown(self) -> None:
        """Cancel the slot and wait for the task to finish unwinding."""
        task = self._task
        self.cancel()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def _resolve_track(
        self, player: int, disc: int, track: int
    ) -> ScrobbleTrack | None:
        """Look up scrobble metadata in the catalog.

        Missing disc -> None (nothing sensible to scrobble). Missing track row -> title
        "Track N" with unknown duration. Track artist falls back to the disc artist.
        """
        async with self._session_scope() as session:
            repo = DiscRepository(session)
            disc_entity = await repo.get_by_slot(player, disc, include_tracks=False)
            if disc_entity is None:
                return None
            track_entity = await repo.get_track(player, disc, track)

        if track_entity is None:
            return ScrobbleTrack(
                artist=disc_entity.artist,
                title=f"Track {track}",
                album=disc_entity.album,
                duration=None,
                track_number=track,
            )
        return ScrobbleTrack(
            artist=track_entity.artist or disc_entity.artist,
            title=track_entity.title,
            album=disc_entity.album,
            duration=track_entity.duration_seconds,
            track_number=track,
        )

    async def _run(self, player: int, disc: int, track: int, started_at: int) -> None:
        me = asyncio.current_task()
        try:
            try:
                info = await self._resolve_track(player, disc, track)
            except SQLAlchemyError as e:
                logger.warning("Scrobble metadata lookup failed: %s", e)
                return
            if info is None:
                logger.warning(
                    "Cannot scrobble player %d disc %d: disc not in catalog", player, disc
                )
                return

            if me is self._task:
                self._pending = PendingScrobble(
                    player=player,
                    disc=disc,
                    track=track,
                    artist=info.artist,
                    title=info.title,
                    album=info.album,
                    duration=info.duration,
                    started_at=started_at,
                )

            now_playing = await call_upstream(
                "lastfm.update_now_playing", self._lastfm.update_now_playing(info)
            )
            if not now_playing.success:
                logger.info("Now playing update failed, scrobble stays scheduled")

            delay = scrobble_delay(info.duration, self._max_delay, self._default_duration)
            logger.debug(
                "Scrobble for %s - %s scheduled in %.0fs", info.artist, info.title, delay
            )
            await self._sleep(delay)

            result = await call_upstream(
                "lastfm.scrobble", self._lastfm.scrobble(info, started_at)
            )
            if result.success:
                logger.info("Scrobbled %s - %s", info.artist, info.title)
        finally:
            if me is self._task:
                self._task = None
                self._pending = None

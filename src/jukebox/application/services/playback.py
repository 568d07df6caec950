"""Playback state machine - the ONE writer of the playback_state row.

Hey future me - the device is the source of truth. Control requests only queue
commands; the state only changes when the device reports back via POST /api/state.
Reports are applied strictly in arrival order behind an asyncio.Lock, so the
read-previous/compare/write sequence below can't interleave.

Track-change rule: a report with state=play whose (player, disc, track) differs from
the stored tuple is a NEW track start. That is the only place play history gets
written and the only trigger for a scrobble. A repeated play report for the same
tuple (device re-sends after a WiFi hiccup) changes nothing but updated_at.
"""

import asyncio
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from jukebox.application.services.scrobble_scheduler import ScrobbleScheduler
from jukebox.domain.entities import (
    MAX_POSITION,
    MIN_POSITION,
    PLAYER_NUMBERS,
    Command,
    CommandVerb,
    PlaybackSnapshot,
    PlaybackState,
    PlaybackStatus,
    TrackPlayEvent,
    utc_now,
)
from jukebox.domain.exceptions import ValidationException
from jukebox.domain.ports import IRealtimePublisher
from jukebox.infrastructure.persistence.repositories import (
    DiscRepository,
    PlaybackStateRepository,
    TrackPlayRepository,
)

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def validate_report(
    player: int | None, disc: int | None, track: int | None, state: str | None
) -> PlaybackStatus:
    """Validate a device state report.

    Returns:
        The parsed playback status

    Raises:
        ValidationException: If any field is missing or out of range
    """
    if player is None or disc is None or track is None or not state:
        raise ValidationException(
            "Missing required fields (player, disc, track, state)"
        )
    if player not in PLAYER_NUMBERS:
        raise ValidationException(f"Invalid player {player}: must be 1 or 2")
    if not MIN_POSITION <= disc <= MAX_POSITION:
        raise ValidationException(
            f"Invalid disc {disc}: must be {MIN_POSITION}-{MAX_POSITION}"
        )
    if track < 1:
        raise ValidationException(f"Invalid track {track}: must be >= 1")
    try:
        status = PlaybackStatus(state)
    except ValueError:
        raise ValidationException(f"Invalid state {state!r}") from None
    if not status.is_reportable:
        raise ValidationException(f"State {state!r} cannot be reported by the device")
    return status


class PlaybackStateMachine:
    """Reconciles device reports into the singleton state and its side effects."""

    def __init__(
        self,
        session_scope: SessionScope,
        scheduler: ScrobbleScheduler,
        publisher: IRealtimePublisher,
    ) -> None:
        """Initialize the state machine.

        Args:
            session_scope: Factory for transactional DB sessions
            scheduler: Scrobble scheduler notified on track start/stop
            publisher: Realtime fan-out for `state` events
        """
        self._session_scope = session_scope
        self._scheduler = scheduler
        self._publisher = publisher
        self._lock = asyncio.Lock()

    async def report_state(
        self,
        player: int | None,
        disc: int | None,
        track: int | None,
        state: str | None,
    ) -> PlaybackSnapshot:
        """Apply a state report from the device.

        Overwrites the singleton unconditionally. On a new track start the play is
        appended to the history (if the disc is in the catalog) and the scrobble
        scheduler is told; any non-play state cancels the pending scrobble. A `state`
        event with the fresh projection goes out in every case.

        Returns:
            The projection after the update

        Raises:
            ValidationException: If the report is incomplete or invalid (nothing is applied)
        """
        status = validate_report(player, disc, track, state)
        assert player is not None and disc is not None and track is not None

        async with self._lock:
            now = utc_now()
            async with self._session_scope() as session:
                state_repo = PlaybackStateRepository(session)
                previous = await state_repo.get()
                current = PlaybackState(
                    current_player=player,
                    current_disc=disc,
                    current_track=track,
                    state=status,
                    updated_at=now,
                )
                await state_repo.save(current)

                track_started = (
                    status is PlaybackStatus.PLAY
                    and current.track_key != previous.track_key
                )
                if track_started:
                    await self._record_play(session, player, disc, track, now)

            # Scheduler calls only after the commit above went through
            if track_started:
                logger.info("Track started: player %d disc %d track %d", player, disc, track)
                self._scheduler.on_track_start(player, disc, track)
            elif status is not PlaybackStatus.PLAY:
                self._scheduler.on_playback_stopped()

            snapshot = await self.get_state()

        # sent after the lock is released; observers treat each event as a full snapshot
        await self._publisher.broadcast_state(snapshot.to_dict())
        return snapshot

    async def _record_play(
        self,
        session: AsyncSession,
        player: int,
        disc: int,
        track: int,
        now: datetime,
    ) -> None:
        disc_repo = DiscRepository(session)
        disc_entity = await disc_repo.get_by_slot(player, disc, include_tracks=False)
        if disc_entity is None or disc_entity.id is None:
            logger.debug("Play of unknown disc %d:%d not recorded", player, disc)
            return
        await TrackPlayRepository(session).add(
            TrackPlayEvent(disc_id=disc_entity.id, track_number=track, played_at=now)
        )
        await disc_repo.touch_last_played(disc_entity.id, now)

    async def get_state(self) -> PlaybackSnapshot:
        """Current state joined with disc and track metadata."""
        async with self._session_scope() as session:
            state = await PlaybackStateRepository(session).get()
            return await self._project(session, state)

    async def _project(
        self, session: AsyncSession, state: PlaybackState
    ) -> PlaybackSnapshot:
        snapshot = PlaybackSnapshot(
            current_player=state.current_player,
            current_disc=state.current_disc,
            current_track=state.current_track,
            state=state.state,
            updated_at=state.updated_at,
        )
        if state.current_player is None or state.current_disc is None:
            return snapshot

        repo = DiscRepository(session)
        disc = await repo.get_by_slot(
            state.current_player, state.current_disc, include_tracks=False
        )
        if disc is None:
            return snapshot

        track = None
        if state.current_track is not None:
            track = await repo.get_track(
                state.current_player, state.current_disc, state.current_track
            )

        return PlaybackSnapshot(
            current_player=state.current_player,
            current_disc=state.current_disc,
            current_track=state.current_track,
            state=state.state,
            updated_at=state.updated_at,
            artist=disc.artist,
            album=disc.album,
            year=disc.year,
            cover_art_path=disc.cover_art_path,
            track_title=track.title if track else None,
            track_duration=track.duration_seconds if track else None,
            track_artist=track.artist if track else None,
        )

    # Yo, this is the "loading" flash in the UI. Nothing is persisted - the real state
    # arrives when the device reports. For a play command the projection already points
    # at the requested disc so the UI can show its cover while the changer spins up.
    async def announce_command(self, command: Command) -> PlaybackSnapshot:
        """Broadcast a transient `loading` projection for a freshly queued command."""
        async with self._session_scope() as session:
            state = await PlaybackStateRepository(session).get()
            if command.verb is CommandVerb.PLAY and command.player and command.disc:
                state = PlaybackState(
                    current_player=command.player,
                    current_disc=command.disc,
                    current_track=command.track or 1,
                    state=state.state,
                    updated_at=state.updated_at,
                )
            snapshot = await self._project(session, state)

        loading = snapshot.as_loading(command.id)
        await self._publisher.broadcast_state(loading.to_dict())
        return loading

"""Application lifecycle management for startup and shutdown tasks.

This module handles the FastAPI lifespan context manager: logging, storage
directories, database, upstream clients, the services that live for the whole
process, and the command cleanup worker.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from jukebox.application.services import (
    CatalogService,
    CommandQueue,
    EnrichmentService,
    LastfmAccountService,
    PlaybackStateMachine,
    ScrobbleScheduler,
)
from jukebox.application.workers import (
    CommandCleanupWorker,
    create_command_cleanup_worker,
)
from jukebox.config import Settings, get_settings
from jukebox.domain.exceptions import ConfigurationError
from jukebox.infrastructure.integrations import (
    CoverArtArchiveClient,
    LastfmClient,
    MusicBrainzClient,
)
from jukebox.infrastructure.observability import configure_logging
from jukebox.infrastructure.persistence import Database, PlaybackStateRepository
from jukebox.infrastructure.realtime import StateBroadcaster

logger = logging.getLogger(__name__)


@dataclass
class AppComponents:
    """Everything the routes reach through app.state."""

    db: Database
    broadcaster: StateBroadcaster
    musicbrainz: MusicBrainzClient
    cover_art: CoverArtArchiveClient
    lastfm: LastfmClient
    command_queue: CommandQueue
    scheduler: ScrobbleScheduler
    playback: PlaybackStateMachine
    enrichment: EnrichmentService
    catalog: CatalogService
    lastfm_account: LastfmAccountService
    cleanup_worker: CommandCleanupWorker


def _validate_sqlite_path(settings: Settings) -> None:
    """Make sure the SQLite directory exists and is writable before the engine starts.

    SQLite creates journal/WAL files next to the .db file, so the whole
    directory must be writable, not just the file.
    """
    db_path = settings._get_sqlite_db_path()
    if db_path is None:
        return

    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        test_file = db_path.parent / f".{db_path.stem}_write_test"
        test_file.write_bytes(b"test")
        test_file.unlink()
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to write files in database directory '{db_path.parent}': {exc}. "
            "Update DATABASE_URL or adjust directory permissions."
        ) from exc


def build_components(settings: Settings, db: Database) -> AppComponents:
    """Wire clients, services and the cleanup worker together.

    Hey future me - the state machine, scheduler and broadcaster must exist exactly once
    per process: the state machine lock and the scheduler slot are per instance.
    """
    broadcaster = StateBroadcaster()
    musicbrainz = MusicBrainzClient(settings.musicbrainz)
    cover_art = CoverArtArchiveClient(
        user_agent=f"{settings.musicbrainz.app_name}/{settings.musicbrainz.app_version}"
    )
    lastfm = LastfmClient(settings.lastfm)

    command_queue = CommandQueue(
        db.session_scope,
        retention_seconds=settings.playback.command_retention_seconds,
    )
    scheduler = ScrobbleScheduler(
        lastfm,
        db.session_scope,
        max_delay=settings.playback.scrobble_max_delay,
        default_duration=settings.playback.default_track_duration,
    )
    playback = PlaybackStateMachine(db.session_scope, scheduler, broadcaster)
    enrichment = EnrichmentService(
        musicbrainz, cover_art, settings.storage.covers_path
    )
    catalog = CatalogService(
        db.session_scope,
        enrichment,
        broadcaster,
        auto_enrich=settings.playback.auto_enrich_on_fetch,
    )
    lastfm_account = LastfmAccountService(
        lastfm,
        db.session_scope,
        env_session_key=settings.lastfm.session_key,
        scheduler=scheduler,
    )
    cleanup_worker = create_command_cleanup_worker(
        command_queue, interval=settings.playback.command_cleanup_interval
    )

    return AppComponents(
        db=db,
        broadcaster=broadcaster,
        musicbrainz=musicbrainz,
        cover_art=cover_art,
        lastfm=lastfm,
        command_queue=command_queue,
        scheduler=scheduler,
        playback=playback,
        enrichment=enrichment,
        catalog=catalog,
        lastfm_account=lastfm_account,
        cleanup_worker=cleanup_worker,
    )


def attach_components(app: FastAPI, components: AppComponents) -> None:
    """Expose components on app.state for the API dependencies."""
    app.state.components = components
    app.state.db = components.db


# Listen future me, everything before `yield` runs at STARTUP, everything after at
# SHUTDOWN. The try/finally makes sure the DB and HTTP clients get closed even if
# startup blows up halfway.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    components: AppComponents | None = None
    cleanup_task: asyncio.Task[None] | None = None
    try:
        settings.ensure_directories()
        _validate_sqlite_path(settings)

        db = Database(settings)
        await db.create_tables()
        async with db.session_scope() as session:
            await PlaybackStateRepository(session).seed()
        logger.info("Database initialized: %s", settings.database.url)

        components = build_components(settings, db)
        attach_components(app, components)

        if components.lastfm.is_configured:
            try:
                await components.lastfm_account.restore()
            except SQLAlchemyError as e:
                logger.warning("Could not restore Last.fm session: %s", e)
        else:
            logger.info("Last.fm not configured, scrobbling disabled")

        cleanup_task = asyncio.create_task(components.cleanup_worker.start())
        logger.info("Application startup complete")

        yield

    finally:
        logger.info("Shutting down application")

        if components is not None:
            components.cleanup_worker.stop()
        if cleanup_task is not None:
            cleanup_task.cancel()
            with suppress(asyncio.CancelledError):
                await cleanup_task

        if components is not None:
            await components.scheduler.shutdown()
            await components.musicbrainz.close()
            await components.cover_art.close()
            await components.lastfm.close()
            await components.db.close()

        logger.info("Application shutdown complete")

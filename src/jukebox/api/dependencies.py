"""Dependency injection for API endpoints."""

from typing import cast

from fastapi import HTTPException, Request
from starlette.requests import HTTPConnection

from jukebox.application.services import (
    CatalogService,
    CommandQueue,
    EnrichmentService,
    LastfmAccountService,
    PlaybackStateMachine,
)
from jukebox.config import Settings, get_settings
from jukebox.infrastructure.lifecycle import AppComponents
from jukebox.infrastructure.realtime import StateBroadcaster


# Hey future me, everything here comes from app.state.components which lifespan() wires up
# at startup (see infrastructure/lifecycle.py). If it's missing, startup failed or a test
# forgot attach_components() - return 503 instead of an AttributeError 500.
def get_components(connection: HTTPConnection) -> AppComponents:
    """Get the wired application components from app state.

    Raises:
        HTTPException: 503 if the application is not initialized
    """
    if not hasattr(connection.app.state, "components"):
        raise HTTPException(status_code=503, detail="Application not initialized")
    return cast(AppComponents, connection.app.state.components)


def get_command_queue(request: Request) -> CommandQueue:
    return get_components(request).command_queue


def get_playback(request: Request) -> PlaybackStateMachine:
    return get_components(request).playback


def get_catalog(request: Request) -> CatalogService:
    return get_components(request).catalog


def get_enrichment(request: Request) -> EnrichmentService:
    return get_components(request).enrichment


def get_lastfm_account(request: Request) -> LastfmAccountService:
    return get_components(request).lastfm_account


def get_broadcaster(connection: HTTPConnection) -> StateBroadcaster:
    return get_components(connection).broadcaster


def get_app_settings(request: Request) -> Settings:
    """Settings the app was created with, falling back to the cached env settings."""
    settings = getattr(request.app.state, "settings", None)
    return cast(Settings, settings) if settings is not None else get_settings()

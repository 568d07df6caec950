"""Shared fixtures: in-memory database, doubles, disc seeding and the API client."""

from collections.abc import AsyncGenerator, Awaitable, Callable, Iterator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from jukebox.config.settings import (
    DatabaseSettings,
    LastfmSettings,
    PlaybackSettings,
    Settings,
    StorageSettings,
)
from jukebox.domain.entities import Disc, Track
from jukebox.infrastructure.lifecycle import AppComponents
from jukebox.infrastructure.persistence import Database
from jukebox.infrastructure.persistence.repositories import DiscRepository
from jukebox.main import create_app

MEMORY_DB_URL = "sqlite+aiosqlite:///:memory:"

SeedDisc = Callable[..., Awaitable[Disc]]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at an in-memory DB and a temp covers dir."""
    return Settings(
        database=DatabaseSettings(url=MEMORY_DB_URL),
        storage=StorageSettings(covers_path=tmp_path / "covers"),
    )


@pytest.fixture
async def db(settings: Settings) -> AsyncGenerator[Database, None]:
    """Fresh in-memory database with all tables."""
    database = Database(settings)
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
def publisher() -> MagicMock:
    """Realtime publisher that records broadcasts."""
    mock = MagicMock()
    mock.broadcast_state = AsyncMock()
    mock.broadcast_metadata_updated = AsyncMock()
    return mock


@pytest.fixture
def lastfm() -> MagicMock:
    """Configured + authenticated Last.fm client double."""
    mock = MagicMock()
    mock.is_configured = True
    mock.is_authenticated = True
    mock.update_now_playing = AsyncMock(return_value={})
    mock.scrobble = AsyncMock(return_value={})
    return mock


# Hey future me - titles=["A", "B"] creates tracks 1..n with a 100s duration.
# Pass tracks=[Track(...)] when a test needs per-track artists or other durations.
@pytest.fixture
def seed_disc(db: Database) -> SeedDisc:
    """Insert a disc (and optionally its tracks) directly through the repository."""

    async def _seed(
        player: int = 1,
        position: int = 5,
        artist: str = "Pink Floyd",
        album: str = "The Wall",
        titles: tuple[str, ...] | list[str] | None = None,
        tracks: list[Track] | None = None,
        **fields: Any,
    ) -> Disc:
        if titles is not None:
            tracks = [
                Track(track_number=i, title=title, duration_seconds=100)
                for i, title in enumerate(titles, start=1)
            ]
        disc = Disc(
            player=player, position=position, artist=artist, album=album, **fields
        )
        async with db.session_scope() as session:
            return await DiscRepository(session).upsert(disc, tracks)

    return _seed


# Auto-enrich is off so opening a disc page never reaches MusicBrainz from a test.
@pytest.fixture
def api_settings(tmp_path: Path) -> Settings:
    """Settings for the full app: in-memory DB, no Last.fm, no auto-enrichment."""
    return Settings(
        database=DatabaseSettings(url=MEMORY_DB_URL),
        storage=StorageSettings(covers_path=tmp_path / "covers"),
        lastfm=LastfmSettings(api_key="", api_secret="", session_key=""),
        playback=PlaybackSettings(auto_enrich_on_fetch=False),
    )


@pytest.fixture
def client(api_settings: Settings) -> Iterator[TestClient]:
    """TestClient with lifespan running (tables created, components wired)."""
    with TestClient(create_app(api_settings)) as test_client:
        yield test_client


@pytest.fixture
def components(client: TestClient) -> AppComponents:
    return client.app.state.components  # type: ignore[attr-defined]

"""Tests for application startup."""

from jukebox.config import Settings
from jukebox.infrastructure.lifecycle import lifespan
from jukebox.infrastructure.persistence.models import PlaybackStateModel
from jukebox.infrastructure.persistence.repositories import PLAYBACK_STATE_ID
from jukebox.main import create_app


class TestLifespan:
    async def test_startup_seeds_playback_state(self, api_settings: Settings) -> None:
        app = create_app(api_settings)

        async with lifespan(app):
            db = app.state.components.db
            async with db.session_scope() as session:
                model = await session.get(PlaybackStateModel, PLAYBACK_STATE_ID)

            assert model is not None
            assert model.state == "stop"

"""Tests for domain entities and the play-count / scrobble-timing rules."""

import re

import pytest

from jukebox.domain.entities import (
    Command,
    CommandVerb,
    Disc,
    PlaybackSnapshot,
    PlaybackState,
    PlaybackStatus,
    album_play_count,
    scrobble_delay,
    validate_slot,
)
from jukebox.domain.exceptions import ValidationException


class TestAlbumPlayCount:
    """An album counts as played only once every track was played."""

    def test_minimum_over_all_tracks(self) -> None:
        assert album_play_count(3, {1: 3, 2: 1, 3: 2}) == 1

    def test_unplayed_track_means_zero(self) -> None:
        assert album_play_count(3, {1: 3, 2: 0, 3: 2}) == 0

    def test_missing_track_entry_means_zero(self) -> None:
        assert album_play_count(3, {1: 3, 3: 2}) == 0

    def test_unknown_track_count_is_zero(self) -> None:
        assert album_play_count(None, {1: 5}) == 0
        assert album_play_count(0, {}) == 0

    def test_plays_beyond_track_count_are_ignored(self) -> None:
        assert album_play_count(2, {1: 2, 2: 2, 3: 0}) == 2


class TestScrobbleDelay:
    def test_half_of_short_track(self) -> None:
        assert scrobble_delay(100) == 50

    def test_capped_at_four_minutes(self) -> None:
        assert scrobble_delay(1000) == 240

    def test_unknown_duration_uses_default(self) -> None:
        assert scrobble_delay(None) == 90
        assert scrobble_delay(0) == 90

    def test_custom_bounds(self) -> None:
        assert scrobble_delay(600, max_delay=60) == 60
        assert scrobble_delay(None, default_duration=40) == 20


class TestValidateSlot:
    @pytest.mark.parametrize("player,position", [(1, 1), (2, 300), (1, 150)])
    def test_valid(self, player: int, position: int) -> None:
        validate_slot(player, position)

    @pytest.mark.parametrize(
        "player,position", [(0, 1), (3, 1), (1, 0), (1, 301), (None, 5), (1, None)]
    )
    def test_invalid(self, player, position) -> None:
        with pytest.raises(ValidationException):
            validate_slot(player, position)


class TestCommand:
    def test_create_assigns_unique_ids(self) -> None:
        ids = {Command.create(CommandVerb.PAUSE).id for _ in range(50)}
        assert len(ids) == 50

    def test_id_format(self) -> None:
        command = Command.create(CommandVerb.STOP)
        assert re.fullmatch(r"cmd-\d+-[0-9a-z]{9}", command.id)
        assert command.acknowledged is False

    def test_device_payload_renames_verb_and_omits_none(self) -> None:
        command = Command.create(CommandVerb.PLAY, player=1, disc=5, track=2)
        assert command.to_device_payload() == {
            "id": command.id,
            "action": "play",
            "player": 1,
            "disc": 5,
            "track": 2,
        }

        pause = Command.create(CommandVerb.PAUSE)
        assert pause.to_device_payload() == {"id": pause.id, "action": "pause"}


class TestPlaybackState:
    def test_loading_is_not_reportable(self) -> None:
        assert PlaybackStatus.PLAY.is_reportable
        assert not PlaybackStatus.LOADING.is_reportable

    def test_track_key_includes_player(self) -> None:
        a = PlaybackState(current_player=1, current_disc=5, current_track=2)
        b = PlaybackState(current_player=2, current_disc=5, current_track=2)
        assert a.track_key != b.track_key

    def test_snapshot_as_loading(self) -> None:
        snapshot = PlaybackSnapshot(
            current_player=1,
            current_disc=5,
            current_track=1,
            state=PlaybackStatus.PLAY,
            artist="Pink Floyd",
        )
        loading = snapshot.as_loading("cmd-1")
        data = loading.to_dict()

        assert data["state"] == "loading"
        assert data["pending_command_id"] == "cmd-1"
        assert data["artist"] == "Pink Floyd"
        assert "pending_command_id" not in snapshot.to_dict()


class TestDisc:
    def test_needs_enrichment(self) -> None:
        disc = Disc(player=1, position=1, artist="A", album="B")
        assert disc.needs_enrichment

        disc.musicbrainz_id = "x" * 36
        assert disc.needs_enrichment

        disc.track_count = 10
        assert not disc.needs_enrichment
        assert disc.slot_id == "1:1"

"""Tests for the SQLAlchemy repositories against an in-memory SQLite database."""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

from jukebox.domain.entities import (
    Disc,
    PlaybackState,
    PlaybackStatus,
    Track,
    TrackPlayEvent,
)
from jukebox.infrastructure.persistence import Database
from jukebox.infrastructure.persistence.repositories import (
    DiscRepository,
    LastfmSessionRepository,
    PlaybackStateRepository,
    TrackPlayRepository,
)

SeedDisc = Callable[..., Awaitable[Disc]]


class TestDiscRepository:
    async def test_upsert_without_tracks_keeps_track_list(
        self, db: Database, seed_disc: SeedDisc
    ) -> None:
        disc = await seed_disc(titles=["A", "B"])

        async with db.session_scope() as session:
            disc.genre = "Rock"
            saved = await DiscRepository(session).upsert(disc)

        assert saved.genre == "Rock"
        assert [t.title for t in saved.tracks] == ["A", "B"]
        assert saved.track_count == 2

    async def test_upsert_replaces_track_list(
        self, db: Database, seed_disc: SeedDisc
    ) -> None:
        disc = await seed_disc(titles=["A", "B", "C"])

        async with db.session_scope() as session:
            saved = await DiscRepository(session).upsert(
                disc, [Track(track_number=1, title="Only", artist="Guest")]
            )

        assert [(t.track_number, t.title, t.artist) for t in saved.tracks] == [
            (1, "Only", "Guest")
        ]
        assert saved.track_count == 1

    async def test_upsert_same_slot_updates_in_place(
        self, db: Database, seed_disc: SeedDisc
    ) -> None:
        first = await seed_disc()
        second = await seed_disc(album="Animals")

        assert second.id == first.id
        async with db.session_scope() as session:
            assert await DiscRepository(session).count() == 1

    async def test_get_track(self, db: Database, seed_disc: SeedDisc) -> None:
        await seed_disc(titles=["In the Flesh?", "The Thin Ice"])

        async with db.session_scope() as session:
            repo = DiscRepository(session)
            track = await repo.get_track(1, 5, 2)
            missing = await repo.get_track(1, 5, 9)

        assert track is not None
        assert track.title == "The Thin Ice"
        assert track.duration_seconds == 100
        assert missing is None

    async def test_find_search_is_case_insensitive(
        self, db: Database, seed_disc: SeedDisc
    ) -> None:
        await seed_disc(position=1)
        await seed_disc(position=2, artist="Miles Davis", album="Kind of Blue")

        async with db.session_scope() as session:
            by_artist, total = await DiscRepository(session).find(search="MILES")
            by_album, _ = await DiscRepository(session).find(search="wall")

        assert total == 1
        assert by_artist[0].artist == "Miles Davis"
        assert by_album[0].album == "The Wall"

    async def test_find_sort_by_artist(self, db: Database, seed_disc: SeedDisc) -> None:
        await seed_disc(position=1, artist="Zappa", album="Apostrophe")
        await seed_disc(position=2, artist="ABBA", album="Arrival")

        async with db.session_scope() as session:
            discs, _ = await DiscRepository(session).find(sort="artist")

        assert [d.artist for d in discs] == ["ABBA", "Zappa"]

    async def test_recently_played(self, db: Database, seed_disc: SeedDisc) -> None:
        older = await seed_disc(position=1)
        newer = await seed_disc(position=2)
        await seed_disc(position=3)
        now = datetime.now(UTC)

        async with db.session_scope() as session:
            repo = DiscRepository(session)
            assert older.id is not None and newer.id is not None
            await repo.touch_last_played(older.id, now - timedelta(hours=1))
            await repo.touch_last_played(newer.id, now)

        async with db.session_scope() as session:
            recent = await DiscRepository(session).recently_played()

        assert [d.position for d in recent] == [2, 1]
        assert recent[0].last_played is not None
        assert recent[0].last_played.tzinfo is not None


class TestTrackPlayRepository:
    async def test_counts_and_most_played(
        self, db: Database, seed_disc: SeedDisc
    ) -> None:
        wall = await seed_disc(titles=["In the Flesh?", "The Thin Ice"])
        other = await seed_disc(position=6, artist="Miles Davis", album="Kind of Blue")
        assert wall.id is not None and other.id is not None

        async with db.session_scope() as session:
            repo = TrackPlayRepository(session)
            for number in (2, 2, 2, 1):
                await repo.add(TrackPlayEvent(disc_id=wall.id, track_number=number))
            await repo.add(TrackPlayEvent(disc_id=other.id, track_number=4))

        async with db.session_scope() as session:
            repo = TrackPlayRepository(session)
            assert await repo.total() == 5
            assert await repo.counts_by_track(wall.id) == {1: 1, 2: 3}
            assert await repo.counts_for_discs([]) == {}

            top_discs = await repo.most_played_discs()
            top_tracks = await repo.most_played_tracks()

        assert [(d.album, n) for d, n in top_discs] == [
            ("The Wall", 4),
            ("Kind of Blue", 1),
        ]
        assert top_tracks[0]["track_title"] == "The Thin Ice"
        assert top_tracks[0]["play_count"] == 3
        unknown = next(t for t in top_tracks if t["album"] == "Kind of Blue")
        assert unknown["track_title"] is None


class TestPlaybackStateRepository:
    async def test_initial_state_is_stop(self, db: Database) -> None:
        async with db.session_scope() as session:
            state = await PlaybackStateRepository(session).get()

        assert state.state is PlaybackStatus.STOP
        assert state.current_player is None

    async def test_seed_is_idempotent(self, db: Database) -> None:
        async with db.session_scope() as session:
            await PlaybackStateRepository(session).seed()
        async with db.session_scope() as session:
            repo = PlaybackStateRepository(session)
            await repo.save(PlaybackState(current_player=1, state=PlaybackStatus.PLAY))
        async with db.session_scope() as session:
            await PlaybackStateRepository(session).seed()
            state = await PlaybackStateRepository(session).get()

        assert state.state is PlaybackStatus.PLAY
        assert state.current_player == 1

    async def test_save_overwrites_singleton(self, db: Database) -> None:
        async with db.session_scope() as session:
            repo = PlaybackStateRepository(session)
            await repo.save(
                PlaybackState(
                    current_player=2,
                    current_disc=120,
                    current_track=4,
                    state=PlaybackStatus.PAUSE,
                )
            )

        async with db.session_scope() as session:
            state = await PlaybackStateRepository(session).get()

        assert state.track_key == (2, 120, 4)
        assert state.state is PlaybackStatus.PAUSE
        assert state.updated_at is not None


class TestLastfmSessionRepository:
    async def test_save_replaces_and_delete(self, db: Database) -> None:
        async with db.session_scope() as session:
            repo = LastfmSessionRepository(session)
            await repo.save("first", "sk-1")
            await repo.save("second", "sk-2")

        async with db.session_scope() as session:
            stored = await LastfmSessionRepository(session).get()
            assert stored is not None
            assert (stored.username, stored.session_key) == ("second", "sk-2")
            await LastfmSessionRepository(session).delete()

        async with db.session_scope() as session:
            assert await LastfmSessionRepository(session).get() is None

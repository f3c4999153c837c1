"""
End-to-end tests of synchronisation runs against a real SQLite library.

Every read of the library goes through the ``library`` fixture, which opens
and closes its own unit of work, so no session is left open while a run
writes.
"""

import gc
import threading
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from mediaimport.adapters.handlers.movie_handler import MovieImportHandler
from mediaimport.adapters.registry import create_default_registry
from mediaimport.domain.items import MediaItem
from mediaimport.infra.exceptions import RepositoryError
from mediaimport.infra.item_filter import ItemFilter
from mediaimport.infra.library_repository import LibraryRepository
from mediaimport.shared.types import ChangesetType, MediaType
from mediaimport.usecases.import_sync import ImportSynchroniser, order_media_types

TV_TYPES = (MediaType.TVSHOW, MediaType.SEASON, MediaType.EPISODE)
MOVIE_TYPES = (MediaType.MOVIE, MediaType.MOVIE_SET)


class RejectingMovieHandler(MovieImportHandler):
    """Rejects the write of any movie titled "Broken"."""

    def write_item(self, item, db_id=None):
        if item.title == "Broken":
            return -1
        return super().write_item(item, db_id)


class UnfinishableMovieHandler(MovieImportHandler):
    def finish_synchronisation(self, media_import):
        return False


def _registry_with(media_type, factory):
    registry = create_default_registry()
    registry.unregister(media_type)
    registry.register(media_type, factory)
    return registry


@pytest.fixture
def synchroniser(session_factory):
    return ImportSynchroniser(session_factory=session_factory)


def _imported(library, media_type, media_import):
    return library(lambda repo: repo.get_items(ItemFilter.for_import(media_type, media_import)))


def _all(library, media_type):
    return library(lambda repo: repo.get_items(ItemFilter(media_type=media_type)))


class TestOrdering:
    def test_parents_first(self):
        ordered = order_media_types([MediaType.EPISODE, MediaType.SEASON, MediaType.TVSHOW])

        assert ordered == [MediaType.TVSHOW, MediaType.SEASON, MediaType.EPISODE]

    def test_children_first(self):
        ordered = order_media_types([MediaType.MOVIE_SET, MediaType.MOVIE], children_first=True)

        assert ordered == [MediaType.MOVIE, MediaType.MOVIE_SET]


class TestHierarchy:
    def test_episode_creates_show_and_season(self, synchroniser, library, make_import, episode):
        media_import = make_import(*TV_TYPES)

        assert synchroniser.synchronise(
            media_import, {MediaType.EPISODE: [episode("Show X", 1, 1)]}
        )

        [show] = _imported(library, MediaType.TVSHOW, media_import)
        [stored_episode] = _imported(library, MediaType.EPISODE, media_import)
        assert show.title == "Show X"
        assert stored_episode.db_id > 0
        assert stored_episode.show_id == show.db_id
        assert library(lambda repo: repo.get_season_id(show.db_id, 1)) > 0
        assert synchroniser.last_result.added == 1

    def test_movies_share_one_new_set(self, synchroniser, library, make_import, movie):
        media_import = make_import(*MOVIE_TYPES)
        movies = [movie("Part 1", set_title="Trilogy"), movie("Part 2", set_title="Trilogy")]

        assert synchroniser.synchronise(media_import, {MediaType.MOVIE: movies})

        [movie_set] = _all(library, MediaType.MOVIE_SET)
        stored = _imported(library, MediaType.MOVIE, media_import)
        assert movie_set.title == "Trilogy"
        assert [m.set_id for m in stored] == [movie_set.db_id, movie_set.db_id]

    def test_season_with_local_episodes_is_unlinked(
        self, synchroniser, library, make_import, tvshow, season, episode
    ):
        media_import = make_import(*TV_TYPES)
        synchroniser.synchronise(
            media_import,
            {
                MediaType.TVSHOW: [tvshow("Show X")],
                MediaType.SEASON: [season("Show X", 1)],
                MediaType.EPISODE: [episode("Show X", 1, n) for n in (1, 2, 3)],
            },
        )
        [show] = _imported(library, MediaType.TVSHOW, media_import)

        def add_local_episodes(repo):
            for number in (4, 5):
                repo.set_details_for_episode(
                    MediaItem(
                        media_type=MediaType.EPISODE,
                        title=f"Local {number}",
                        show_title="Show X",
                        show_id=show.db_id,
                        season=1,
                        episode=number,
                        path=f"/local/Show X/S01E0{number}.mkv",
                    )
                )

        library(add_local_episodes)

        assert synchroniser.synchronise(
            media_import,
            {
                MediaType.TVSHOW: [tvshow("Show X")],
                MediaType.SEASON: [season("Show X", 1)],
                MediaType.EPISODE: [],
            },
        )

        assert synchroniser.last_result.removed == 3
        assert [s.season for s in _all(library, MediaType.SEASON)] == [1]
        assert _imported(library, MediaType.SEASON, media_import) == []
        assert [e.title for e in _all(library, MediaType.EPISODE)] == ["Local 4", "Local 5"]
        assert library(lambda repo: repo.get_item(MediaType.TVSHOW, show.db_id)) is not None

    def test_empty_set_is_deleted(self, synchroniser, library, make_import, movie):
        media_import = make_import(*MOVIE_TYPES)
        synchroniser.synchronise(
            media_import, {MediaType.MOVIE: [movie("Part 1", set_title="Trilogy")]}
        )

        assert synchroniser.synchronise(media_import, {MediaType.MOVIE: []})

        assert _all(library, MediaType.MOVIE) == []
        assert _all(library, MediaType.MOVIE_SET) == []

    def test_sets_of_a_movie_only_import_follow_their_movies(
        self, synchroniser, library, make_import, movie
    ):
        media_import = make_import(MediaType.MOVIE)
        synchroniser.synchronise(
            media_import, {MediaType.MOVIE: [movie("Part 1", set_title="Trilogy")]}
        )
        [movie_set] = _all(library, MediaType.MOVIE_SET)
        assert library(lambda repo: repo.is_item_enabled(MediaType.MOVIE_SET, movie_set.db_id))

        assert synchroniser.synchronise(media_import, {MediaType.MOVIE: []})

        assert _all(library, MediaType.MOVIE) == []
        assert _all(library, MediaType.MOVIE_SET) == []

    def test_set_shared_with_local_movie_is_unlinked(
        self, synchroniser, library, make_import, movie
    ):
        media_import = make_import(MediaType.MOVIE)
        synchroniser.synchronise(
            media_import, {MediaType.MOVIE: [movie("Part 1", set_title="Trilogy")]}
        )
        [movie_set] = _all(library, MediaType.MOVIE_SET)
        library(
            lambda repo: repo.set_details_for_movie(
                MediaItem(
                    media_type=MediaType.MOVIE,
                    title="Part 2",
                    set_id=movie_set.db_id,
                    path="/movies/part2.mkv",
                )
            )
        )

        assert synchroniser.synchronise(media_import, {MediaType.MOVIE: []})

        assert [s.title for s in _all(library, MediaType.MOVIE_SET)] == ["Trilogy"]
        assert _imported(library, MediaType.MOVIE_SET, media_import) == []

    def test_missing_required_type_fails(self, synchroniser, make_import, season):
        media_import = make_import(MediaType.SEASON)

        assert not synchroniser.synchronise(media_import, {MediaType.SEASON: [season("X", 1)]})
        assert "require tvshow" in synchroniser.last_result.error


class TestChanges:
    def test_second_identical_run_changes_nothing(
        self, synchroniser, library, make_import, tvshow, season, episode
    ):
        media_import = make_import(*TV_TYPES)

        def items():
            return {
                MediaType.TVSHOW: [tvshow("Show X")],
                MediaType.SEASON: [season("Show X", 1)],
                MediaType.EPISODE: [episode("Show X", 1, 1), episode("Show X", 1, 2)],
            }

        assert synchroniser.synchronise(media_import, items())
        assert synchroniser.synchronise(media_import, items())

        result = synchroniser.last_result
        assert (result.added, result.updated, result.removed) == (0, 0, 0)
        assert result.unchanged == 4
        assert len(_all(library, MediaType.EPISODE)) == 2

    def test_changed_metadata_is_updated(self, synchroniser, library, make_import, movie):
        media_import = make_import(MediaType.MOVIE)
        synchroniser.synchronise(media_import, {MediaType.MOVIE: [movie("A", plot="old")]})

        assert synchroniser.synchronise(
            media_import, {MediaType.MOVIE: [movie("A", plot="new", play_count=2)]}
        )

        [stored] = _imported(library, MediaType.MOVIE, media_import)
        assert synchroniser.last_result.updated == 1
        assert stored.plot == "new"
        assert stored.play_count == 2

    def test_unreported_items_are_removed(self, synchroniser, library, make_import, movie):
        media_import = make_import(MediaType.MOVIE)
        synchroniser.synchronise(media_import, {MediaType.MOVIE: [movie("A"), movie("B")]})
        library(
            lambda repo: repo.set_details_for_movie(
                MediaItem(media_type=MediaType.MOVIE, title="Local", path="/movies/local.mkv")
            )
        )

        assert synchroniser.synchronise(media_import, {MediaType.MOVIE: [movie("B")]})

        assert synchroniser.last_result.removed == 1
        assert sorted(m.title for m in _all(library, MediaType.MOVIE)) == ["B", "Local"]

    def test_media_type_without_items_keeps_its_items(
        self, synchroniser, library, make_import, movie
    ):
        media_import = make_import(MediaType.MOVIE)
        synchroniser.synchronise(media_import, {MediaType.MOVIE: [movie("A")]})

        assert synchroniser.synchronise(media_import, {})

        assert len(_imported(library, MediaType.MOVIE, media_import)) == 1

    def test_playback_only_changeset(self, synchroniser, make_import, movie):
        synchroniser.synchronise(make_import(MediaType.MOVIE), {MediaType.MOVIE: [movie("A")]})
        media_import = make_import(MediaType.MOVIE, update_imported_media_items=False)

        watched = synchroniser.determine_changeset(
            media_import, {MediaType.MOVIE: [movie("A", plot="ignored", play_count=1)]}
        )
        untouched = synchroniser.determine_changeset(
            media_import, {MediaType.MOVIE: [movie("A", plot="ignored")]}
        )

        assert [e.type for e in watched] == [ChangesetType.CHANGED]
        assert [e.type for e in untouched] == [ChangesetType.NONE]

    def test_imported_items_are_enabled_and_run_recorded(
        self, synchroniser, library, make_import, movie
    ):
        media_import = make_import(MediaType.MOVIE)

        assert synchroniser.synchronise(media_import, {MediaType.MOVIE: [movie("A")]})

        [stored] = _imported(library, MediaType.MOVIE, media_import)
        assert library(lambda repo: repo.is_item_enabled(MediaType.MOVIE, stored.db_id))
        record = library(
            lambda repo: repo.get_import(
                media_import.source_identifier, media_import.media_types_as_string
            )
        )
        assert media_import.last_synced is not None
        assert record.last_synced is not None


class TestFailures:
    def test_rejected_item_leaves_no_trace(self, session_factory, library, make_import, movie):
        synchroniser = ImportSynchroniser(
            session_factory=session_factory,
            registry=_registry_with(MediaType.MOVIE, RejectingMovieHandler),
        )
        media_import = make_import(MediaType.MOVIE)
        broken = movie("Broken")

        assert synchroniser.synchronise(media_import, {MediaType.MOVIE: [broken, movie("Good")]})

        result = synchroniser.last_result
        assert (result.added, result.failed) == (1, 1)
        assert [m.title for m in _all(library, MediaType.MOVIE)] == ["Good"]
        assert library(lambda repo: repo.get_file_id(broken.path)) == -1

    def test_structural_failure_rolls_back_the_run(
        self, session_factory, library, make_import, movie
    ):
        synchroniser = ImportSynchroniser(
            session_factory=session_factory,
            registry=_registry_with(MediaType.MOVIE, UnfinishableMovieHandler),
        )
        media_import = make_import(MediaType.MOVIE)

        assert not synchroniser.synchronise(media_import, {MediaType.MOVIE: [movie("A")]})

        assert _all(library, MediaType.MOVIE) == []
        assert media_import.last_synced is None
        assert library(lambda repo: repo.list_imports()) == []

    def test_cancelled_run_is_rolled_back(self, synchroniser, library, make_import, movie):
        cancel = threading.Event()
        cancel.set()

        assert not synchroniser.synchronise(
            make_import(MediaType.MOVIE), {MediaType.MOVIE: [movie("A")]}, cancel_event=cancel
        )

        assert synchroniser.last_result.cancelled
        assert _all(library, MediaType.MOVIE) == []

    def test_concurrent_run_on_same_import(self, session_factory, make_import, movie):
        synchroniser = ImportSynchroniser(session_factory=session_factory, lock_timeout=0)
        media_import = make_import(MediaType.MOVIE)
        lock = synchroniser._lock_for(media_import)
        lock.acquire()
        try:
            assert not synchroniser.synchronise(media_import, {MediaType.MOVIE: [movie("A")]})
        finally:
            lock.release()

        assert "in progress" in synchroniser.last_result.error

    def test_failed_child_count_keeps_the_parent(
        self, synchroniser, library, make_import, movie
    ):
        media_import = make_import(*MOVIE_TYPES)
        synchroniser.synchronise(
            media_import, {MediaType.MOVIE: [movie("Part 1", set_title="Trilogy")]}
        )

        with patch.object(
            LibraryRepository, "count_children", side_effect=RepositoryError("count failed")
        ):
            assert synchroniser.synchronise(media_import, {MediaType.MOVIE: []})

        assert synchroniser.last_result.removed == 1
        assert _all(library, MediaType.MOVIE) == []
        assert [s.title for s in _all(library, MediaType.MOVIE_SET)] == ["Trilogy"]

    def test_unresolvable_parent_rolls_back_the_run(
        self, session_factory, library, make_import, movie
    ):
        registry = create_default_registry()
        registry.unregister(MediaType.MOVIE_SET)
        synchroniser = ImportSynchroniser(session_factory=session_factory, registry=registry)
        media_import = make_import(MediaType.MOVIE)
        movies = [movie("Alone"), movie("Part 1", set_title="Trilogy")]

        with patch.object(LibraryRepository, "set_details_for_movie_set", return_value=-1):
            assert not synchroniser.synchronise(media_import, {MediaType.MOVIE: movies})

        assert "Trilogy" in synchroniser.last_result.error
        assert _all(library, MediaType.MOVIE) == []
        assert media_import.last_synced is None

    def test_unwrapped_database_error_fails_the_run(
        self, synchroniser, library, make_import, movie
    ):
        media_import = make_import(MediaType.MOVIE)

        with patch.object(
            LibraryRepository, "open", side_effect=OperationalError("SELECT 1", {}, Exception())
        ):
            assert not synchroniser.synchronise(media_import, {MediaType.MOVIE: [movie("A")]})

        assert synchroniser.last_result.error
        assert _all(library, MediaType.MOVIE) == []

    def test_run_lock_is_released_after_the_run(self, synchroniser, make_import, movie):
        media_import = make_import(MediaType.MOVIE, source="upnp://lock-test/")
        key = (media_import.source_identifier, media_import.media_types_as_string)

        assert synchroniser.synchronise(media_import, {MediaType.MOVIE: [movie("A")]})

        gc.collect()
        assert key not in ImportSynchroniser._locks

"""
Tests for the import handlers and their registry.
"""

import pytest

from mediaimport.adapters.handlers.base import HandlerContext
from mediaimport.adapters.handlers.episode_handler import EpisodeImportHandler
from mediaimport.adapters.handlers.movie_set_handler import MovieSetImportHandler
from mediaimport.adapters.handlers.season_handler import SeasonImportHandler
from mediaimport.adapters.handlers.tvshow_handler import TvShowImportHandler
from mediaimport.adapters.registry import HandlerRegistry, create_default_registry
from mediaimport.domain.items import MediaItem
from mediaimport.infra.exceptions import HandlerNotFoundError
from mediaimport.infra.item_filter import ItemFilter
from mediaimport.shared.types import MediaType

TV_TYPES = (MediaType.TVSHOW, MediaType.SEASON, MediaType.EPISODE)


@pytest.fixture
def context(repository):
    return HandlerContext(repository=repository, registry=create_default_registry())


@pytest.fixture
def tv_import(make_import):
    return make_import(*TV_TYPES)


def _local_show(repository, title="Show X", **fields) -> int:
    fields.setdefault("path", f"/local/{title}/")
    return repository.set_details_for_tvshow(
        MediaItem(media_type=MediaType.TVSHOW, title=title, **fields)
    )


class TestTvShowImportHandler:
    def test_duplicate_by_unique_id_gains_a_location(self, context, repository, tv_import, tvshow):
        show_id = _local_show(repository, unique_ids={"tvdb": "81189"}, year=2008)
        incoming = tvshow("Show X", unique_ids={"tvdb": "81189"}, year=2009)

        assert TvShowImportHandler(context).add_imported_item(tv_import, incoming)

        assert incoming.db_id == show_id
        assert repository.count_items(ItemFilter(media_type=MediaType.TVSHOW)) == 1
        assert repository.get_paths_for_tvshow(show_id) == [
            "/local/Show X/",
            incoming.path,
        ]

    def test_title_only_show_reuses_first_title_match(self, context, repository, tv_import, tvshow):
        show_id = _local_show(repository, year=2010)
        incoming = tvshow("Show X")

        assert TvShowImportHandler(context).add_imported_item(tv_import, incoming)

        assert incoming.db_id == show_id

    def test_show_with_year_is_not_merged_into_yearless_show(
        self, context, repository, tv_import, tvshow
    ):
        show_id = _local_show(repository)
        incoming = tvshow("Show X", year=2012)

        assert TvShowImportHandler(context).add_imported_item(tv_import, incoming)

        assert incoming.db_id not in (-1, show_id)
        assert len(repository.get_tvshows_by_title("Show X")) == 2

    def test_remove_keeps_show_with_other_locations(self, context, repository, tv_import, tvshow):
        show_id = _local_show(repository)
        handler = TvShowImportHandler(context)
        incoming = tvshow("Show X")
        handler.add_imported_item(tv_import, incoming)

        assert handler.remove_imported_item(tv_import, incoming)

        assert repository.get_item(MediaType.TVSHOW, show_id) is not None
        assert repository.get_paths_for_tvshow(show_id) == ["/local/Show X/"]
        assert repository.get_items(ItemFilter.for_import(MediaType.TVSHOW, tv_import)) == []

    def test_remove_deletes_show_left_empty(self, context, repository, tv_import, tvshow):
        handler = TvShowImportHandler(context)
        incoming = tvshow("Show Y")
        handler.add_imported_item(tv_import, incoming)

        assert handler.remove_imported_item(tv_import, incoming)

        assert repository.get_item(MediaType.TVSHOW, incoming.db_id) is None


class TestTvShowChildren:
    def test_episode_creates_missing_show(self, context, repository, tv_import, episode):
        handler = EpisodeImportHandler(context)
        handler.start_synchronisation(tv_import)
        incoming = episode("Show Z", 1, 1)

        assert handler.add_imported_item(tv_import, incoming)

        [show] = repository.get_items(ItemFilter.for_import(MediaType.TVSHOW, tv_import))
        assert show.title == "Show Z"
        assert show.path == "upnp://server-1/shows/Show Z/"
        assert incoming.show_id == show.db_id
        assert repository.get_season_id(show.db_id, 1) > 0

    def test_episode_without_show_title_fails(self, context, repository, tv_import, episode):
        handler = EpisodeImportHandler(context)
        incoming = episode("", 1, 1)

        assert not handler.add_imported_item(tv_import, incoming)
        assert repository.count_items(ItemFilter(media_type=MediaType.EPISODE)) == 0

    def test_season_reuses_existing_row(self, context, repository, tv_import, episode, season):
        episodes = EpisodeImportHandler(context)
        episodes.start_synchronisation(tv_import)
        first = episode("Show X", 1, 1)
        episodes.add_imported_item(tv_import, first)

        seasons = SeasonImportHandler(context)
        seasons.start_synchronisation(tv_import)
        incoming = season("Show X", 1)

        assert seasons.add_imported_item(tv_import, incoming)
        assert incoming.db_id == repository.get_season_id(first.show_id, 1)
        assert repository.count_items(ItemFilter(media_type=MediaType.SEASON)) == 1

    def test_season_with_local_episodes_is_only_unlinked(
        self, context, repository, tv_import, season
    ):
        show_id = _local_show(repository)
        repository.set_details_for_episode(
            MediaItem(
                media_type=MediaType.EPISODE,
                title="Local episode",
                show_id=show_id,
                season=1,
                episode=1,
                path="/local/Show X/S01E01.mkv",
            )
        )
        handler = SeasonImportHandler(context)
        handler.start_synchronisation(tv_import)
        incoming = season("Show X", 1)
        handler.add_imported_item(tv_import, incoming)

        assert handler.remove_imported_item(tv_import, incoming)

        assert repository.get_item(MediaType.SEASON, incoming.db_id) is not None
        assert repository.get_items(ItemFilter.for_import(MediaType.SEASON, tv_import)) == []


class TestMovieSetImportHandler:
    def test_sets_are_shared_by_title(self, context, repository, make_import):
        media_import = make_import(MediaType.MOVIE, MediaType.MOVIE_SET)
        handler = MovieSetImportHandler(context)
        first = MediaItem(media_type=MediaType.MOVIE_SET, title="Trilogy")
        second = MediaItem(media_type=MediaType.MOVIE_SET, title="Trilogy")

        assert handler.add_imported_item(media_import, first)
        assert handler.add_imported_item(media_import, second)

        assert first.db_id == second.db_id
        assert repository.count_items(ItemFilter(media_type=MediaType.MOVIE_SET)) == 1


class TestHandlerRegistry:
    def test_default_registry_covers_every_media_type(self):
        registry = create_default_registry()

        assert set(registry.list_media_types()) == set(MediaType)

    def test_duplicate_registration(self):
        registry = create_default_registry()

        with pytest.raises(ValueError, match="already registered"):
            registry.register(MediaType.MOVIE, TvShowImportHandler)

    def test_create_unknown_lists_available(self, context):
        registry = HandlerRegistry()
        registry.register(MediaType.TVSHOW, TvShowImportHandler)

        with pytest.raises(HandlerNotFoundError, match="Available: tvshow"):
            registry.create(MediaType.MOVIE, context)

    def test_unregister(self, context):
        registry = create_default_registry()
        registry.unregister(MediaType.MUSIC_VIDEO)

        assert MediaType.MUSIC_VIDEO not in registry
        with pytest.raises(HandlerNotFoundError):
            registry.unregister(MediaType.MUSIC_VIDEO)

    def test_created_handlers_share_the_run_context(self, context):
        handler = context.registry.create(MediaType.TVSHOW, context)

        assert isinstance(handler, TvShowImportHandler)
        assert handler.repository is context.repository
        assert handler.state is context.state

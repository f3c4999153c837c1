"""
TV show import handler and the shared parent resolution of seasons and episodes.

A tvshow may live at several locations, one per source. Adding an imported
show first looks for an existing local show (by unique id, or title and year)
and only attaches the new location to it; removing an imported show detaches
its location and deletes the show once neither a location nor an episode
is left.
"""

from __future__ import annotations

from abc import abstractmethod

from ...domain.items import UNSET_ID, MediaItem, copy_shared_parent_fields
from ...domain.media_import import MediaImport
from ...infra.item_filter import ItemFilter
from ...infra.logging import get_logger
from ...shared.types import Field, MediaType
from .base import HandlerPolicy, VideoImportHandler

_log = get_logger(__name__)

TVSHOW_GROUP = (MediaType.TVSHOW, MediaType.SEASON, MediaType.EPISODE)


class TvShowImportHandler(VideoImportHandler):
    media_type = MediaType.TVSHOW
    grouped_media_types = TVSHOW_GROUP
    policy = HandlerPolicy(
        ignored_fields=frozenset(
            {
                Field.ALBUM,
                Field.ARTIST,
                Field.COUNTRY,
                Field.DIRECTOR,
                Field.EPISODE_NUMBER,
                Field.EPISODE_NUMBER_SPECIAL_SORT,
                Field.FILENAME,
                Field.IN_PROGRESS,
                Field.LAST_PLAYED,
                Field.PLAYCOUNT,
                Field.PLOT_OUTLINE,
                Field.PRODUCTION_CODE,
                Field.SEASON,
                Field.SEASON_SPECIAL_SORT,
                Field.SET,
                Field.TAGLINE,
                Field.TIME,
                Field.TOP250,
                Field.TRACK_NUMBER,
                Field.TVSHOW_TITLE,
                Field.WRITER,
            }
        ),
        child_type=MediaType.EPISODE,
    )

    def start_synchronisation(self, media_import: MediaImport) -> bool:
        self.state.tvshows.rebuild(self.get_local_items(media_import))
        return True

    def find_existing_show(self, item: MediaItem) -> MediaItem | None:
        """
        Find a local tvshow (from any source) the imported show duplicates.

        A show matches on its unique id, or on title and year. When the
        imported show has neither a unique id nor a year, the first show with
        the same title is taken.
        """
        same_title = []
        for show in self.repository.get_tvshows_by_title(item.title):
            if (show.has_unique_id() and show.unique_id == item.unique_id) or (
                show.has_year() and show.year == item.year and show.title == item.title
            ):
                return show
            if show.title == item.title:
                same_title.append(show)

        if same_title and not item.has_unique_id() and not item.has_year():
            return same_title[0]
        return None

    def add_imported_item(self, media_import: MediaImport, item: MediaItem) -> bool:
        self.prepare_item(media_import, item)

        existing = self.find_existing_show(item)
        if existing is not None:
            item.db_id = existing.db_id
            if item.path and (
                self.repository.add_path_to_tvshow(item.db_id, item.path, item.base_path) <= 0
            ):
                item.db_id = UNSET_ID
        else:
            item.db_id = self.write_item(item)

        if item.db_id <= 0:
            self._log_write_failure(media_import, item, "add")
            return False

        self.state.tvshows.add(item)
        path_id = self.repository.add_path(item.path) if item.path else None
        return self.set_import_for_item(media_import, item, path_id)

    def write_item(self, item: MediaItem, db_id: int | None = None) -> int:
        paths = [(item.path, item.base_path)] if item.path else []
        return self.repository.set_details_for_tvshow(item, paths=paths, db_id=db_id)

    def remove_imported_item(self, media_import: MediaImport, item: MediaItem) -> bool:
        """
        Detach the import's location from a show the source no longer reports.

        The show itself is deleted once it has neither a location nor an
        episode left.
        """
        if item.db_id <= 0:
            return False

        path = self.repository.get_path_for_imported_item(self.media_type, item.db_id, media_import)
        self.unlink_parent(media_import, item, path)
        if not self.repository.get_paths_for_tvshow(item.db_id):
            if self.count_children(media_import, item).total == 0:
                self.repository.delete_tvshow(item.db_id)
        return True

    def remove_imported_items(self, media_import: MediaImport) -> bool:
        for show in self.get_local_items(media_import):
            self.remove_imported_item(media_import, show)
        return True

    def child_filter(self, media_import: MediaImport, parent: MediaItem) -> ItemFilter:
        return ItemFilter.for_import(MediaType.EPISODE, media_import, show_id=parent.db_id)

    def unlink_parent(
        self, media_import: MediaImport, parent: MediaItem, path: str | None = None
    ) -> None:
        if path is None:
            path = self.repository.get_path_for_imported_item(
                self.media_type, parent.db_id, media_import
            )
        if path:
            self.repository.remove_path_from_tvshow(parent.db_id, path)
        self.repository.remove_import_from_item(self.media_type, parent.db_id, media_import)


class TvShowChildImportHandler(VideoImportHandler):
    """Seasons and episodes: items that must belong to a persisted tvshow."""

    grouped_media_types = TVSHOW_GROUP

    def start_synchronisation(self, media_import: MediaImport) -> bool:
        registry = self.context.registry
        if registry.get_handler_factory(MediaType.TVSHOW) is not None:
            shows = registry.create(MediaType.TVSHOW, self.context).get_local_items(media_import)
        else:
            shows = self.repository.get_items(
                ItemFilter.for_import(MediaType.TVSHOW, media_import), details=False
            )
        self.state.tvshows.rebuild(shows)
        return True

    @abstractmethod
    def show_path(self, item: MediaItem) -> str:
        """Best guess of the location of the item's show."""

    def resolve_parent(self, media_import: MediaImport, item: MediaItem) -> bool:
        if item.show_id > 0:
            return True
        if not item.show_title:
            _log.error(
                "tvshow_title_missing",
                media_type=self.media_type.value,
                item=self.get_item_label(item),
                media_import=str(media_import),
            )
            return False

        show_id = self.state.tvshows.resolve(item.show_title, item.path)
        if show_id <= 0:
            show = copy_shared_parent_fields(item, MediaType.TVSHOW)
            show.path = self.show_path(item)
            show_id = self.create_parent(media_import, show, self.state.tvshows)
        if show_id <= 0:
            _log.error(
                "tvshow_unresolved",
                media_type=self.media_type.value,
                item=self.get_item_label(item),
                media_import=str(media_import),
            )
            return False

        item.show_id = show_id
        return True

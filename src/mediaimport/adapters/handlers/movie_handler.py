"""
Movie import handler.

A movie that names a set is attached to it; the set is resolved from the
run's cache or created through the movie set handler before the movie itself
is written. When the import does not carry movie sets itself, the sets its
movies created are collapsed here once their movies are gone.
"""

from __future__ import annotations

from ...domain.items import UNSET_ID, MediaItem, copy_shared_parent_fields
from ...domain.media_import import MediaImport
from ...infra.item_filter import ItemFilter
from ...infra.logging import get_logger
from ...shared.types import Field, MediaType
from .base import HandlerPolicy, MediaImportHandler, VideoImportHandler
from .movie_set_handler import MovieSetImportHandler

_log = get_logger(__name__)


class MovieImportHandler(VideoImportHandler):
    media_type = MediaType.MOVIE
    grouped_media_types = (MediaType.MOVIE, MediaType.MOVIE_SET)
    policy = HandlerPolicy(
        ignored_fields=frozenset(
            {
                Field.ALBUM,
                Field.ARTIST,
                Field.EPISODE_NUMBER,
                Field.EPISODE_NUMBER_SPECIAL_SORT,
                Field.PRODUCTION_CODE,
                Field.SEASON,
                Field.SEASON_SPECIAL_SORT,
                Field.TRACK_NUMBER,
                Field.TVSHOW_STATUS,
                Field.TVSHOW_TITLE,
            }
        ),
        parent_art_prefixes=("set",),
        parent_type=MediaType.MOVIE_SET,
    )

    def start_synchronisation(self, media_import: MediaImport) -> bool:
        sets = self.repository.get_items(
            ItemFilter.for_import(MediaType.MOVIE_SET, media_import), details=False
        )
        self.state.movie_sets.rebuild(sets)
        return True

    def prepare_imported_item(
        self, media_import: MediaImport, item: MediaItem, local_item: MediaItem
    ) -> None:
        super().prepare_imported_item(media_import, item, local_item)
        item.set_id = local_item.set_id

    def resolve_parent(self, media_import: MediaImport, item: MediaItem) -> bool:
        if not item.set_title:
            item.set_id = UNSET_ID
            return True

        set_id = self.state.movie_sets.resolve(item.set_title, item.path)
        if set_id <= 0:
            movie_set = copy_shared_parent_fields(item, MediaType.MOVIE_SET)
            set_id = self.create_parent(media_import, movie_set, self.state.movie_sets)
        if set_id <= 0:
            _log.error(
                "movie_set_unresolved",
                item=self.get_item_label(item),
                set_title=item.set_title,
                media_import=str(media_import),
            )
            return False

        item.set_id = set_id
        return True

    def write_item(self, item: MediaItem, db_id: int | None = None) -> int:
        return self.repository.set_details_for_movie(item, db_id=db_id)

    def cleanup_imported_items(self, media_import: MediaImport) -> bool:
        set_handler = self._implicit_set_handler(media_import)
        if set_handler is None:
            return True
        return set_handler.cleanup_imported_items(media_import)

    def remove_imported_items(self, media_import: MediaImport) -> bool:
        super().remove_imported_items(media_import)
        set_handler = self._implicit_set_handler(media_import)
        if set_handler is None:
            return True
        return set_handler.remove_imported_items(media_import)

    def set_imported_items_enabled(self, media_import: MediaImport, enable: bool) -> None:
        super().set_imported_items_enabled(media_import, enable)
        set_handler = self._implicit_set_handler(media_import)
        if set_handler is not None:
            set_handler.set_imported_items_enabled(media_import, enable)

    def _implicit_set_handler(self, media_import: MediaImport) -> MediaImportHandler | None:
        """Handler for the sets this import created without importing sets."""
        if media_import.contains_media_type(MediaType.MOVIE_SET):
            return None
        registry = self.context.registry
        if registry.get_handler_factory(MediaType.MOVIE_SET) is not None:
            return registry.create(MediaType.MOVIE_SET, self.context)
        return MovieSetImportHandler(self.context)

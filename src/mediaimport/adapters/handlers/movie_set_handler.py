"""Movie set import handler."""

from __future__ import annotations

from ...domain.items import MediaItem
from ...domain.media_import import MediaImport
from ...infra.item_filter import ItemFilter
from ...shared.types import Field, MediaType
from .base import HandlerPolicy, VideoImportHandler


class MovieSetImportHandler(VideoImportHandler):
    media_type = MediaType.MOVIE_SET
    required_media_types = (MediaType.MOVIE,)
    grouped_media_types = (MediaType.MOVIE, MediaType.MOVIE_SET)
    policy = HandlerPolicy(
        ignored_fields=frozenset(
            {
                Field.ACTOR,
                Field.AIR_DATE,
                Field.ALBUM,
                Field.ARTIST,
                Field.COUNTRY,
                Field.DIRECTOR,
                Field.EPISODE_NUMBER,
                Field.EPISODE_NUMBER_SPECIAL_SORT,
                Field.FILENAME,
                Field.GENRE,
                Field.IN_PROGRESS,
                Field.LAST_PLAYED,
                Field.MPAA,
                Field.ORIGINAL_TITLE,
                Field.PATH,
                Field.PLAYCOUNT,
                Field.PLOT_OUTLINE,
                Field.PRODUCTION_CODE,
                Field.RATING,
                Field.SEASON,
                Field.SEASON_SPECIAL_SORT,
                Field.SET,
                Field.SORT_TITLE,
                Field.STUDIO,
                Field.TAG,
                Field.TAGLINE,
                Field.TIME,
                Field.TOP250,
                Field.TRACK_NUMBER,
                Field.TRAILER,
                Field.TVSHOW_STATUS,
                Field.TVSHOW_TITLE,
                Field.UNIQUE_ID,
                Field.USER_RATING,
                Field.WRITER,
            }
        ),
        child_type=MediaType.MOVIE,
    )

    def add_imported_item(self, media_import: MediaImport, item: MediaItem) -> bool:
        self.prepare_item(media_import, item)

        # a set with the same title is shared instead of duplicated
        existing = self.repository.get_movie_sets_by_title(item.title)
        if existing:
            item.db_id = existing[0].db_id
        else:
            item.db_id = self.write_item(item)
            if item.db_id <= 0:
                self._log_write_failure(media_import, item, "add")
                return False

        self.state.movie_sets.add(item)
        return self.set_import_for_item(media_import, item)

    def write_item(self, item: MediaItem, db_id: int | None = None) -> int:
        return self.repository.set_details_for_movie_set(item, db_id=db_id)

    def child_filter(self, media_import: MediaImport, parent: MediaItem) -> ItemFilter:
        return ItemFilter.for_import(MediaType.MOVIE, media_import, set_id=parent.db_id)

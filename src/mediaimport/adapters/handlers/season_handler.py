"""
Season import handler.

Seasons are matched by show title, season number and (when both sides have
one) year. A season row that already exists for the show is reused, e.g. one
created on the fly for a locally added episode.
"""

from __future__ import annotations

from ...domain.items import MediaItem
from ...domain.media_import import MediaImport
from ...infra.item_filter import ItemFilter
from ...shared.types import Field, MediaType
from .base import HandlerPolicy
from .hierarchy import show_path_for_season
from .tvshow_handler import TvShowChildImportHandler


class SeasonImportHandler(TvShowChildImportHandler):
    media_type = MediaType.SEASON
    required_media_types = (MediaType.TVSHOW,)
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
                Field.PLOT,
                Field.PLOT_OUTLINE,
                Field.PRODUCTION_CODE,
                Field.RATING,
                Field.SEASON_SPECIAL_SORT,
                Field.SET,
                Field.SORT_TITLE,
                Field.STUDIO,
                Field.TAG,
                Field.TAGLINE,
                Field.TIME,
                Field.TITLE,
                Field.TOP250,
                Field.TRACK_NUMBER,
                Field.TRAILER,
                Field.TVSHOW_STATUS,
                Field.UNIQUE_ID,
                Field.USER_RATING,
                Field.WRITER,
            }
        ),
        parent_art_prefixes=("tvshow", "season"),
        parent_type=MediaType.TVSHOW,
        child_type=MediaType.EPISODE,
    )

    def show_path(self, item: MediaItem) -> str:
        return show_path_for_season(item)

    def add_imported_item(self, media_import: MediaImport, item: MediaItem) -> bool:
        self.prepare_item(media_import, item)
        if not self.resolve_parent(media_import, item):
            return False

        item.db_id = self.repository.get_season_id(item.show_id, item.season)
        if item.db_id <= 0:
            item.db_id = self.write_item(item)
            if item.db_id <= 0:
                self._log_write_failure(media_import, item, "add")
                return False

        return self.set_import_for_item(media_import, item)

    def write_item(self, item: MediaItem, db_id: int | None = None) -> int:
        return self.repository.set_details_for_season(item, db_id=db_id)

    def child_filter(self, media_import: MediaImport, parent: MediaItem) -> ItemFilter:
        return ItemFilter.for_import(
            MediaType.EPISODE, media_import, show_id=parent.show_id, season=parent.season
        )

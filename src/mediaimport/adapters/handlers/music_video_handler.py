"""Music video import handler."""

from __future__ import annotations

from ...domain.items import MediaItem
from ...shared.types import Field, MediaType
from .base import HandlerPolicy, VideoImportHandler


class MusicVideoImportHandler(VideoImportHandler):
    media_type = MediaType.MUSIC_VIDEO
    grouped_media_types = (MediaType.MUSIC_VIDEO,)
    policy = HandlerPolicy(
        ignored_fields=frozenset(
            {
                Field.ACTOR,
                Field.COUNTRY,
                Field.EPISODE_NUMBER,
                Field.EPISODE_NUMBER_SPECIAL_SORT,
                Field.MPAA,
                Field.ORIGINAL_TITLE,
                Field.PLOT_OUTLINE,
                Field.PRODUCTION_CODE,
                Field.SEASON,
                Field.SEASON_SPECIAL_SORT,
                Field.SET,
                Field.SORT_TITLE,
                Field.TAGLINE,
                Field.TOP250,
                Field.TRACK_NUMBER,
                Field.TRAILER,
                Field.TVSHOW_STATUS,
                Field.TVSHOW_TITLE,
                Field.WRITER,
            }
        ),
    )

    def write_item(self, item: MediaItem, db_id: int | None = None) -> int:
        return self.repository.set_details_for_music_video(item, db_id=db_id)
